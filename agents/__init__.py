"""Oracle-backed interview agents: decision classifier, grader, generator and profile synthesizer."""
