"""Session orchestration services."""
