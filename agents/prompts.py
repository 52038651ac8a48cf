from __future__ import annotations  # Prompt templates for the interview agents

from textwrap import dedent
from typing import Iterable, Sequence

from langchain_core.prompts import PromptTemplate

from agents.types import QAPair, ResumeProfile, Turn

RUBRIC_WEIGHTS = (  # Profile scoring rubric, sums to 100
    ("Accuracy and reliability of answers", 30),
    ("Depth of domain knowledge", 25),
    ("Problem-solving approach", 15),
    ("Communication clarity", 10),
    ("Practical experience", 10),
    ("Composure", 5),
    ("Adaptability", 5),
)

DECISION_PROMPT = PromptTemplate.from_template(
    dedent(
        """
        You are the turn controller for a live job interview.
        Decide how to treat the candidate's latest message relative to the last question.

        Last question: {question}
        Candidate message: {utterance}
        A skip confirmation is pending: {pending_confirm}

        Actions:
        - "next_step": the message directly attempts to answer the question.
        - "confirm": the message is off-topic, evasive, or asks to move on. Reply with one short
          sentence asking the candidate to confirm they want to skip to the next question.
        - "proceed": the message is a plain acknowledgment such as "yes" or "go ahead" and a skip
          confirmation is pending.

        Reply with JSON only: {{"action": "next_step" | "confirm" | "proceed", "message": "<text or empty>"}}
        """
    ).strip()
)

GRADE_PROMPT = PromptTemplate.from_template(
    dedent(
        """
        You are a strict technical interviewer grading one answer.

        Candidate resume profile:
        {profile}

        Section: {section}
        Difficulty (1-5): {difficulty}
        Question: {question}
        Candidate answer: {answer}

        Decide whether the answer is correct for the stated difficulty.
        Feedback must be 6-8 words, written as an evaluator's corrective note, never praise alone.

        Reply with JSON only: {{"correct": true | false, "aiFeedback": "<6-8 words>"}}
        """
    ).strip()
)

BATCH_GRADE_PROMPT = PromptTemplate.from_template(
    dedent(
        """
        You are a strict technical interviewer reviewing a finished voice interview.

        Candidate resume profile:
        {profile}

        Question and answer pairs, in order:
        {pairs}

        Grade every pair. Return a JSON array with exactly {count} objects in the same order as the
        pairs, each shaped as:
        {{"content": "<question>", "candidateAnswer": "<answer>", "correct": true | false,
          "difficultyLevel": <1-5>, "section": "Skills" | "Work Experience" | "Personality" | "Introduction",
          "aiFeedback": "<6-8 word corrective note>"}}
        Reply with the JSON array only.
        """
    ).strip()
)

QUESTION_PROMPT = PromptTemplate.from_template(
    dedent(
        """
        You are conducting a timed job interview and must ask the next question.

        Candidate resume profile:
        {profile}

        Questions asked so far (do not repeat or rephrase any of them):
        {history}

        Time remaining: {remaining} of {total} minutes.
        Sections still uncovered: {uncovered}
        Required section for this question: {section}
        Target difficulty (1-5): {difficulty}
        {retry_note}
        Ground the question in the resume. Ask a single item of one or two short sentences.

        Reply with JSON only: {{"question": "<text>", "section": "{section}", "difficultyLevel": {difficulty}}}
        """
    ).strip()
)

PROFILE_PROMPT = PromptTemplate.from_template(
    dedent(
        """
        You are summarizing a completed job interview into a performance profile.

        Candidate resume profile:
        {profile}

        Graded questions:
        {turns}

        Score the candidate from 0 to 100 using these weights:
        {rubric}

        Reply with strict JSON only:
        {{"performanceScore": <0-100>, "recommendedRoles": ["<role>", "<role>"],
          "strengths": ["<short phrase>"], "weaknesses": ["<short phrase>"],
          "analytics": {{"totalQuestions": <int>, "correctAnswers": <int>, "averageDifficulty": <float>}}}}
        recommendedRoles must hold two or three short titles.
        """
    ).strip()
)


def format_profile(profile: ResumeProfile) -> str:
    lines = [
        f"Job area: {profile.job_area or '(not set)'}",
        f"Skills: {_join(profile.skills)}",
        f"Projects: {_join(profile.projects)}",
        f"Certifications: {_join(profile.certifications)}",
        f"Experience: {_join(profile.experience)}",
    ]
    return "\n".join(lines)


def format_history(questions: Sequence[str]) -> str:
    if not questions:
        return "(none yet)"
    return "\n".join(f"{index}. {text}" for index, text in enumerate(questions, start=1))


def format_pairs(pairs: Sequence[QAPair]) -> str:
    return "\n".join(
        f"{index}. Q: {pair.question}\n   A: {pair.answer}" for index, pair in enumerate(pairs, start=1)
    )


def format_turns(turns: Sequence[Turn]) -> str:
    if not turns:
        return "(no graded questions)"
    rows = []
    for index, turn in enumerate(turns, start=1):
        verdict = "correct" if turn.correct else "incorrect"
        rows.append(
            f"{index}. [{turn.section or 'Unlabeled'} | difficulty {turn.difficulty_level} | {verdict}] "
            f"Q: {turn.content} A: {turn.candidate_answer} Feedback: {turn.ai_feedback}"
        )
    return "\n".join(rows)


def format_rubric() -> str:
    return "\n".join(f"- {name}: {weight}" for name, weight in RUBRIC_WEIGHTS)


def _join(items: Iterable[str]) -> str:
    cleaned = [item.strip() for item in items if item and item.strip()]
    return ", ".join(cleaned) if cleaned else "(none)"
