"""Answer grading for single turns and replayed transcripts."""
from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

from agents.decoding import decode_structured, pick, unwrap
from agents.prompts import BATCH_GRADE_PROMPT, GRADE_PROMPT, format_pairs, format_profile
from agents.types import (
    INTRODUCTION,
    GradeResult,
    QAPair,
    ResumeProfile,
    Section,
    TranscriptRecord,
    clamp_difficulty,
    coerce_section,
)
from errors import MalformedOracleOutputError
from llm_gateway import Oracle, ask

logger = logging.getLogger(__name__)

NO_FEEDBACK = "No feedback generated"
INTRODUCTION_FEEDBACK = "Introduction recorded without grading"
BATCH_LIST_KEYS = ("data", "result", "results", "turns", "questions", "evaluations", "items")


class GradedPair:  # One graded transcript pair before it becomes a stored turn
    __slots__ = ("pair", "correct", "difficulty_level", "section", "ai_feedback")

    def __init__(self, pair: QAPair, correct: bool, difficulty_level: int, section: Optional[Section], ai_feedback: str) -> None:
        self.pair = pair
        self.correct = correct
        self.difficulty_level = difficulty_level
        self.section = section
        self.ai_feedback = ai_feedback


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "correct"}:
            return True
        if lowered in {"false", "no", "incorrect"}:
            return False
    return None


def _clean_feedback(value: Any, limit: int) -> str:
    if not isinstance(value, str):
        return ""
    text = " ".join(value.split())
    return text[:limit].rstrip()


def pair_transcript(records: Sequence[TranscriptRecord]) -> List[QAPair]:
    """Pair each assistant utterance with the user utterance right after it."""

    ordered = sorted(records, key=lambda record: record.timestamp)
    pairs: List[QAPair] = []
    for current, following in zip(ordered, ordered[1:]):
        if current.role != "assistant" or following.role != "user":
            continue
        question = current.text.strip()
        answer = following.text.strip()
        if question and answer:
            pairs.append(QAPair(question=question, answer=answer, asked_at=current.timestamp))
    return pairs


class AnswerGrader:
    """Grade answers through the Oracle.

    Single-turn grading degrades to an incorrect verdict when the completion is
    unreadable; batch grading treats the same condition as fatal.
    """

    def __init__(self, oracle: Oracle, *, feedback_max_chars: int = 200) -> None:
        self._oracle = oracle
        self._limit = feedback_max_chars

    def grade(
        self,
        *,
        profile: ResumeProfile,
        question: str,
        answer: str,
        difficulty_level: int,
        section: Optional[Section],
    ) -> GradeResult:
        if section == INTRODUCTION:
            return GradeResult(correct=True, ai_feedback=INTRODUCTION_FEEDBACK)

        prompt = GRADE_PROMPT.format(
            profile=format_profile(profile),
            section=section or "Unlabeled",
            difficulty=clamp_difficulty(difficulty_level),
            question=question.strip(),
            answer=answer.strip() or "(no answer)",
        )
        raw = ask(self._oracle, prompt)

        try:
            payload = unwrap(decode_structured(raw))
        except MalformedOracleOutputError as exc:
            logger.warning("Grade output unreadable, marking incorrect: %s", exc)
            return GradeResult(correct=False, ai_feedback=NO_FEEDBACK)

        correct = _as_bool(pick(payload, "correct", "isCorrect", "is_correct"))
        if correct is None:
            logger.warning("Grade output missing a boolean verdict, marking incorrect")
            return GradeResult(correct=False, ai_feedback=NO_FEEDBACK)
        feedback = _clean_feedback(pick(payload, "aiFeedback", "ai_feedback", "feedback"), self._limit)
        return GradeResult(correct=correct, ai_feedback=feedback or NO_FEEDBACK)

    def grade_batch(self, *, profile: ResumeProfile, pairs: Sequence[QAPair]) -> List[GradedPair]:
        if not pairs:
            return []

        prompt = BATCH_GRADE_PROMPT.format(
            profile=format_profile(profile),
            pairs=format_pairs(pairs),
            count=len(pairs),
        )
        raw = ask(self._oracle, prompt)

        items = unwrap(decode_structured(raw), BATCH_LIST_KEYS, want=list)
        if len(items) != len(pairs):
            raise MalformedOracleOutputError(
                f"batch grading returned {len(items)} results for {len(pairs)} pairs"
            )

        graded: List[GradedPair] = []
        for index, (pair, item) in enumerate(zip(pairs, items)):
            if not isinstance(item, dict):
                raise MalformedOracleOutputError(f"batch item {index} is not an object")
            correct = _as_bool(pick(item, "correct", "isCorrect", "is_correct"))
            if correct is None:
                raise MalformedOracleOutputError(f"batch item {index} has no boolean verdict")
            try:
                difficulty = clamp_difficulty(pick(item, "difficultyLevel", "difficulty_level", "difficulty", default=3))
            except (TypeError, ValueError) as exc:
                raise MalformedOracleOutputError(f"batch item {index} has a non-numeric difficulty") from exc
            feedback = _clean_feedback(pick(item, "aiFeedback", "ai_feedback", "feedback"), self._limit)
            graded.append(
                GradedPair(
                    pair=pair,
                    correct=correct,
                    difficulty_level=difficulty,
                    section=coerce_section(item.get("section")),
                    ai_feedback=feedback or NO_FEEDBACK,
                )
            )
        return graded


__all__ = ["AnswerGrader", "GradedPair", "pair_transcript", "NO_FEEDBACK", "INTRODUCTION_FEEDBACK"]
