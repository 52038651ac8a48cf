"""Adaptive question generation for timed interview sessions."""
from __future__ import annotations

import difflib
import logging
import re
from typing import Iterable, List, Optional, Sequence

from agents.decoding import decode_structured, pick, unwrap
from agents.prompts import QUESTION_PROMPT, format_history, format_profile
from agents.types import (
    INTRODUCTION,
    REQUIRED_SECTIONS,
    QuestionOut,
    ResumeProfile,
    Section,
    Turn,
    clamp_difficulty,
    coerce_section,
)
from errors import MalformedOracleOutputError, OracleUnavailableError
from llm_gateway import Oracle, ask

logger = logging.getLogger(__name__)

_NORMALIZE_RE = re.compile(r"[^a-z0-9 ]+")


def next_difficulty(turns: Sequence[Turn], seed: int = 2) -> int:
    """Step difficulty from the most recent graded turn.

    Introduction turns are auto-marked and do not move difficulty.
    """

    for turn in reversed(turns):
        if turn.section == INTRODUCTION:
            continue
        step = 1 if turn.correct else -1
        return clamp_difficulty(turn.difficulty_level + step)
    return clamp_difficulty(seed)


def covered_sections(sections: Iterable[Optional[str]]) -> List[Section]:
    seen = {section for section in sections if section}
    return [section for section in REQUIRED_SECTIONS if section in seen]


def plan_section(
    sections: Iterable[Optional[str]],
    remaining_min: float,
    minutes_per_question: float,
) -> tuple[Optional[Section], List[Section]]:
    """Return ``(forced_section, uncovered)`` for the next question.

    A section is forced once the uncovered sections would no longer fit in the
    remaining time at ``minutes_per_question`` each.
    """

    covered = set(covered_sections(sections))
    uncovered = [section for section in REQUIRED_SECTIONS if section not in covered]
    if not uncovered:
        return None, uncovered
    if len(uncovered) * minutes_per_question >= remaining_min:
        return uncovered[0], uncovered
    return None, uncovered


def _normalize(text: str) -> str:
    return " ".join(_NORMALIZE_RE.sub(" ", text.lower()).split())


def is_novel(question: str, prior: Iterable[str], threshold: float) -> bool:
    candidate = _normalize(question)
    if not candidate:
        return False
    for text in prior:
        existing = _normalize(text)
        if not existing:
            continue
        if candidate == existing:
            return False
        if difflib.SequenceMatcher(None, candidate, existing).ratio() >= threshold:
            return False
    return True


def opening_question(full_name: str, seed: int = 2) -> QuestionOut:
    first_name = full_name.split()[0] if full_name.strip() else "there"
    text = (
        f"Hi {first_name}, welcome to your interview. To begin, please introduce yourself "
        "and walk me through your background."
    )
    return QuestionOut(question=text, section=INTRODUCTION, difficulty_level=clamp_difficulty(seed))


class QuestionGenerator:
    def __init__(
        self,
        oracle: Oracle,
        *,
        seed_difficulty: int = 2,
        minutes_per_question: float = 2.0,
        max_attempts: int = 2,
        novelty_threshold: float = 0.9,
    ) -> None:
        self._oracle = oracle
        self._seed = seed_difficulty
        self._minutes_per_question = minutes_per_question
        self._max_attempts = max(1, max_attempts)
        self._threshold = novelty_threshold

    def generate(
        self,
        *,
        profile: ResumeProfile,
        turns: Sequence[Turn],
        asked: Sequence[str],
        remaining_min: float,
        total_min: float,
        asked_sections: Sequence[Optional[str]] = (),
    ) -> QuestionOut:
        """Generate the next question.

        ``asked_sections`` are the sections of questions already put to the
        candidate, graded or not; voice sessions have no graded turns until end.
        """

        difficulty = next_difficulty(turns, self._seed)
        forced, uncovered = plan_section(
            [turn.section for turn in turns] + list(asked_sections),
            remaining_min,
            self._minutes_per_question,
        )
        prior = _unique([turn.content for turn in turns] + list(asked))

        retry_note = ""
        rejected = ""
        for attempt in range(self._max_attempts):
            prompt = QUESTION_PROMPT.format(
                profile=format_profile(profile),
                history=format_history(prior),
                remaining=_minutes(remaining_min),
                total=_minutes(total_min),
                uncovered=", ".join(uncovered) or "(all covered)",
                section=forced or "choose the most useful of Skills, Work Experience, Personality",
                difficulty=difficulty,
                retry_note=retry_note,
            )
            raw = ask(self._oracle, prompt)
            result = self._parse(raw, forced=forced, difficulty=difficulty)
            if result.section is None and result.difficulty_level is None:
                return result
            if is_novel(result.question, prior, self._threshold):
                return result
            rejected = result.question
            logger.warning("Generated question repeats an earlier one (attempt %d/%d)", attempt + 1, self._max_attempts)
            retry_note = f'Your previous suggestion "{result.question}" repeated an earlier question. Ask something new.\n'
        logger.warning("Giving up on novelty after %d attempts; last rejected question: %r", self._max_attempts, rejected)
        raise OracleUnavailableError(f"question generator kept repeating earlier questions: {rejected!r}")

    def _parse(self, raw: str, *, forced: Optional[Section], difficulty: int) -> QuestionOut:
        try:
            payload = unwrap(decode_structured(raw))
            text = pick(payload, "question", "text", "content")
            if not isinstance(text, str) or not text.strip():
                raise MalformedOracleOutputError("question text missing")
        except MalformedOracleOutputError as exc:
            logger.warning("Question output unreadable, using raw text: %s", exc)
            return QuestionOut(question=raw.strip())

        section = forced or coerce_section(payload.get("section"))
        if section is None or section == INTRODUCTION:
            section = REQUIRED_SECTIONS[0]
        return QuestionOut(question=" ".join(text.split()), section=section, difficulty_level=difficulty)


def _unique(texts: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    result: List[str] = []
    for text in texts:
        key = _normalize(text)
        if key and key not in seen:
            seen.add(key)
            result.append(text.strip())
    return result


def _minutes(value: float) -> str:
    return f"{max(0.0, float(value)):g}"


__all__ = [
    "QuestionGenerator",
    "covered_sections",
    "is_novel",
    "next_difficulty",
    "opening_question",
    "plan_section",
]
