"""Profile synthesis for completed interviews.

The Oracle scores the interview against ``RUBRIC_WEIGHTS``. Its reply is
decoded strictly: anything that does not validate as ``ProfileOut`` raises
``MalformedOracleOutputError`` and nothing is stored. Analytics are never
taken from the Oracle; ``compute_analytics`` derives them from the stored turns.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Sequence

from pydantic import ValidationError

from agents.decoding import decode_structured, pick, unwrap
from agents.prompts import PROFILE_PROMPT, format_profile, format_rubric, format_turns
from agents.types import Analytics, ProfileOut, ResumeProfile, Turn
from errors import MalformedOracleOutputError
from llm_gateway import Oracle, ask

logger = logging.getLogger(__name__)


def compute_analytics(turns: Sequence[Turn]) -> Analytics:
    total = len(turns)
    if total == 0:
        return Analytics(total_questions=0, correct_answers=0, average_difficulty=0.0)
    correct = sum(1 for turn in turns if turn.correct)
    average = round(sum(turn.difficulty_level for turn in turns) / total, 2)
    return Analytics(total_questions=total, correct_answers=correct, average_difficulty=average)


def _normalize_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "performance_score": pick(payload, "performanceScore", "performance_score", "score"),
        "recommended_roles": pick(payload, "recommendedRoles", "recommended_roles", "roles", default=[]),
        "strengths": pick(payload, "strengths", default=[]),
        "weaknesses": pick(payload, "weaknesses", default=[]),
    }


class ProfileSynthesizer:
    def __init__(self, oracle: Oracle) -> None:
        self._oracle = oracle

    def synthesize(self, *, profile: ResumeProfile, turns: Sequence[Turn]) -> ProfileOut:
        prompt = PROFILE_PROMPT.format(
            profile=format_profile(profile),
            turns=format_turns(turns),
            rubric=format_rubric(),
        )
        raw = ask(self._oracle, prompt)
        payload = unwrap(decode_structured(raw), ("data", "result", "response", "output", "profile"))
        try:
            return ProfileOut.model_validate(_normalize_payload(payload))
        except ValidationError as exc:
            logger.error("Profile output failed validation: %s", exc)
            raise MalformedOracleOutputError(f"profile output failed validation: {exc.error_count()} error(s)") from exc


__all__ = ["ProfileSynthesizer", "compute_analytics"]
