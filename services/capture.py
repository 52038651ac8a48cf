"""Turn capture strategies, one per session modality.

``chat`` sessions grade each answer as it arrives. ``assistant`` sessions do the
same, but answers arrive as voice-assistant function calls. ``voice`` sessions
only keep the raw transcript, which is paired and graded in one batch at end.
"""
from __future__ import annotations

import hashlib
from typing import Any, Dict, List, Optional, Protocol, Sequence

from pydantic import BaseModel, Field, ValidationError

from agents.answer_grader import AnswerGrader, pair_transcript
from agents.decoding import decode_structured, pick, unwrap
from agents.types import (
    MAX_DIFFICULTY,
    MIN_DIFFICULTY,
    GradeResult,
    ResumeProfile,
    Section,
    TranscriptRecord,
    Turn,
    coerce_section,
)
from errors import InvalidStateError, MalformedOracleOutputError
from services.clock import millis_to_iso
from storage.interviews import Modality

RECORD_ANSWER_TOOL = "record_answer"


def turn_digest(interview_id: str, question: str, answer: str) -> str:
    """Stable turn id for retries that carry no explicit id."""

    material = "\x1f".join((interview_id, question.strip(), answer.strip()))
    return hashlib.sha1(material.encode("utf-8")).hexdigest()


class ToolCallAnswer(BaseModel):  # Arguments of a record_answer function call
    question: str = Field(min_length=1)
    answer: str
    difficulty_level: Optional[int] = Field(default=None, ge=MIN_DIFFICULTY, le=MAX_DIFFICULTY)
    section: Optional[Section] = None
    turn_id: Optional[str] = None


class TurnCaptureStrategy(Protocol):
    modality: Modality

    def grade_turn(
        self,
        *,
        profile: ResumeProfile,
        question: str,
        answer: str,
        difficulty_level: int,
        section: Optional[Section],
    ) -> GradeResult: ...

    def turns_at_end(
        self,
        *,
        interview_id: str,
        profile: ResumeProfile,
        records: Sequence[TranscriptRecord],
    ) -> List[Turn]: ...


class PerTurnCapture:
    modality: Modality = "chat"

    def __init__(self, grader: AnswerGrader) -> None:
        self._grader = grader

    def grade_turn(self, *, profile, question, answer, difficulty_level, section) -> GradeResult:
        return self._grader.grade(
            profile=profile,
            question=question,
            answer=answer,
            difficulty_level=difficulty_level,
            section=section,
        )

    def turns_at_end(self, *, interview_id, profile, records) -> List[Turn]:
        return []


class ToolCallCapture(PerTurnCapture):
    modality: Modality = "assistant"

    def decode_call(self, payload: Dict[str, Any]) -> ToolCallAnswer:
        name = pick(payload, "name", "function", default="")
        if isinstance(name, dict):
            payload = name
            name = payload.get("name", "")
        if name != RECORD_ANSWER_TOOL:
            raise InvalidStateError(f"unsupported tool call {name!r}")
        arguments = payload.get("arguments", payload.get("parameters", {}))
        if isinstance(arguments, str):
            arguments = decode_structured(arguments)
        arguments = unwrap(arguments)
        try:
            return ToolCallAnswer(
                question=str(pick(arguments, "question", "content", default="")).strip(),
                answer=str(pick(arguments, "answer", "candidateAnswer", "candidate_answer", default="")).strip(),
                difficulty_level=pick(arguments, "difficultyLevel", "difficulty_level", "difficulty"),
                section=coerce_section(arguments.get("section")),
                turn_id=arguments.get("turnId") or arguments.get("turn_id"),
            )
        except ValidationError as exc:
            raise MalformedOracleOutputError(f"record_answer arguments invalid: {exc.error_count()} error(s)") from exc


class TranscriptReplayCapture:
    modality: Modality = "voice"

    def __init__(self, grader: AnswerGrader) -> None:
        self._grader = grader

    def grade_turn(self, *, profile, question, answer, difficulty_level, section) -> GradeResult:
        raise InvalidStateError("voice sessions are graded from the transcript when they end")

    def turns_at_end(self, *, interview_id, profile, records) -> List[Turn]:
        pairs = pair_transcript(records)
        graded = self._grader.grade_batch(profile=profile, pairs=pairs)
        return [
            Turn(
                turn_id=turn_digest(interview_id, item.pair.question, item.pair.answer),
                content=item.pair.question,
                section=item.section,
                difficulty_level=item.difficulty_level,
                candidate_answer=item.pair.answer,
                correct=item.correct,
                ai_feedback=item.ai_feedback,
                asked_at=millis_to_iso(item.pair.asked_at),
            )
            for item in graded
        ]


def build_strategies(grader: AnswerGrader) -> Dict[str, TurnCaptureStrategy]:
    return {
        "chat": PerTurnCapture(grader),
        "assistant": ToolCallCapture(grader),
        "voice": TranscriptReplayCapture(grader),
    }


__all__ = [
    "PerTurnCapture",
    "RECORD_ANSWER_TOOL",
    "ToolCallAnswer",
    "ToolCallCapture",
    "TranscriptReplayCapture",
    "TurnCaptureStrategy",
    "build_strategies",
    "turn_digest",
]
