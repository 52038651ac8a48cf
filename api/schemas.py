"""Pydantic schemas for the interview session API.

Payloads use camelCase on the wire (``interviewId``, ``completionMin``) and
accept snake_case too.
"""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from agents.types import MAX_DIFFICULTY, MIN_DIFFICULTY, Action, Section, TranscriptRecord


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StartReq(ApiModel):
    interview_id: str


class StartResp(ApiModel):
    interview_id: str
    status: str
    modality: str
    duration_min: int
    question: str
    section: Section
    difficulty_level: int


class UtteranceReq(ApiModel):
    interview_id: str
    question: str
    candidate_answer: str
    utterance_id: Optional[str] = None


class DecisionResp(ApiModel):
    action: Action
    message: Optional[str] = None


class FeedbackReq(ApiModel):
    interview_id: str
    question: str
    candidate_answer: str
    difficulty_level: int = Field(ge=MIN_DIFFICULTY, le=MAX_DIFFICULTY)
    section: Optional[Section] = None
    turn_id: Optional[str] = None


class FeedbackResp(ApiModel):
    correct: bool
    ai_feedback: str


class GenerateReq(ApiModel):
    interview_id: str
    remaining_duration: float = Field(ge=0)
    interview_duration: float = Field(gt=0)


class QuestionResp(ApiModel):
    question: str
    section: Optional[Section] = None
    difficulty_level: Optional[int] = None


class TranscriptIn(ApiModel):
    id: str = Field(min_length=1)
    role: Literal["assistant", "user"]
    text: str
    timestamp: int = Field(ge=0)

    def to_record(self) -> TranscriptRecord:
        return TranscriptRecord(id=self.id, role=self.role, text=self.text, timestamp=self.timestamp)


class TranscriptReq(TranscriptIn):
    interview_id: str


class TranscriptAck(ApiModel):
    stored: bool


class TranscriptResp(ApiModel):
    interview_id: str
    records: List[TranscriptIn] = Field(default_factory=list)


class EndReq(ApiModel):
    interview_id: str
    completion_min: float = Field(ge=0)
    transcript: Optional[List[TranscriptIn]] = None


class EndResp(ApiModel):
    message: str
    interview_id: str
    status: str
    completion_min: float
    attempted_at: str
    turns_recorded: int


class ToolCallReq(ApiModel):
    interview_id: str
    name: str
    arguments: Union[str, Dict[str, Any]] = Field(default_factory=dict)


class AnalyticsResp(ApiModel):
    total_questions: int
    correct_answers: int
    average_difficulty: float


class ProfileResp(ApiModel):
    interview_id: str
    performance_score: float
    recommended_roles: List[str]
    strengths: List[str]
    weaknesses: List[str]
    analytics: AnalyticsResp
    created_at: str


class TokenResp(ApiModel):
    token: str


class TtsReq(ApiModel):
    text: str = Field(min_length=1)
