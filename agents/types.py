"""Shared type definitions for agents."""
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

Section = Literal["Skills", "Work Experience", "Personality", "Introduction"]
Action = Literal["next_step", "confirm", "proceed"]

REQUIRED_SECTIONS: tuple[Section, ...] = ("Skills", "Work Experience", "Personality")
INTRODUCTION: Section = "Introduction"
MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5


def clamp_difficulty(value: int) -> int:
    return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, int(value)))


def coerce_section(value: object) -> Optional[Section]:
    """Map loosely formatted section labels onto the canonical names."""

    if not isinstance(value, str):
        return None
    key = " ".join(value.replace("_", " ").replace("-", " ").split()).lower()
    for section in REQUIRED_SECTIONS + (INTRODUCTION,):
        if key == section.lower():
            return section
    if key in {"experience", "work", "work history"}:
        return "Work Experience"
    if key in {"skill", "technical", "technical skills"}:
        return "Skills"
    if key in {"behavioral", "behavioural", "personality traits"}:
        return "Personality"
    return None


class ResumeProfile(BaseModel):
    skills: List[str] = Field(default_factory=list)
    projects: List[str] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=list)
    experience: List[str] = Field(default_factory=list)
    job_area: Optional[str] = None


class Decision(BaseModel):
    action: Action
    message: Optional[str] = None


class GradeResult(BaseModel):
    correct: bool
    ai_feedback: str


class QuestionOut(BaseModel):
    question: str
    section: Optional[Section] = None
    difficulty_level: Optional[int] = Field(default=None, ge=MIN_DIFFICULTY, le=MAX_DIFFICULTY)


class Turn(BaseModel):
    turn_id: str
    content: str
    section: Optional[Section] = None
    difficulty_level: int = Field(ge=MIN_DIFFICULTY, le=MAX_DIFFICULTY)
    candidate_answer: str
    correct: bool
    ai_feedback: str
    asked_at: str


class TranscriptRecord(BaseModel):
    id: str
    role: Literal["assistant", "user"]
    text: str
    timestamp: int


class QAPair(BaseModel):
    question: str
    answer: str
    asked_at: int


class Analytics(BaseModel):
    total_questions: int = Field(ge=0)
    correct_answers: int = Field(ge=0)
    average_difficulty: float = Field(ge=0.0, le=float(MAX_DIFFICULTY))


class ProfileOut(BaseModel):
    """Validated synthesizer payload before it becomes a stored profile."""

    performance_score: float = Field(ge=0.0, le=100.0)
    recommended_roles: List[str] = Field(min_length=2)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)

    @field_validator("recommended_roles", "strengths", "weaknesses")
    @classmethod
    def _clean(cls, items: List[str]) -> List[str]:
        return [" ".join(str(item).split()) for item in items if str(item).strip()]

    @field_validator("recommended_roles")
    @classmethod
    def _at_most_three(cls, items: List[str]) -> List[str]:
        if len(items) < 2:
            raise ValueError("at least two recommended roles are required")
        return items[:3]


class InterviewProfile(BaseModel):
    interview_id: str
    performance_score: float
    recommended_roles: List[str]
    strengths: List[str]
    weaknesses: List[str]
    analytics: Analytics
    created_at: str
