"""Application settings and configuration management."""
from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/interview.db")
    LLM_CONFIG_PATH: str = "app_config.json"
    ORACLE_ROUTE: str = "default"

    TRANSCRIPT_BACKEND: Literal["sqlite", "redis"] = "sqlite"
    REDIS_URL: str = "redis://localhost:6379/0"
    TRANSCRIPT_TTL_GRACE_S: int = 600

    SEED_DIFFICULTY: int = Field(default=2, ge=1, le=5)
    MINUTES_PER_QUESTION: float = Field(default=2.0, gt=0.0)
    QUESTION_MAX_ATTEMPTS: int = Field(default=2, ge=1)
    NOVELTY_THRESHOLD: float = Field(default=0.9, ge=0.0, le=1.0)
    FEEDBACK_MAX_CHARS: int = 200

    SWEEP_GRACE_MIN: int = 15
    PROFILE_DISPATCH: Literal["thread", "inline"] = "thread"

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True)


settings = Settings()
