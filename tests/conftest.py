import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, List, Union

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from agents.types import ResumeProfile
from api_server import build_engine
from config.settings import Settings, settings
from services.live import InMemoryLiveFeed
from services.signals import inline_dispatch
from storage.candidates import CandidateStore
from storage.migrate import migrate


Reply = Union[str, Exception, Callable[[str], str]]


class ScriptedOracle:
    """Fake Oracle that returns queued replies in order and records every prompt."""

    def __init__(self, *replies: Reply) -> None:
        self.replies: List[Reply] = list(replies)
        self.prompts: List[str] = []

    def queue(self, *replies: Reply) -> "ScriptedOracle":
        self.replies.extend(replies)
        return self

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.replies:
            raise RuntimeError("ScriptedOracle has no reply queued")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(prompt)
        return reply


class FixedClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


def reply(**payload: Any) -> str:
    return json.dumps(payload)


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch, tmp_path):
    db_path = tmp_path / "interview.db"
    monkeypatch.setattr(settings, "DB_PATH", str(db_path), raising=False)
    migrate(db_path)
    yield db_path


@pytest.fixture
def oracle() -> ScriptedOracle:
    return ScriptedOracle()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def live() -> InMemoryLiveFeed:
    return InMemoryLiveFeed()


@pytest.fixture
def engine_settings(tmp_db) -> Settings:
    return Settings(DB_PATH=str(tmp_db), PROFILE_DISPATCH="inline", TRANSCRIPT_BACKEND="sqlite")


@pytest.fixture
def engine(engine_settings, oracle, live, clock):
    return build_engine(engine_settings, oracle=oracle, live=live, dispatch=inline_dispatch, clock=clock)


@pytest.fixture
def resume() -> ResumeProfile:
    return ResumeProfile(
        skills=["Python", "PostgreSQL", "Docker"],
        projects=["Payments reconciliation API"],
        certifications=["AWS Solutions Architect Associate"],
        experience=["3 years backend engineering at a fintech"],
        job_area="Backend Engineering",
    )


@pytest.fixture
def candidate(tmp_db, resume):
    return CandidateStore(tmp_db).create_candidate(full_name="Asha Rao", resume_profile=resume, candidate_id="cand-1")


@pytest.fixture
def other_candidate(tmp_db, resume):
    return CandidateStore(tmp_db).create_candidate(full_name="Ben Ode", resume_profile=resume, candidate_id="cand-2")


@pytest.fixture
def make_interview(engine, candidate, clock):
    def _make(modality: str = "chat", duration_min: int = 30, candidate_id: str = "cand-1"):
        return engine.scheduling.schedule(
            candidate_id=candidate_id,
            scheduled_at=clock(),
            duration_min=duration_min,
            modality=modality,
        )

    return _make


@pytest.fixture
def started(engine, make_interview):
    def _start(modality: str = "chat", duration_min: int = 30):
        session = make_interview(modality=modality, duration_min=duration_min)
        engine.start("cand-1", session.interview_id)
        return session.interview_id

    return _start


PROFILE_REPLY = reply(
    performanceScore=72,
    recommendedRoles=["Backend Engineer", "API Developer"],
    strengths=["Solid SQL fundamentals"],
    weaknesses=["Limited system design depth"],
    analytics={"totalQuestions": 99, "correctAnswers": 99, "averageDifficulty": 5},
)
