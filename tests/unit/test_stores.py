from __future__ import annotations

import sqlite3

import pytest

from agents.types import Analytics, Decision, InterviewProfile, QuestionOut, Turn
from storage.asked import AskedQuestionLog
from storage.candidates import CandidateStore
from storage.decisions import DecisionLog
from storage.interviews import InterviewStore
from storage.profiles import ProfileStore
from storage.turns import TurnStore


def _turn(turn_id: str, asked_at: str = "2026-01-05T09:02:00+00:00") -> Turn:
    return Turn(
        turn_id=turn_id,
        content="How would you index a ledger table?",
        section="Skills",
        difficulty_level=3,
        candidate_answer="Composite index on account and posted_at",
        correct=True,
        ai_feedback="Consider partial indexes",
        asked_at=asked_at,
    )


def _interview(tmp_db, *, interview_id: str = "iv-1") -> InterviewStore:
    store = InterviewStore(tmp_db)
    store.create(
        candidate_id="cand-1",
        scheduled_at="2026-01-05T09:00:00+00:00",
        duration_min=30,
        interview_id=interview_id,
    )
    return store


def test_migrate_creates_engine_tables(tmp_db):
    conn = sqlite3.connect(tmp_db)
    try:
        names = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    finally:
        conn.close()
    assert {"candidates", "interviews", "questions", "decisions", "interview_profiles", "transcript_records", "asked_questions"} <= names


def test_candidate_round_trip(tmp_db, resume):
    store = CandidateStore(tmp_db)
    created = store.create_candidate(full_name="Asha Rao", resume_profile=resume, candidate_id="cand-9")
    fetched = store.get("cand-9")
    assert fetched == created
    assert fetched.resume_profile.skills == ["Python", "PostgreSQL", "Docker"]
    assert store.get("missing") is None
    assert [c.candidate_id for c in store.list_candidates()] == ["cand-9"]


def test_status_transitions_are_conditional(tmp_db):
    store = _interview(tmp_db)
    assert store.mark_started("iv-1", "someone-else", "2026-01-05T09:00:00+00:00") is False
    assert store.mark_started("iv-1", "cand-1", "2026-01-05T09:00:00+00:00") is True
    assert store.mark_started("iv-1", "cand-1", "2026-01-05T09:01:00+00:00") is False
    assert store.cancel("iv-1", reason="x", cancelled_at="2026-01-05T09:05:00+00:00") is False
    assert store.get("iv-1").status == "ONGOING"


def test_complete_writes_turns_only_when_it_wins(tmp_db):
    store = _interview(tmp_db)
    turns = TurnStore(tmp_db)
    store.mark_started("iv-1", "cand-1", "2026-01-05T09:00:00+00:00")
    assert store.complete("iv-1", "cand-1", completion_min=12.5, attempted_at="t", turns=[_turn("a"), _turn("b")]) is True
    assert store.complete("iv-1", "cand-1", completion_min=13.0, attempted_at="t", turns=[_turn("c")]) is False
    assert [t.turn_id for t in turns.list_for("iv-1")] == ["a", "b"]
    session = store.get("iv-1")
    assert session.status == "COMPLETED"
    assert session.completion_min == 12.5


def test_reschedule_then_cancel(tmp_db):
    store = _interview(tmp_db)
    assert store.reschedule("iv-1", scheduled_at="2026-01-06T10:00:00+00:00", duration_min=45) is True
    assert store.get("iv-1").status == "RESCHEDULED"
    assert store.cancel("iv-1", reason="Interviewer unavailable", cancelled_at="2026-01-05T10:00:00+00:00") is True
    cancelled = store.get("iv-1")
    assert cancelled.status == "CANCELLED"
    assert cancelled.cancellation_reason == "Interviewer unavailable"
    assert store.reschedule("iv-1", scheduled_at="2026-01-07T10:00:00+00:00", duration_min=30) is False


def test_list_by_status(tmp_db):
    store = _interview(tmp_db)
    store.create(candidate_id="cand-1", scheduled_at="2026-01-04T09:00:00+00:00", duration_min=30, interview_id="iv-0")
    store.mark_started("iv-1", "cand-1", "2026-01-05T09:00:00+00:00")
    assert [s.interview_id for s in store.list_by_status(["PENDING"])] == ["iv-0"]
    assert store.list_by_status([]) == []


def test_turn_insert_is_idempotent_and_fenced(tmp_db):
    store = _interview(tmp_db)
    turns = TurnStore(tmp_db)
    assert turns.insert("iv-1", _turn("a")) is False

    store.mark_started("iv-1", "cand-1", "2026-01-05T09:00:00+00:00")
    assert turns.insert("iv-1", _turn("a")) is True
    assert turns.insert("iv-1", _turn("a")) is False
    assert turns.count_for("iv-1") == 1
    assert turns.get("iv-1", "a").correct is True
    assert turns.get("iv-1", "zzz") is None

    store.complete("iv-1", "cand-1", completion_min=5, attempted_at="t")
    assert turns.insert("iv-1", _turn("b")) is False
    assert turns.count_for("iv-1") == 1


def test_turn_ids_are_scoped_to_their_interview(tmp_db):
    store = _interview(tmp_db)
    store.create(candidate_id="cand-1", scheduled_at="2026-01-05T09:00:00+00:00", duration_min=30, interview_id="iv-2")
    store.mark_started("iv-1", "cand-1", "2026-01-05T09:00:00+00:00")
    store.mark_started("iv-2", "cand-1", "2026-01-05T09:00:00+00:00")
    turns = TurnStore(tmp_db)

    assert turns.insert("iv-1", _turn("turn-1")) is True
    assert turns.insert("iv-2", _turn("turn-1")) is True
    assert turns.count_for("iv-1") == 1
    assert turns.count_for("iv-2") == 1
    assert turns.get("iv-2", "turn-1") is not None
    assert turns.get("iv-3", "turn-1") is None


def test_turns_list_in_asked_order(tmp_db):
    store = _interview(tmp_db)
    turns = TurnStore(tmp_db)
    store.mark_started("iv-1", "cand-1", "2026-01-05T09:00:00+00:00")
    turns.insert("iv-1", _turn("late", "2026-01-05T09:10:00+00:00"))
    turns.insert("iv-1", _turn("early", "2026-01-05T09:01:00+00:00"))
    assert [t.turn_id for t in turns.list_for("iv-1")] == ["early", "late"]


def _profile(score: float) -> InterviewProfile:
    return InterviewProfile(
        interview_id="iv-1",
        performance_score=score,
        recommended_roles=["Backend Engineer", "SRE"],
        strengths=["SQL"],
        weaknesses=[],
        analytics=Analytics(total_questions=4, correct_answers=3, average_difficulty=3.25),
        created_at="2026-01-05T09:30:00+00:00",
    )


def test_profile_insert_or_ignore(tmp_db):
    store = ProfileStore(tmp_db)
    assert store.insert(_profile(72)) is True
    assert store.insert(_profile(10)) is False
    stored = store.get("iv-1")
    assert stored.performance_score == 72
    assert stored.analytics.average_difficulty == 3.25
    assert store.count_for("iv-1") == 1
    assert store.get("iv-2") is None


def test_profile_score_is_range_checked(tmp_db):
    with pytest.raises(sqlite3.IntegrityError):
        ProfileStore(tmp_db).insert(_profile(101))


def test_decision_log_tracks_pending_confirm(tmp_db):
    log = DecisionLog(tmp_db)
    assert log.pending_confirm("iv-1") is False
    log.append("iv-1", Decision(action="confirm", message="Skip this one?"), question="Q", utterance="skip", created_at="t1")
    assert log.pending_confirm("iv-1") is True
    log.append("iv-1", Decision(action="proceed"), question="Q", utterance="yes", created_at="t2")
    assert log.pending_confirm("iv-1") is False
    assert [entry.action for entry in log.list_for("iv-1")] == ["confirm", "proceed"]
    assert log.latest("iv-1").utterance == "yes"


def test_asked_questions_are_logged_while_ongoing(tmp_db):
    store = _interview(tmp_db)
    log = AskedQuestionLog(tmp_db)
    question = QuestionOut(question="Describe a migration you led.", section="Work Experience", difficulty_level=3)
    assert log.append("iv-1", question, asked_at="t0") is False

    store.mark_started("iv-1", "cand-1", "2026-01-05T09:00:00+00:00")
    assert log.append("iv-1", question, asked_at="t1") is True
    assert log.append("iv-1", QuestionOut(question="Free-form text"), asked_at="t2") is True
    entries = log.list_for("iv-1")
    assert [(e.section, e.difficulty_level) for e in entries] == [("Work Experience", 3), (None, None)]

    store.complete("iv-1", "cand-1", completion_min=5, attempted_at="t")
    assert log.append("iv-1", question, asked_at="t3") is False
    assert len(log.list_for("iv-1")) == 2
