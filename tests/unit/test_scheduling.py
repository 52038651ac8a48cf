from __future__ import annotations

from datetime import timedelta

import pytest

from errors import InvalidStateError, NotFoundError
from observability.admin_cli import main as admin_main
from services.scheduling import (
    ABANDONED_REASON,
    DEFAULT_CANCEL_REASON,
    NO_SHOW_REASON,
    SchedulingService,
)
from storage.interviews import InterviewStore


@pytest.fixture
def scheduling(tmp_db, clock):
    return SchedulingService(InterviewStore(tmp_db), clock=clock, sweep_grace_min=15)


def test_schedule_reschedule_cancel(scheduling, clock):
    session = scheduling.schedule(candidate_id="cand-1", scheduled_at=clock(), duration_min=30, modality="voice")
    assert session.status == "PENDING"
    assert session.modality == "voice"

    moved = scheduling.reschedule(session.interview_id, scheduled_at="2026-01-06T10:00:00Z", duration_min=45)
    assert moved.status == "RESCHEDULED"
    assert moved.scheduled_at == "2026-01-06T10:00:00+00:00"
    assert moved.duration_min == 45

    cancelled = scheduling.cancel(session.interview_id)
    assert cancelled.status == "CANCELLED"
    assert cancelled.cancellation_reason == DEFAULT_CANCEL_REASON

    with pytest.raises(InvalidStateError):
        scheduling.cancel(session.interview_id, "again")
    with pytest.raises(NotFoundError):
        scheduling.cancel("missing")


def test_ongoing_sessions_cannot_be_cancelled_by_admin(scheduling, tmp_db, clock):
    session = scheduling.schedule(candidate_id="cand-1", scheduled_at=clock(), duration_min=30)
    InterviewStore(tmp_db).mark_started(session.interview_id, "cand-1", "2026-01-05T09:00:00+00:00")
    with pytest.raises(InvalidStateError):
        scheduling.cancel(session.interview_id)
    with pytest.raises(InvalidStateError):
        scheduling.reschedule(session.interview_id, scheduled_at=clock(), duration_min=30)


def test_sweep_cancels_unattended_and_abandoned(scheduling, tmp_db, clock):
    store = InterviewStore(tmp_db)
    missed = scheduling.schedule(candidate_id="cand-1", scheduled_at=clock() - timedelta(hours=2), duration_min=30)
    upcoming = scheduling.schedule(candidate_id="cand-1", scheduled_at=clock() + timedelta(hours=1), duration_min=30)
    abandoned = scheduling.schedule(candidate_id="cand-1", scheduled_at=clock() - timedelta(hours=2), duration_min=30)
    live = scheduling.schedule(candidate_id="cand-1", scheduled_at=clock() - timedelta(minutes=40), duration_min=30)
    store.mark_started(abandoned.interview_id, "cand-1", "2026-01-05T07:00:00+00:00")
    store.mark_started(live.interview_id, "cand-1", "2026-01-05T08:20:00+00:00")

    result = scheduling.sweep()
    assert (result.unattended, result.abandoned) == (1, 1)
    assert store.get(missed.interview_id).cancellation_reason == NO_SHOW_REASON
    assert store.get(abandoned.interview_id).cancellation_reason == ABANDONED_REASON
    assert store.get(upcoming.interview_id).status == "PENDING"
    # still within duration plus grace
    assert store.get(live.interview_id).status == "ONGOING"

    again = scheduling.sweep()
    assert (again.unattended, again.abandoned) == (0, 0)


def test_sweep_leaves_completed_sessions(scheduling, tmp_db, clock):
    store = InterviewStore(tmp_db)
    session = scheduling.schedule(candidate_id="cand-1", scheduled_at=clock() - timedelta(hours=3), duration_min=30)
    store.mark_started(session.interview_id, "cand-1", "2026-01-05T06:00:00+00:00")
    store.complete(session.interview_id, "cand-1", completion_min=25, attempted_at="2026-01-05T06:00:00+00:00")
    assert scheduling.sweep().abandoned == 0
    assert store.get(session.interview_id).status == "COMPLETED"


def test_admin_cli_cancel_and_sweep(tmp_db, scheduling, clock, capsys):
    session = scheduling.schedule(candidate_id="cand-1", scheduled_at=clock() + timedelta(days=1), duration_min=30)
    admin_main(["--db", str(tmp_db), "--cancel", session.interview_id, "--reason", "Panel unavailable"])
    admin_main(["--db", str(tmp_db), "--sweep"])
    out = capsys.readouterr().out
    assert f"{session.interview_id} -> CANCELLED (Panel unavailable)" in out
    assert "sweep: unattended=0 abandoned=0" in out
