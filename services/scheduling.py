from __future__ import annotations  # Scheduling transitions driven by admins and the timeout sweep

from datetime import datetime, timedelta
from typing import Optional, Union

from pydantic import BaseModel

from errors import InvalidStateError, NotFoundError
from observability import log_event
from services.clock import Clock, parse_iso, to_iso, utc_now
from storage.interviews import STARTABLE, InterviewSession, InterviewStore, Modality

DEFAULT_CANCEL_REASON = "Interviewer unavailable due to emergency"
NO_SHOW_REASON = "Candidate did not attend"
ABANDONED_REASON = "Session abandoned"

When = Union[datetime, str]


class SweepResult(BaseModel):  # Counts of sessions the sweep actually moved
    unattended: int = 0
    abandoned: int = 0


def _iso(value: When) -> str:
    return to_iso(value) if isinstance(value, datetime) else to_iso(parse_iso(value))


class SchedulingService:
    def __init__(self, interviews: InterviewStore, *, clock: Clock = utc_now, sweep_grace_min: float = 15.0) -> None:
        self._interviews = interviews
        self._clock = clock
        self._grace = timedelta(minutes=sweep_grace_min)

    def schedule(
        self,
        *,
        candidate_id: str,
        scheduled_at: When,
        duration_min: int,
        modality: Modality = "chat",
        interview_id: Optional[str] = None,
    ) -> InterviewSession:
        session = self._interviews.create(
            candidate_id=candidate_id,
            scheduled_at=_iso(scheduled_at),
            duration_min=duration_min,
            modality=modality,
            interview_id=interview_id,
        )
        log_event("schedule", session.interview_id, status=session.status)
        return session

    def reschedule(self, interview_id: str, *, scheduled_at: When, duration_min: int) -> InterviewSession:
        self._require(interview_id)
        if not self._interviews.reschedule(interview_id, scheduled_at=_iso(scheduled_at), duration_min=duration_min):
            raise InvalidStateError("Only pending or rescheduled interviews can be rescheduled")
        log_event("schedule", interview_id, status="RESCHEDULED", action="reschedule")
        return self._require(interview_id)

    def cancel(self, interview_id: str, reason: Optional[str] = None) -> InterviewSession:
        self._require(interview_id)
        cancelled = self._interviews.cancel(
            interview_id,
            reason=reason or DEFAULT_CANCEL_REASON,
            cancelled_at=to_iso(self._clock()),
        )
        if not cancelled:
            raise InvalidStateError("Only pending or rescheduled interviews can be cancelled")
        log_event("schedule", interview_id, status="CANCELLED", action="cancel", reason=reason or DEFAULT_CANCEL_REASON)
        return self._require(interview_id)

    def sweep(self, now: Optional[datetime] = None) -> SweepResult:
        """Cancel sessions whose window has passed.

        Each cancel is conditional on the status read here, so a session that
        was started or ended in the meantime is left alone and not counted.
        """

        moment = now or self._clock()
        stamp = to_iso(moment)
        result = SweepResult()

        for session in self._interviews.list_by_status(STARTABLE):
            window_end = parse_iso(session.scheduled_at) + timedelta(minutes=session.duration_min)
            if window_end > moment:
                continue
            if self._interviews.cancel(session.interview_id, reason=NO_SHOW_REASON, cancelled_at=stamp):
                result.unattended += 1
                log_event("sweep", session.interview_id, status="CANCELLED", reason=NO_SHOW_REASON)

        for session in self._interviews.list_by_status(("ONGOING",)):
            began = parse_iso(session.started_at or session.scheduled_at)
            if began + timedelta(minutes=session.duration_min) + self._grace > moment:
                continue
            if self._interviews.cancel(
                session.interview_id,
                reason=ABANDONED_REASON,
                cancelled_at=stamp,
                from_statuses=("ONGOING",),
            ):
                result.abandoned += 1
                log_event("sweep", session.interview_id, status="CANCELLED", reason=ABANDONED_REASON)

        return result

    def _require(self, interview_id: str) -> InterviewSession:
        session = self._interviews.get(interview_id)
        if session is None:
            raise NotFoundError("Interview not found")
        return session


__all__ = [
    "ABANDONED_REASON",
    "DEFAULT_CANCEL_REASON",
    "NO_SHOW_REASON",
    "SchedulingService",
    "SweepResult",
]
