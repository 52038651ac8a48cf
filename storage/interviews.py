from __future__ import annotations  # Interview session rows and their status transitions

from typing import Iterable, List, Literal, Optional, Sequence
from uuid import uuid4

from pydantic import BaseModel, Field

from agents.types import Turn
from storage.sqlite import SqliteStore
from storage.turns import insert_turns

Status = Literal["PENDING", "RESCHEDULED", "ONGOING", "COMPLETED", "CANCELLED"]
Modality = Literal["chat", "voice", "assistant"]

STARTABLE: tuple[Status, ...] = ("PENDING", "RESCHEDULED")

_COLUMNS = (
    "interview_id, candidate_id, scheduled_at, duration_min, status, modality, started_at, "
    "completion_min, attempted_at, cancelled_at, cancellation_reason"
)


class InterviewSession(BaseModel):  # Stored interview session
    interview_id: str
    candidate_id: str
    scheduled_at: str
    duration_min: int = Field(gt=0)
    status: Status
    modality: Modality = "chat"
    started_at: Optional[str] = None
    completion_min: Optional[float] = None
    attempted_at: Optional[str] = None
    cancelled_at: Optional[str] = None
    cancellation_reason: Optional[str] = None


def _row_to_session(row) -> InterviewSession:  # Convert a SQLite row into a session
    return InterviewSession(**{key: row[key] for key in row.keys()})


def _placeholders(values: Sequence[str]) -> str:
    return ", ".join("?" for _ in values)


class InterviewStore(SqliteStore):  # Every transition is one conditional UPDATE keyed on status
    def create(
        self,
        *,
        candidate_id: str,
        scheduled_at: str,
        duration_min: int,
        modality: Modality = "chat",
        interview_id: Optional[str] = None,
    ) -> InterviewSession:  # Seed a PENDING session
        session = InterviewSession(
            interview_id=interview_id or uuid4().hex,
            candidate_id=candidate_id,
            scheduled_at=scheduled_at,
            duration_min=duration_min,
            status="PENDING",
            modality=modality,
        )
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT INTO interviews (interview_id, candidate_id, scheduled_at, duration_min, status, modality)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    session.interview_id,
                    session.candidate_id,
                    session.scheduled_at,
                    session.duration_min,
                    session.status,
                    session.modality,
                ),
            )
            conn.commit()
        finally:
            conn.close()
        return session

    def get(self, interview_id: str) -> Optional[InterviewSession]:
        conn = self._connect()
        try:
            row = conn.execute(f"SELECT {_COLUMNS} FROM interviews WHERE interview_id = ?", (interview_id,)).fetchone()
            return _row_to_session(row) if row else None
        finally:
            conn.close()

    def list_by_status(self, statuses: Iterable[Status]) -> List[InterviewSession]:
        wanted = list(statuses)
        if not wanted:
            return []
        conn = self._connect()
        try:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM interviews WHERE status IN ({_placeholders(wanted)}) ORDER BY scheduled_at",
                wanted,
            ).fetchall()
            return [_row_to_session(row) for row in rows]
        finally:
            conn.close()

    def mark_started(self, interview_id: str, candidate_id: str, started_at: str) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                f"""
                UPDATE interviews SET status = 'ONGOING', started_at = ?
                WHERE interview_id = ? AND candidate_id = ? AND status IN ({_placeholders(STARTABLE)})
                """,
                (started_at, interview_id, candidate_id, *STARTABLE),
            )
            return cursor.rowcount == 1

    def complete(
        self,
        interview_id: str,
        candidate_id: str,
        *,
        completion_min: float,
        attempted_at: str,
        turns: Sequence[Turn] = (),
    ) -> bool:
        """Move ONGOING to COMPLETED and write ``turns`` in the same transaction.

        Returns ``False`` without writing anything when the session was not
        ONGOING at update time.
        """

        with self._transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE interviews SET status = 'COMPLETED', completion_min = ?, attempted_at = ?
                WHERE interview_id = ? AND candidate_id = ? AND status = 'ONGOING'
                """,
                (completion_min, attempted_at, interview_id, candidate_id),
            )
            if cursor.rowcount != 1:
                return False
            insert_turns(conn, interview_id, turns)
            return True

    def cancel(
        self,
        interview_id: str,
        *,
        reason: str,
        cancelled_at: str,
        from_statuses: Sequence[Status] = STARTABLE,
    ) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                f"""
                UPDATE interviews SET status = 'CANCELLED', cancelled_at = ?, cancellation_reason = ?
                WHERE interview_id = ? AND status IN ({_placeholders(from_statuses)})
                """,
                (cancelled_at, reason, interview_id, *from_statuses),
            )
            return cursor.rowcount == 1

    def reschedule(self, interview_id: str, *, scheduled_at: str, duration_min: int) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                f"""
                UPDATE interviews SET status = 'RESCHEDULED', scheduled_at = ?, duration_min = ?
                WHERE interview_id = ? AND status IN ({_placeholders(STARTABLE)})
                """,
                (scheduled_at, duration_min, interview_id, *STARTABLE),
            )
            return cursor.rowcount == 1


__all__ = ["InterviewSession", "InterviewStore", "Modality", "Status", "STARTABLE"]
