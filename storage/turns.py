"""Graded question/answer turns, stored in the ``questions`` table.

Rows are append-only. ``(interview_id, turn_id)`` is the idempotency key:
re-inserting an existing pair is a no-op that reports ``False``.
"""
from __future__ import annotations

import sqlite3
from typing import Iterable, List, Optional

from agents.types import Turn
from storage.sqlite import SqliteStore

_COLUMNS = "turn_id, interview_id, content, section, difficulty_level, candidate_answer, correct, ai_feedback, asked_at"

# Fenced on the session status inside the INSERT so a turn can never land after end commits.
_FENCED_INSERT = f"""
INSERT INTO questions ({_COLUMNS})
SELECT ?, ?, ?, ?, ?, ?, ?, ?, ?
WHERE EXISTS (SELECT 1 FROM interviews WHERE interview_id = ? AND status = 'ONGOING')
ON CONFLICT(interview_id, turn_id) DO NOTHING
"""

_PLAIN_INSERT = f"""
INSERT INTO questions ({_COLUMNS})
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(interview_id, turn_id) DO NOTHING
"""


def _params(interview_id: str, turn: Turn) -> tuple:
    return (
        turn.turn_id,
        interview_id,
        turn.content,
        turn.section,
        turn.difficulty_level,
        turn.candidate_answer,
        1 if turn.correct else 0,
        turn.ai_feedback,
        turn.asked_at,
    )


def insert_turns(conn: sqlite3.Connection, interview_id: str, turns: Iterable[Turn]) -> int:
    """Bulk insert inside a caller-owned transaction; returns rows written."""

    written = 0
    for turn in turns:
        written += conn.execute(_PLAIN_INSERT, _params(interview_id, turn)).rowcount
    return written


def _row_to_turn(row: sqlite3.Row) -> Turn:
    return Turn(
        turn_id=row["turn_id"],
        content=row["content"],
        section=row["section"],
        difficulty_level=row["difficulty_level"],
        candidate_answer=row["candidate_answer"],
        correct=bool(row["correct"]),
        ai_feedback=row["ai_feedback"],
        asked_at=row["asked_at"],
    )


class TurnStore(SqliteStore):
    def insert(self, interview_id: str, turn: Turn) -> bool:
        """Insert one turn while the session is ONGOING.

        Returns ``False`` for a duplicate ``turn_id`` or a session that is no
        longer ONGOING; callers tell the two apart through the session row.
        """

        with self._transaction() as conn:
            cursor = conn.execute(_FENCED_INSERT, _params(interview_id, turn) + (interview_id,))
            return cursor.rowcount == 1

    def get(self, interview_id: str, turn_id: str) -> Optional[Turn]:
        conn = self._connect()
        try:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM questions WHERE interview_id = ? AND turn_id = ?",
                (interview_id, turn_id),
            ).fetchone()
            return _row_to_turn(row) if row else None
        finally:
            conn.close()

    def list_for(self, interview_id: str) -> List[Turn]:
        conn = self._connect()
        try:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM questions WHERE interview_id = ? ORDER BY asked_at, rowid",
                (interview_id,),
            ).fetchall()
            return [_row_to_turn(row) for row in rows]
        finally:
            conn.close()

    def count_for(self, interview_id: str) -> int:
        conn = self._connect()
        try:
            row = conn.execute("SELECT COUNT(*) FROM questions WHERE interview_id = ?", (interview_id,)).fetchone()
            return int(row[0])
        finally:
            conn.close()


__all__ = ["TurnStore", "insert_turns"]
