from __future__ import annotations  # Append-only log of classifier decisions

from typing import List, Optional

from pydantic import BaseModel

from agents.types import Action, Decision
from storage.sqlite import SqliteStore


class DecisionEntry(BaseModel):  # One logged decision
    interview_id: str
    action: Action
    question: str
    utterance: str
    message: Optional[str] = None
    created_at: str


class DecisionLog(SqliteStore):
    def append(self, interview_id: str, decision: Decision, *, question: str, utterance: str, created_at: str) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO decisions (interview_id, action, question, utterance, message, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (interview_id, decision.action, question, utterance, decision.message, created_at),
            )

    def latest(self, interview_id: str) -> Optional[DecisionEntry]:
        conn = self._connect()
        try:
            row = conn.execute(
                """
                SELECT interview_id, action, question, utterance, message, created_at
                FROM decisions WHERE interview_id = ? ORDER BY id DESC LIMIT 1
                """,
                (interview_id,),
            ).fetchone()
            return DecisionEntry(**dict(row)) if row else None
        finally:
            conn.close()

    def pending_confirm(self, interview_id: str) -> bool:  # True while the latest decision asked to confirm a skip
        entry = self.latest(interview_id)
        return entry is not None and entry.action == "confirm"

    def list_for(self, interview_id: str) -> List[DecisionEntry]:
        conn = self._connect()
        try:
            rows = conn.execute(
                """
                SELECT interview_id, action, question, utterance, message, created_at
                FROM decisions WHERE interview_id = ? ORDER BY id
                """,
                (interview_id,),
            ).fetchall()
            return [DecisionEntry(**dict(row)) for row in rows]
        finally:
            conn.close()


__all__ = ["DecisionEntry", "DecisionLog"]
