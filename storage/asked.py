from __future__ import annotations  # Log of questions the engine generated, in every modality

from typing import List, Optional

from pydantic import BaseModel

from agents.types import QuestionOut, Section
from storage.sqlite import SqliteStore

# Same ONGOING fence as turn inserts.
_FENCED_INSERT = """
INSERT INTO asked_questions (interview_id, question, section, difficulty_level, asked_at)
SELECT ?, ?, ?, ?, ?
WHERE EXISTS (SELECT 1 FROM interviews WHERE interview_id = ? AND status = 'ONGOING')
"""


class AskedQuestion(BaseModel):  # One generated question with the section and level it was asked at
    interview_id: str
    question: str
    section: Optional[Section] = None
    difficulty_level: Optional[int] = None
    asked_at: str


class AskedQuestionLog(SqliteStore):
    def append(self, interview_id: str, out: QuestionOut, *, asked_at: str) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                _FENCED_INSERT,
                (interview_id, out.question, out.section, out.difficulty_level, asked_at, interview_id),
            )
            return cursor.rowcount == 1

    def list_for(self, interview_id: str) -> List[AskedQuestion]:
        conn = self._connect()
        try:
            rows = conn.execute(
                """
                SELECT interview_id, question, section, difficulty_level, asked_at
                FROM asked_questions WHERE interview_id = ? ORDER BY id
                """,
                (interview_id,),
            ).fetchall()
            return [AskedQuestion(**dict(row)) for row in rows]
        finally:
            conn.close()


__all__ = ["AskedQuestion", "AskedQuestionLog"]
