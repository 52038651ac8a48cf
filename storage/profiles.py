from __future__ import annotations  # Interview profile persistence, one row per interview

import json
from typing import Optional

from agents.types import Analytics, InterviewProfile
from storage.sqlite import SqliteStore


class ProfileStore(SqliteStore):
    def insert(self, profile: InterviewProfile) -> bool:  # A conflict on interview_id is a no-op success
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO interview_profiles (
                    interview_id, performance_score, recommended_roles, strengths, weaknesses, analytics, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(interview_id) DO NOTHING
                """,
                (
                    profile.interview_id,
                    profile.performance_score,
                    json.dumps(profile.recommended_roles),
                    json.dumps(profile.strengths),
                    json.dumps(profile.weaknesses),
                    profile.analytics.model_dump_json(),
                    profile.created_at,
                ),
            )
            return cursor.rowcount == 1

    def get(self, interview_id: str) -> Optional[InterviewProfile]:
        conn = self._connect()
        try:
            row = conn.execute(
                """
                SELECT interview_id, performance_score, recommended_roles, strengths, weaknesses, analytics, created_at
                FROM interview_profiles WHERE interview_id = ?
                """,
                (interview_id,),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return InterviewProfile(
            interview_id=row["interview_id"],
            performance_score=row["performance_score"],
            recommended_roles=json.loads(row["recommended_roles"]),
            strengths=json.loads(row["strengths"]),
            weaknesses=json.loads(row["weaknesses"]),
            analytics=Analytics.model_validate_json(row["analytics"]),
            created_at=row["created_at"],
        )

    def count_for(self, interview_id: str) -> int:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT COUNT(*) FROM interview_profiles WHERE interview_id = ?", (interview_id,)
            ).fetchone()
            return int(row[0])
        finally:
            conn.close()


__all__ = ["ProfileStore"]
