from __future__ import annotations  # Candidate storage helpers

from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel

from agents.types import ResumeProfile
from storage.sqlite import SqliteStore


class CandidateRecord(BaseModel):  # Stored candidate entry
    candidate_id: str
    full_name: str
    resume_profile: ResumeProfile
    created_at: str


def _row_to_record(row) -> CandidateRecord:  # Convert a SQLite row into a record
    return CandidateRecord(
        candidate_id=row["candidate_id"],
        full_name=row["full_name"],
        resume_profile=ResumeProfile.model_validate_json(row["resume_profile"]),
        created_at=row["created_at"],
    )


class CandidateStore(SqliteStore):  # SQLite-backed candidate storage
    def get(self, candidate_id: str) -> Optional[CandidateRecord]:  # Fetch one candidate
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT candidate_id, full_name, resume_profile, created_at FROM candidates WHERE candidate_id = ?",
                (candidate_id,),
            ).fetchone()
            return _row_to_record(row) if row else None
        finally:
            conn.close()

    def list_candidates(self) -> List[CandidateRecord]:  # List candidates ordered by recency
        conn = self._connect()
        try:
            rows = conn.execute(
                """
                SELECT candidate_id, full_name, resume_profile, created_at
                FROM candidates
                ORDER BY datetime(created_at) DESC, candidate_id DESC
                """
            ).fetchall()
            return [_row_to_record(row) for row in rows]
        finally:
            conn.close()

    def create_candidate(
        self,
        *,
        full_name: str,
        resume_profile: ResumeProfile,
        candidate_id: Optional[str] = None,
    ) -> CandidateRecord:  # Persist a new candidate
        candidate_id = candidate_id or uuid4().hex
        now = datetime.now(timezone.utc).isoformat(timespec="seconds")
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT INTO candidates (candidate_id, full_name, resume_profile, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (candidate_id, full_name, resume_profile.model_dump_json(), now),
            )
            conn.commit()
            return CandidateRecord(
                candidate_id=candidate_id,
                full_name=full_name,
                resume_profile=resume_profile,
                created_at=now,
            )
        finally:
            conn.close()


__all__ = ["CandidateRecord", "CandidateStore"]
