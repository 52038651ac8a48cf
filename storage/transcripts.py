"""Raw assistant/user transcript records per interview.

Records are idempotent by id and read back ordered by timestamp, ties broken by
arrival order. Expiry is set once per session and never extended.
"""
from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Callable, List, Protocol, Union

import redis

from agents.types import TranscriptRecord
from storage.sqlite import SqliteStore

logger = logging.getLogger(__name__)


class TranscriptStore(Protocol):
    def append(self, session_key: str, record: TranscriptRecord) -> bool: ...

    def read_all(self, session_key: str) -> List[TranscriptRecord]: ...

    def set_expiry(self, session_key: str, seconds: int) -> bool: ...


class SqliteTranscriptStore(SqliteStore):
    """Transcript store on the interview database.

    Expired sessions read as empty; their rows are purged on the first read
    after expiry.
    """

    def __init__(self, path: Union[str, Path], *, clock: Callable[[], float] = time.time) -> None:
        super().__init__(path)
        self._clock = clock

    def append(self, session_key: str, record: TranscriptRecord) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO transcript_records (session_key, record_id, role, text, timestamp)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(session_key, record_id) DO NOTHING
                """,
                (session_key, record.id, record.role, record.text, record.timestamp),
            )
            return cursor.rowcount == 1

    def read_all(self, session_key: str) -> List[TranscriptRecord]:
        with self._transaction() as conn:
            expiry = conn.execute(
                "SELECT expires_at FROM transcript_expiry WHERE session_key = ?", (session_key,)
            ).fetchone()
            if expiry is not None and expiry["expires_at"] <= self._clock():
                conn.execute("DELETE FROM transcript_records WHERE session_key = ?", (session_key,))
                conn.execute("DELETE FROM transcript_expiry WHERE session_key = ?", (session_key,))
                logger.info("Purged expired transcript for %s", session_key)
                return []
            rows = conn.execute(
                """
                SELECT record_id, role, text, timestamp FROM transcript_records
                WHERE session_key = ? ORDER BY timestamp, seq
                """,
                (session_key,),
            ).fetchall()
        return [
            TranscriptRecord(id=row["record_id"], role=row["role"], text=row["text"], timestamp=row["timestamp"])
            for row in rows
        ]

    def set_expiry(self, session_key: str, seconds: int) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO transcript_expiry (session_key, expires_at) VALUES (?, ?)
                ON CONFLICT(session_key) DO NOTHING
                """,
                (session_key, self._clock() + seconds),
            )
            return cursor.rowcount == 1


class RedisTranscriptStore:
    """One Redis hash per session at ``interview:{id}:messages``, field = record id."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @staticmethod
    def key(session_key: str) -> str:
        return f"interview:{session_key}:messages"

    def append(self, session_key: str, record: TranscriptRecord) -> bool:
        payload = json.dumps({"role": record.role, "text": record.text, "timestamp": record.timestamp})
        return bool(self._client.hsetnx(self.key(session_key), record.id, payload))

    def read_all(self, session_key: str) -> List[TranscriptRecord]:
        raw = self._client.hgetall(self.key(session_key))
        records: List[TranscriptRecord] = []
        for field, value in raw.items():
            record_id = field.decode() if isinstance(field, bytes) else field
            data = json.loads(value)
            records.append(TranscriptRecord(id=record_id, **data))
        records.sort(key=lambda record: (record.timestamp, record.id))
        return records

    def set_expiry(self, session_key: str, seconds: int) -> bool:
        return bool(self._client.expire(self.key(session_key), seconds, nx=True))


__all__ = ["RedisTranscriptStore", "SqliteTranscriptStore", "TranscriptStore"]
