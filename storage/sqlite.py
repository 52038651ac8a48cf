"""SQLite helpers for the persistence layer."""
from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

from storage.migrate import migrate

PathLike = Union[str, Path]
BUSY_TIMEOUT_S = 10.0


def connect(path: PathLike) -> sqlite3.Connection:
    """Open a connection with row access by name and a busy timeout."""

    db_path = Path(path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, timeout=BUSY_TIMEOUT_S)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def transaction(path: PathLike) -> Iterator[sqlite3.Connection]:
    """Yield a connection whose writes commit together or roll back together."""

    conn = connect(path)
    try:
        yield conn
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()


class SqliteStore:  # Base for stores that own one database file
    def __init__(self, path: PathLike) -> None:
        self._path = Path(path)
        migrate(self._path)

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        return connect(self._path)

    def _transaction(self):
        return transaction(self._path)


__all__ = ["SqliteStore", "connect", "transaction", "BUSY_TIMEOUT_S"]
