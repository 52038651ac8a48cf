"""SQLite schema migrations."""
from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Iterable, Union

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS candidates (
  candidate_id TEXT PRIMARY KEY,
  full_name TEXT NOT NULL,
  resume_profile TEXT NOT NULL,
  created_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS interviews (
  interview_id TEXT PRIMARY KEY,
  candidate_id TEXT NOT NULL,
  scheduled_at TEXT NOT NULL,
  duration_min INTEGER NOT NULL CHECK (duration_min > 0),
  status TEXT NOT NULL CHECK (status IN ('PENDING', 'RESCHEDULED', 'ONGOING', 'COMPLETED', 'CANCELLED')),
  modality TEXT NOT NULL DEFAULT 'chat' CHECK (modality IN ('chat', 'voice', 'assistant')),
  started_at TEXT,
  completion_min REAL,
  attempted_at TEXT,
  cancelled_at TEXT,
  cancellation_reason TEXT
);
""",
    """
CREATE INDEX IF NOT EXISTS idx_interviews_status ON interviews (status);
""",
    """
CREATE TABLE IF NOT EXISTS questions (
  turn_id TEXT NOT NULL,
  interview_id TEXT NOT NULL,
  content TEXT NOT NULL,
  section TEXT CHECK (section IS NULL OR section IN ('Skills', 'Work Experience', 'Personality', 'Introduction')),
  difficulty_level INTEGER NOT NULL CHECK (difficulty_level BETWEEN 1 AND 5),
  candidate_answer TEXT NOT NULL,
  correct INTEGER NOT NULL,
  ai_feedback TEXT NOT NULL,
  asked_at TEXT NOT NULL,
  PRIMARY KEY (interview_id, turn_id),
  FOREIGN KEY(interview_id) REFERENCES interviews(interview_id)
);
""",
    """
CREATE INDEX IF NOT EXISTS idx_questions_interview ON questions (interview_id);
""",
    """
CREATE TABLE IF NOT EXISTS asked_questions (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  interview_id TEXT NOT NULL,
  question TEXT NOT NULL,
  section TEXT CHECK (section IS NULL OR section IN ('Skills', 'Work Experience', 'Personality', 'Introduction')),
  difficulty_level INTEGER CHECK (difficulty_level IS NULL OR difficulty_level BETWEEN 1 AND 5),
  asked_at TEXT NOT NULL,
  FOREIGN KEY(interview_id) REFERENCES interviews(interview_id)
);
""",
    """
CREATE INDEX IF NOT EXISTS idx_asked_questions_interview ON asked_questions (interview_id);
""",
    """
CREATE TABLE IF NOT EXISTS decisions (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  interview_id TEXT NOT NULL,
  action TEXT NOT NULL,
  question TEXT NOT NULL,
  utterance TEXT NOT NULL,
  message TEXT,
  created_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS interview_profiles (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  interview_id TEXT NOT NULL UNIQUE,
  performance_score REAL NOT NULL CHECK (performance_score BETWEEN 0 AND 100),
  recommended_roles TEXT NOT NULL,
  strengths TEXT NOT NULL,
  weaknesses TEXT NOT NULL,
  analytics TEXT NOT NULL,
  created_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS transcript_records (
  seq INTEGER PRIMARY KEY AUTOINCREMENT,
  session_key TEXT NOT NULL,
  record_id TEXT NOT NULL,
  role TEXT NOT NULL,
  text TEXT NOT NULL,
  timestamp INTEGER NOT NULL,
  UNIQUE (session_key, record_id)
);
""",
    """
CREATE TABLE IF NOT EXISTS transcript_expiry (
  session_key TEXT PRIMARY KEY,
  expires_at REAL NOT NULL
);
""",
]


def migrate(db_path: Union[str, Path] = "data/interview.db") -> None:
    """Apply schema migrations to the SQLite database."""

    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    try:
        cur = conn.cursor()
        for stmt in SCHEMA:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


if __name__ == "__main__":
    from config.settings import settings

    migrate(settings.DB_PATH)
