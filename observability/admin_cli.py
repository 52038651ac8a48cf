"""Lightweight CLI for the scheduling sweep and for inspecting interview tables."""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional, Sequence

from config.settings import settings
from services.scheduling import SchedulingService
from storage.decisions import DecisionLog
from storage.interviews import InterviewStore
from storage.sqlite import connect


def run_sweep(db_path: str) -> None:
    service = SchedulingService(InterviewStore(Path(db_path)), sweep_grace_min=settings.SWEEP_GRACE_MIN)
    result = service.sweep()
    print(f"sweep: unattended={result.unattended} abandoned={result.abandoned}")


def cancel(db_path: str, interview_id: str, reason: Optional[str]) -> None:
    session = SchedulingService(InterviewStore(Path(db_path))).cancel(interview_id, reason)
    print(f"{session.interview_id} -> {session.status} ({session.cancellation_reason})")


def tail_decisions(db_path: str, interview_id: str) -> None:
    for entry in DecisionLog(Path(db_path)).list_for(interview_id):
        print(f"[{entry.created_at}] {entry.action} utterance={entry.utterance!r} message={entry.message!r}")


def tail_turns(db_path: str, limit: int = 20) -> None:
    conn = connect(db_path)
    try:
        rows = conn.execute(
            """
            SELECT asked_at, interview_id, section, difficulty_level, correct, ai_feedback
            FROM questions
            ORDER BY asked_at DESC
            LIMIT ?
            """,
            (limit,),
        ).fetchall()
        for asked_at, interview_id, section, difficulty, correct, feedback in rows:
            verdict = "correct" if correct else "incorrect"
            print(f"[{asked_at}] {interview_id} {section or '-'} d{difficulty} {verdict}: {feedback}")
    finally:
        conn.close()


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--db", default=settings.DB_PATH, help="SQLite database path")
    parser.add_argument("--sweep", action="store_true", help="Cancel sessions whose window has passed")
    parser.add_argument("--cancel", metavar="INTERVIEW_ID", help="Cancel a pending or rescheduled interview")
    parser.add_argument("--reason", help="Cancellation reason used with --cancel")
    parser.add_argument("--decisions", metavar="INTERVIEW_ID", help="Show the decision log for an interview")
    parser.add_argument("--tail-turns", type=int, help="Show the latest graded turns")
    args = parser.parse_args(argv)

    if args.sweep:
        run_sweep(args.db)
    if args.cancel:
        cancel(args.db, args.cancel, args.reason)
    if args.decisions:
        tail_decisions(args.db, args.decisions)
    if args.tail_turns:
        tail_turns(args.db, args.tail_turns)


if __name__ == "__main__":
    main()
