"""SQLite and Redis persistence for interviews."""
