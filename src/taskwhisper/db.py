from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

DB_DIR = Path.home() / ".taskwhisper"
DB_PATH = DB_DIR / "taskwhisper.db"

# Timestamps are stored as fixed-width UTC ISO strings so that text comparison
# orders them chronologically.
SCHEMA = """\
CREATE TABLE IF NOT EXISTS reminders (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL,
    phone_number TEXT,
    transcript TEXT NOT NULL DEFAULT '',
    tasks TEXT NOT NULL DEFAULT '[]',
    email_draft TEXT NOT NULL DEFAULT '',
    scheduled_for TEXT NOT NULL,
    notification_methods TEXT NOT NULL DEFAULT '["email"]',
    sent INTEGER NOT NULL DEFAULT 0,
    completed INTEGER NOT NULL DEFAULT 0,
    last_followup_sent TEXT,
    followup_count INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_reminders_email ON reminders (email, scheduled_for);
CREATE INDEX IF NOT EXISTS idx_reminders_due ON reminders (sent, scheduled_for);
"""


def _connect(db_path: Path | None = None) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path or DB_PATH))
    conn.execute("PRAGMA journal_mode=WAL")
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: Path | None = None) -> None:
    target = db_path or DB_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    conn = _connect(target)
    conn.executescript(SCHEMA)
    conn.close()


@contextmanager
def get_db(db_path: Path | None = None) -> Generator[sqlite3.Connection, None, None]:
    conn = _connect(db_path)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
