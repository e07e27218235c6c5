"""SQLite state database: whole-document store plus check run history."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import aiosqlite

logger = logging.getLogger(__name__)

SCHEMA = """
    CREATE TABLE IF NOT EXISTS documents (
        name TEXT PRIMARY KEY,
        body TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS check_runs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        source TEXT NOT NULL,
        started_at TEXT NOT NULL,
        completed_at TEXT,
        status TEXT NOT NULL DEFAULT 'running',
        opened_count INTEGER DEFAULT 0,
        closed_count INTEGER DEFAULT 0,
        error TEXT
    );

    CREATE INDEX IF NOT EXISTS idx_runs_source ON check_runs(source);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def get_db(path: str) -> aiosqlite.Connection:
    db = await aiosqlite.connect(path)
    db.row_factory = aiosqlite.Row
    if path != ":memory:":
        await db.execute("PRAGMA journal_mode=WAL")
    return db


async def init_db(db: aiosqlite.Connection):
    """Create tables if they don't exist."""
    await db.executescript(SCHEMA)
    await db.commit()


async def read_document(db: aiosqlite.Connection, name: str) -> Optional[Any]:
    """Load a whole JSON document, or None when absent.

    A body that no longer parses is reported and treated as absent so one
    bad document cannot stall a check cycle.
    """
    cursor = await db.execute("SELECT body FROM documents WHERE name = ?", (name,))
    row = await cursor.fetchone()
    if row is None:
        return None

    try:
        return json.loads(row[0])
    except (TypeError, ValueError) as e:
        logger.warning("Document %s is unreadable, treating as empty: %s", name, e)
        return None


async def write_document(db: aiosqlite.Connection, name: str, body: Any):
    """Overwrite a whole JSON document."""
    await db.execute(
        """INSERT INTO documents (name, body, updated_at) VALUES (?, ?, ?)
           ON CONFLICT(name) DO UPDATE SET body=excluded.body, updated_at=excluded.updated_at""",
        (name, json.dumps(body), _now()),
    )
    await db.commit()


async def start_check_run(db: aiosqlite.Connection, source: str) -> int:
    cursor = await db.execute(
        "INSERT INTO check_runs (source, started_at, status) VALUES (?, ?, 'running')",
        (source, _now()),
    )
    await db.commit()
    return cursor.lastrowid


async def finish_check_run(
    db: aiosqlite.Connection,
    run_id: int,
    status: str,
    opened_count: int = 0,
    closed_count: int = 0,
    error: Optional[str] = None,
):
    await db.execute(
        """UPDATE check_runs SET completed_at=?, status=?, opened_count=?,
           closed_count=?, error=? WHERE id=?""",
        (_now(), status, opened_count, closed_count, error, run_id),
    )
    await db.commit()
