"""SQLite content store: connections, schema setup and migrations.

Usage::

    from rankbridge.cms.store import get_connection, init_db

    conn = get_connection()
    init_db(conn)
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from time import time
from typing import Optional

import structlog

from rankbridge.config import settings

logger = structlog.get_logger(__name__)

# (version, DDL) pairs applied in order on top of schema.sql.
SCHEMA_MIGRATIONS: list[tuple[int, str]] = [
    (1, "CREATE INDEX IF NOT EXISTS idx_posts_slug ON posts(slug)"),
    (2, "CREATE INDEX IF NOT EXISTS idx_post_meta_key ON post_meta(meta_key)"),
]

_PRAGMAS = ("foreign_keys = ON", "journal_mode = WAL", "busy_timeout = 5000")


def get_connection(db_path: Optional[Path] = None) -> sqlite3.Connection:
    """Open the content store at *db_path* (``settings.db_path`` by default).

    ``":memory:"`` gives a throwaway store and skips creating the workspace.
    Rows come back as :class:`sqlite3.Row`.
    """
    path = str(db_path or settings.db_path)
    if path != ":memory:":
        settings.ensure_workspace()

    # Sync API endpoints run in a thread pool, so the connection crosses threads.
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    for pragma in _PRAGMAS:
        conn.execute(f"PRAGMA {pragma}")
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    """Create the content tables if missing, then apply pending migrations.

    Safe to call on every start-up.
    """
    conn.executescript(settings.schema_path.read_text(encoding="utf-8"))
    migrate(conn)


def current_version(conn: sqlite3.Connection) -> int:
    """Highest applied migration, ``0`` for a store that has none."""
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] or 0


def migrate(conn: sqlite3.Connection) -> int:
    """Apply migrations newer than the recorded version; return the new version."""
    applied = current_version(conn)
    for version, sql in SCHEMA_MIGRATIONS:
        if version <= applied:
            continue
        with conn:
            conn.execute(sql)
            conn.execute(
                "INSERT INTO schema_version(version, applied_at) VALUES (?, ?)",
                (version, int(time())),
            )
        logger.debug("Content store migrated", version=version)
        applied = version
    return applied
