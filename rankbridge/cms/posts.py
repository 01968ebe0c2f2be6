"""CRUD operations for the ``posts`` and ``post_meta`` tables."""

from __future__ import annotations

import sqlite3
from time import time
from typing import Any, Optional

from rankbridge.cms.models import BUILDER_META_KEYS, ContentItem


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

_UPDATABLE = {"post_type", "status", "title", "slug", "body", "author_id"}


def _row_to_item(row: sqlite3.Row) -> ContentItem:
    return ContentItem(
        id=row["id"],
        post_type=row["post_type"],
        status=row["status"],
        title=row["title"],
        slug=row["slug"],
        body=row["body"],
        author_id=row["author_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------

def create_post(
    conn: sqlite3.Connection,
    title: str,
    body: str = "",
    post_type: str = "page",
    status: str = "draft",
    slug: Optional[str] = None,
    author_id: Optional[int] = None,
    meta: Optional[dict[str, str]] = None,
) -> ContentItem:
    """Insert a new content item and return it.

    Args:
        conn: Open DB connection.
        title: Display title.
        body: Raw stored body (markup or plain text).
        post_type: ``page``, ``post``, ``breakdance_template`` or any custom type.
        status: ``publish``, ``draft``, ``pending``, ``private`` …
        slug: URL slug; permalinks fall back to ``?p=<id>`` without one.
        author_id: Owning user id.
        meta: Initial ``post_meta`` entries.
    """
    now = int(time())
    with conn:
        cursor = conn.execute(
            """
            INSERT INTO posts (post_type, status, title, slug, body, author_id, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (post_type, status, title, slug, body, author_id, now, now),
        )
        post_id = int(cursor.lastrowid)

    for key, value in (meta or {}).items():
        set_post_meta(conn, post_id, key, value)

    return get_post(conn, post_id)  # type: ignore[return-value]


def get_post(conn: sqlite3.Connection, post_id: int) -> Optional[ContentItem]:
    """Fetch a single content item.  Returns ``None`` if not found."""
    row = conn.execute("SELECT * FROM posts WHERE id = ?", (post_id,)).fetchone()
    return _row_to_item(row) if row else None


def list_posts(
    conn: sqlite3.Connection,
    post_type: Optional[str] = None,
    status: Optional[str] = None,
) -> list[ContentItem]:
    """Return content items, optionally filtered by type and status."""
    sql = "SELECT * FROM posts"
    clauses: list[str] = []
    params: list[Any] = []
    if post_type is not None:
        clauses.append("post_type = ?")
        params.append(post_type)
    if status is not None:
        clauses.append("status = ?")
        params.append(status)
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    sql += " ORDER BY id"
    return [_row_to_item(r) for r in conn.execute(sql, params).fetchall()]


def update_post(conn: sqlite3.Connection, post_id: int, **kwargs: Any) -> ContentItem:
    """Update one or more columns on a content item.

    Raises:
        ValueError: If ``post_id`` does not exist or no valid fields are given.
    """
    if get_post(conn, post_id) is None:
        raise ValueError(f"Post not found: {post_id}")

    updates = {k: v for k, v in kwargs.items() if k in _UPDATABLE}
    if not updates:
        raise ValueError(f"No updatable fields in {sorted(kwargs)}")

    assignments = ", ".join(f"{col} = ?" for col in updates)
    with conn:
        conn.execute(
            f"UPDATE posts SET {assignments}, updated_at = ? WHERE id = ?",
            (*updates.values(), int(time()), post_id),
        )
    return get_post(conn, post_id)  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Meta
# ---------------------------------------------------------------------------

def get_post_meta(conn: sqlite3.Connection, post_id: int, key: str) -> str:
    """Return a single meta value, or ``""`` when absent."""
    row = conn.execute(
        "SELECT meta_value FROM post_meta WHERE post_id = ? AND meta_key = ?",
        (post_id, key),
    ).fetchone()
    return row["meta_value"] if row else ""


def set_post_meta(conn: sqlite3.Connection, post_id: int, key: str, value: str) -> None:
    """Insert or replace a meta value."""
    with conn:
        conn.execute(
            """
            INSERT INTO post_meta (post_id, meta_key, meta_value) VALUES (?, ?, ?)
            ON CONFLICT(post_id, meta_key) DO UPDATE SET meta_value = excluded.meta_value
            """,
            (post_id, key, value),
        )


def is_builder_post(conn: sqlite3.Connection, post_id: int) -> bool:
    """``True`` when the item carries page-builder render-tree data."""
    return any(get_post_meta(conn, post_id, key) for key in BUILDER_META_KEYS)


def builder_data(conn: sqlite3.Connection, post_id: int) -> str:
    """Return the first non-empty builder meta value, or ``""``."""
    for key in BUILDER_META_KEYS:
        value = get_post_meta(conn, post_id, key)
        if value:
            return value
    return ""
