"""Users, bearer tokens and the ``edit`` capability check."""

from __future__ import annotations

import secrets
import sqlite3
from time import time
from typing import Optional

from rankbridge.cms.models import ROLES, ContentItem, User

_EDIT_ANY = {"administrator", "editor"}


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        login=row["login"],
        role=row["role"],
        token=row["token"],
        created_at=row["created_at"],
    )


def create_user(
    conn: sqlite3.Connection,
    login: str,
    role: str = "author",
    token: Optional[str] = None,
) -> User:
    """Insert a user with a fresh API token (unless one is given).

    Raises:
        ValueError: For an unknown role.
    """
    if role not in ROLES:
        raise ValueError(f"Unknown role {role!r}; expected one of {ROLES}")
    tok = token or secrets.token_urlsafe(32)
    with conn:
        cursor = conn.execute(
            "INSERT INTO users (login, role, token, created_at) VALUES (?, ?, ?, ?)",
            (login, role, tok, int(time())),
        )
    row = conn.execute("SELECT * FROM users WHERE id = ?", (cursor.lastrowid,)).fetchone()
    return _row_to_user(row)


def get_user_by_token(conn: sqlite3.Connection, token: str) -> Optional[User]:
    if not token:
        return None
    row = conn.execute("SELECT * FROM users WHERE token = ?", (token,)).fetchone()
    return _row_to_user(row) if row else None


def user_can_edit(user: Optional[User], item: Optional[ContentItem]) -> bool:
    """Administrators and editors edit anything; authors edit their own items."""
    if user is None or item is None:
        return False
    if user.role in _EDIT_ANY:
        return True
    return user.role == "author" and item.author_id == user.id
