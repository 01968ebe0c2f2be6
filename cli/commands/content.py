"""'post' and 'user' command groups: manage the local content store."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from rankbridge.cms import get_connection, init_db
from rankbridge.cms.models import BUILDER_META_KEYS
from rankbridge.cms.posts import create_post, get_post, list_posts, set_post_meta
from rankbridge.cms.users import create_user

post_app = typer.Typer(help="Content items.", no_args_is_help=True)
user_app = typer.Typer(help="Users and API tokens.", no_args_is_help=True)


@post_app.command("create")
def post_create(
    title: str = typer.Option(..., help="Item title."),
    body: str = typer.Option("", help="Raw stored body."),
    post_type: str = typer.Option("page", "--type", help="Post type (page, post, breakdance_template …)."),
    status: str = typer.Option("draft", help="Status: publish | draft | pending | private."),
    slug: Optional[str] = typer.Option(None, help="URL slug."),
    author_id: Optional[int] = typer.Option(None, help="Owning user id."),
    tree: Optional[Path] = typer.Option(
        None, help="JSON file holding a page-builder render tree.", exists=True, dir_okay=False
    ),
) -> None:
    """Create a content item, optionally builder-authored."""
    meta: dict[str, str] = {}
    if tree is not None:
        raw = tree.read_text(encoding="utf-8")
        try:
            json.loads(raw)
        except json.JSONDecodeError as exc:
            typer.echo(f"[post create] {tree} is not valid JSON: {exc}")
            raise typer.Exit(1)
        meta[BUILDER_META_KEYS[0]] = raw

    conn = get_connection()
    init_db(conn)
    try:
        item = create_post(
            conn,
            title=title,
            body=body,
            post_type=post_type,
            status=status,
            slug=slug,
            author_id=author_id,
            meta=meta,
        )
    finally:
        conn.close()
    typer.echo(f"[post create] Created post {item.id}  [{item.post_type}/{item.status}]  {item.title!r}")


@post_app.command("list")
def post_list(
    post_type: Optional[str] = typer.Option(None, "--type", help="Filter by post type."),
    status: Optional[str] = typer.Option(None, help="Filter by status."),
) -> None:
    """List content items."""
    conn = get_connection()
    init_db(conn)
    try:
        items = list_posts(conn, post_type=post_type, status=status)
    finally:
        conn.close()
    if not items:
        typer.echo("[post list] No posts found.")
        return
    for item in items:
        typer.echo(f"  {item.id}  [{item.post_type}/{item.status}]  {item.title!r}")


@post_app.command("meta")
def post_meta(
    post_id: int = typer.Option(..., help="Content item id."),
    key: str = typer.Option(..., help="Meta key."),
    value: str = typer.Option(..., help="Meta value."),
) -> None:
    """Set a meta value on a content item."""
    conn = get_connection()
    init_db(conn)
    try:
        if get_post(conn, post_id) is None:
            typer.echo(f"[post meta] Post {post_id} not found.")
            raise typer.Exit(1)
        set_post_meta(conn, post_id, key, value)
    finally:
        conn.close()
    typer.echo(f"[post meta] Set {key!r} on post {post_id}.")


@user_app.command("create")
def user_create(
    login: str = typer.Option(..., help="Login name."),
    role: str = typer.Option("author", help="administrator | editor | author | subscriber."),
) -> None:
    """Create a user and print its API token."""
    conn = get_connection()
    init_db(conn)
    try:
        user = create_user(conn, login=login, role=role)
    except ValueError as exc:
        typer.echo(f"[user create] {exc}")
        raise typer.Exit(1)
    finally:
        conn.close()
    typer.echo(f"[user create] Created user {user.id}  {user.login!r}  role={user.role}")
    typer.echo(f"[user create] Token: {user.token}")
