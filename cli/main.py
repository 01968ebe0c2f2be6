"""rankbridge CLI: entry-point for all bridge operations.

Usage:
    python cli/main.py --help

Command groups:
    db        → content store setup
    post      → create / list content items, set meta
    user      → create users and API tokens
    render    → resolve rendered content for an item
    extract   → run main-content extraction on a file or URL
    recalc    → apply the recalculation filter to score inputs
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from rankbridge.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any working directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import json
from typing import Optional

import typer

from cli.commands.content import post_app, user_app
from rankbridge.cms import get_connection, init_db
from rankbridge.config import MODES, settings
from rankbridge.exceptions import InvalidContentIdentifier
from rankbridge.logging_setup import configure_logging
from rankbridge.seo.recalculate import merge_content
from rankbridge.service import build_service

app = typer.Typer(
    name="rankbridge",
    help="Breakdance → Rank Math content bridge CLI.",
    no_args_is_help=True,
)

app.add_typer(post_app, name="post")
app.add_typer(user_app, name="user")


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", help="Verbose diagnostic logging."),
) -> None:
    if debug:
        settings.debug = True
    configure_logging(settings)


# ---------------------------------------------------------------------------
# DB commands
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Content store operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Initialise the SQLite content store (create tables if they do not exist)."""
    conn = get_connection()
    init_db(conn)
    conn.close()
    typer.echo(f"[db init] Content store ready at {settings.db_path}")


# ---------------------------------------------------------------------------
# Rendering commands
# ---------------------------------------------------------------------------
@app.command("render")
def render(
    post_id: int = typer.Option(..., help="Content item id."),
    mode: Optional[str] = typer.Option(None, help="Override mode: breakdance | combine."),
    content: str = typer.Option("", help="Original analysed content to merge with."),
) -> None:
    """Resolve a content item and print what the analyzer would receive for *mode*."""
    mode = mode or settings.mode
    if mode not in MODES:
        typer.echo(f"[render] Unknown mode {mode!r}; expected one of {MODES}")
        raise typer.Exit(1)

    conn = get_connection()
    init_db(conn)
    try:
        service = build_service(conn, settings)
        rendered = service.new_resolver().resolve(post_id)
    except (InvalidContentIdentifier, ValueError) as exc:
        typer.echo(f"[render] {exc}")
        raise typer.Exit(1)
    finally:
        conn.close()

    if not rendered.content:
        typer.echo(f"[render] No content for post {post_id}.")
        return
    typer.echo(f"[render] Source : {rendered.source.value if rendered.source else '(none)'}")
    typer.echo(f"[render] Mode   : {mode}")
    typer.echo(f"[render] Length : {len(rendered.content)}")
    typer.echo("")
    typer.echo(merge_content(content, rendered.content, mode))


@app.command("extract")
def extract(
    file: Optional[Path] = typer.Option(None, help="Local HTML file.", exists=True, dir_okay=False),
    url: Optional[str] = typer.Option(None, help="URL to fetch."),
    extractor: Optional[str] = typer.Option(None, help="Strategy: auto | dom | regex."),
) -> None:
    """Extract main content from an HTML file or a fetched page."""
    from rankbridge.scraper import default_extractor, extract_main_content, fetch_rendered_page

    if (file is None) == (url is None):
        typer.echo("[extract] Pass exactly one of --file or --url.")
        raise typer.Exit(1)

    if file is not None:
        html = file.read_text(encoding="utf-8", errors="replace")
    else:
        typer.echo(f"[extract] Fetching {url!r} …")
        html = fetch_rendered_page(url)  # type: ignore[arg-type]
        if not html:
            typer.echo("[extract] Nothing fetched.")
            raise typer.Exit(1)

    typer.echo(extract_main_content(html, default_extractor(extractor)))


@app.command("recalc")
def recalc(
    post_id: int = typer.Option(..., help="Content item id."),
    content: str = typer.Option("", help="Original analysed content."),
) -> None:
    """Apply the recalculation filter and print the resulting score inputs."""
    conn = get_connection()
    init_db(conn)
    try:
        service = build_service(conn, settings)
        item = service.cms.get_item(post_id)
        values = service.recalculate({"content": content}, item)
    finally:
        conn.close()
    typer.echo(json.dumps(values, indent=2))


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
