"""Tests for the rankbridge CLI."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from cli.main import app
from rankbridge.cms import get_connection, init_db
from rankbridge.cms.posts import get_post, get_post_meta

runner = CliRunner()

TREE = {
    "root": {
        "id": 1,
        "children": [
            {
                "id": 2,
                "data": {
                    "type": "EssentialElements\\Heading",
                    "properties": {"content": {"content": {"text": "Solar guide", "tags": "h1"}}},
                },
                "children": [],
            }
        ],
    }
}


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Point the content store at a fresh temporary workspace."""
    monkeypatch.setattr("rankbridge.config.settings.workspace_dir", tmp_path)
    monkeypatch.setattr("rankbridge.config.settings.mode", "breakdance")
    monkeypatch.setattr("rankbridge.config.settings.builder_enabled", True)
    monkeypatch.setattr("rankbridge.config.settings.debug", False)
    return tmp_path


@pytest.fixture
def tree_file(tmp_path):
    path = tmp_path / "tree.json"
    path.write_text(json.dumps({"tree_json_string": json.dumps(TREE)}), encoding="utf-8")
    return path


def _create_builder_post(tree_file, status="publish"):
    result = runner.invoke(
        app, ["post", "create", "--title", "Guide", "--status", status, "--tree", str(tree_file)]
    )
    assert result.exit_code == 0, result.stdout
    return 1


# ---------------------------------------------------------------------------
# db / user / post
# ---------------------------------------------------------------------------

def test_db_init(workspace):
    result = runner.invoke(app, ["db", "init"])
    assert result.exit_code == 0
    assert "Content store ready" in result.stdout
    assert (workspace / "site.db").exists()


def test_user_create_prints_token(workspace):
    result = runner.invoke(app, ["user", "create", "--login", "ann", "--role", "editor"])
    assert result.exit_code == 0
    assert "Token:" in result.stdout


def test_user_create_rejects_unknown_role(workspace):
    result = runner.invoke(app, ["user", "create", "--login", "ann", "--role", "overlord"])
    assert result.exit_code == 1


def test_post_create_and_list(workspace):
    assert runner.invoke(app, ["post", "create", "--title", "About", "--status", "publish"]).exit_code == 0
    assert runner.invoke(app, ["post", "create", "--title", "Hello", "--type", "post"]).exit_code == 0

    result = runner.invoke(app, ["post", "list"])
    assert result.exit_code == 0
    assert "'About'" in result.stdout
    assert "'Hello'" in result.stdout

    result = runner.invoke(app, ["post", "list", "--type", "post"])
    assert "'About'" not in result.stdout


def test_post_list_empty(workspace):
    result = runner.invoke(app, ["post", "list"])
    assert result.exit_code == 0
    assert "No posts found" in result.stdout


def test_post_create_with_tree_stores_builder_data(workspace, tree_file):
    post_id = _create_builder_post(tree_file)
    conn = get_connection()
    assert "tree_json_string" in get_post_meta(conn, post_id, "_breakdance_data")
    conn.close()


def test_post_create_rejects_invalid_tree(workspace, tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{nope", encoding="utf-8")
    result = runner.invoke(app, ["post", "create", "--title", "x", "--tree", str(bad)])
    assert result.exit_code == 1
    conn = get_connection()
    init_db(conn)
    assert get_post(conn, 1) is None
    conn.close()


def test_post_meta(workspace):
    runner.invoke(app, ["post", "create", "--title", "x"])
    result = runner.invoke(app, ["post", "meta", "--post-id", "1", "--key", "k", "--value", "v"])
    assert result.exit_code == 0
    conn = get_connection()
    assert get_post_meta(conn, 1, "k") == "v"
    conn.close()


def test_post_meta_unknown_post(workspace):
    result = runner.invoke(app, ["post", "meta", "--post-id", "9", "--key", "k", "--value", "v"])
    assert result.exit_code == 1
    assert "not found" in result.stdout


# ---------------------------------------------------------------------------
# render / extract / recalc
# ---------------------------------------------------------------------------

def test_render_builder_post(workspace, tree_file):
    post_id = _create_builder_post(tree_file)
    result = runner.invoke(app, ["render", "--post-id", str(post_id)])
    assert result.exit_code == 0
    assert "internal_render" in result.stdout
    assert "Solar guide" in result.stdout


def test_render_combine_mode_prepends_original(workspace, tree_file):
    post_id = _create_builder_post(tree_file)
    result = runner.invoke(
        app, ["render", "--post-id", str(post_id), "--mode", "combine", "--content", "Intro text"]
    )
    assert result.exit_code == 0
    assert "Mode   : combine" in result.stdout
    assert "Intro text\n\n" in result.stdout
    assert result.stdout.index("Intro text") < result.stdout.index("Solar guide")


def test_render_breakdance_mode_replaces_original(workspace, tree_file):
    post_id = _create_builder_post(tree_file)
    result = runner.invoke(
        app, ["render", "--post-id", str(post_id), "--mode", "breakdance", "--content", "Intro text"]
    )
    assert result.exit_code == 0
    assert "Intro text" not in result.stdout
    assert "Solar guide" in result.stdout


def test_render_rejects_unknown_mode(workspace):
    result = runner.invoke(app, ["render", "--post-id", "1", "--mode", "sideways"])
    assert result.exit_code == 1
    assert "Unknown mode" in result.stdout


def test_render_unknown_post(workspace):
    result = runner.invoke(app, ["render", "--post-id", "77"])
    assert result.exit_code == 0
    assert "No content for post 77" in result.stdout


def test_render_invalid_post_id(workspace):
    result = runner.invoke(app, ["render", "--post-id", "0"])
    assert result.exit_code == 1


def test_extract_file(workspace, tmp_path):
    page = tmp_path / "page.html"
    page.write_text(
        "<html><body><header>Site</header><main><p>Real text</p></main>"
        "<footer>Bye</footer></body></html>",
        encoding="utf-8",
    )
    result = runner.invoke(app, ["extract", "--file", str(page), "--extractor", "dom"])
    assert result.exit_code == 0
    assert "Real text" in result.stdout
    assert "Bye" not in result.stdout


def test_extract_requires_exactly_one_source(workspace):
    assert runner.invoke(app, ["extract"]).exit_code == 1


def test_recalc_published_builder_post(workspace, tree_file):
    post_id = _create_builder_post(tree_file)
    result = runner.invoke(app, ["recalc", "--post-id", str(post_id), "--content", "old"])
    assert result.exit_code == 0
    values = json.loads(result.stdout)
    assert "Solar guide" in values["content"]
    assert "old" not in values["content"]


def test_recalc_draft_untouched(workspace, tree_file):
    post_id = _create_builder_post(tree_file, status="draft")
    result = runner.invoke(app, ["recalc", "--post-id", str(post_id), "--content", "old"])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"content": "old"}
