"""Renderer for the page builder's stored JSON render tree.

The builder stores each document under the ``_breakdance_data`` meta key as
``{"tree_json_string": "<json>"}`` (older items hold the tree object
directly).  A tree is nested nodes::

    {"id": 7,
     "data": {"type": "EssentialElements\\Heading",
              "properties": {"content": {"content": {"text": "Hi", "tags": "h2"}}}},
     "children": [...]}

Only the element types that carry analysable content are rendered
specifically; anything else becomes a ``<div>`` around its children.
"""

from __future__ import annotations

import json
import re
from html import escape
from typing import Any, Callable

from rankbridge.builder.base import BuilderRenderer
from rankbridge.cms.site import SqliteCms
from rankbridge.exceptions import BuilderRenderError
from rankbridge.render.models import RequestContext

_HEADING_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6"}
_CONTAINER_TAGS = {
    "Section": "section",
    "Div": "div",
    "Container": "div",
    "Columns": "div",
    "Column": "div",
}


def _slug(element_type: str) -> str:
    """``EssentialElements\\RichText`` → ``rich-text``."""
    short = element_type.rsplit("\\", 1)[-1]
    return re.sub(r"(?<!^)(?=[A-Z])", "-", short).lower()


def _data(node: dict[str, Any]) -> dict[str, Any]:
    data = node.get("data")
    return data if isinstance(data, dict) else {}


def _content(node: dict[str, Any]) -> dict[str, Any]:
    """The ``properties.content.content`` block of a node, or ``{}``."""
    props = _data(node).get("properties") or {}
    block = props.get("content") if isinstance(props, dict) else None
    inner = block.get("content") if isinstance(block, dict) else None
    return inner if isinstance(inner, dict) else {}


def decode_tree(raw: str) -> dict[str, Any]:
    """Decode stored builder data into the root node.

    Raises:
        BuilderRenderError: If the data is not a JSON tree with a root node.
    """
    try:
        data = json.loads(raw)
        if isinstance(data, dict) and isinstance(data.get("tree_json_string"), str):
            data = json.loads(data["tree_json_string"])
    except json.JSONDecodeError as exc:
        raise BuilderRenderError(f"Builder data is not valid JSON: {exc}") from exc

    root = data.get("root") if isinstance(data, dict) else None
    if not isinstance(root, dict):
        raise BuilderRenderError("Builder data has no root node")
    return root


class TreeRenderer(BuilderRenderer):
    """Renders stored builder trees to HTML wrapped in ``div.breakdance``."""

    def __init__(self, cms: SqliteCms) -> None:
        self.cms = cms
        self._elements: dict[str, Callable[[dict[str, Any], str, RequestContext], str]] = {
            "Heading": self._heading,
            "Text": self._text,
            "RichText": self._rich_text,
            "Button": self._button,
            "Image": self._image,
            "PostTitle": self._post_title,
            "PostContent": self._post_content,
        }

    def render(self, post_id: int, context: RequestContext) -> str:
        raw = self.cms.builder_data(post_id)
        if not raw:
            return ""
        root = decode_tree(raw)
        inner = self._children(root, post_id, context)
        return f'<div class="breakdance">{inner}</div>'

    # ------------------------------------------------------------------
    # Tree walk
    # ------------------------------------------------------------------

    def _children(self, node: dict[str, Any], post_id: int, context: RequestContext) -> str:
        children = node.get("children") or []
        if not isinstance(children, list):
            raise BuilderRenderError(f"Node {node.get('id')!r} has malformed children")
        return "".join(self._node(child, post_id, context) for child in children)

    def _node(self, node: Any, post_id: int, context: RequestContext) -> str:
        if not isinstance(node, dict):
            raise BuilderRenderError(f"Tree node is not an object: {node!r:.60}")
        element_type = str(_data(node).get("type", ""))
        short = element_type.rsplit("\\", 1)[-1]
        css = f"bde-{_slug(element_type)} bde-{_slug(element_type)}-{post_id}-{node.get('id', 0)}"

        handler = self._elements.get(short)
        if handler is not None:
            return handler(node, css, context)

        tag = _CONTAINER_TAGS.get(short, "div")
        return f'<{tag} class="{css}">{self._children(node, post_id, context)}</{tag}>'

    # ------------------------------------------------------------------
    # Elements
    # ------------------------------------------------------------------

    def _heading(self, node: dict[str, Any], css: str, context: RequestContext) -> str:
        content = _content(node)
        tag = str(content.get("tags") or "h2").lower()
        if tag not in _HEADING_TAGS:
            tag = "h2"
        return f'<{tag} class="{css}">{escape(str(content.get("text", "")))}</{tag}>'

    def _text(self, node: dict[str, Any], css: str, context: RequestContext) -> str:
        return f'<p class="{css}">{escape(str(_content(node).get("text", "")))}</p>'

    def _rich_text(self, node: dict[str, Any], css: str, context: RequestContext) -> str:
        # Rich text is stored as markup already.
        return f'<div class="{css}">{_content(node).get("text", "")}</div>'

    def _button(self, node: dict[str, Any], css: str, context: RequestContext) -> str:
        content = _content(node)
        link = content.get("link") if isinstance(content.get("link"), dict) else {}
        href = escape(str(link.get("url", "#")), quote=True)
        return f'<a class="{css}" href="{href}">{escape(str(content.get("text", "")))}</a>'

    def _image(self, node: dict[str, Any], css: str, context: RequestContext) -> str:
        image = _content(node).get("image")
        if not isinstance(image, dict) or not image.get("url"):
            return ""
        src = escape(str(image["url"]), quote=True)
        alt = escape(str(image.get("alt", "")), quote=True)
        return f'<img class="{css}" src="{src}" alt="{alt}">'

    def _post_title(self, node: dict[str, Any], css: str, context: RequestContext) -> str:
        return f'<h1 class="{css}">{escape(context.item.title)}</h1>'

    def _post_content(self, node: dict[str, Any], css: str, context: RequestContext) -> str:
        return f'<div class="{css}">{self.cms.render_content(context.item.body)}</div>'
