"""Facade over the content store used by the rendering pipeline.

The resolver never touches SQL directly; it asks :class:`SqliteCms` for the
things a host CMS would answer: does the item exist, is it builder-authored,
what are its public and preview URLs, and what does the default content
pipeline make of its body.
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlencode

from rankbridge.cms.content_filter import apply_content_filters
from rankbridge.cms.models import (
    PUBLISHED,
    TEMPLATE_POST_TYPE,
    TEMPLATE_SETTINGS_META_KEY,
    ContentItem,
)
from rankbridge.cms.posts import builder_data, get_post, get_post_meta, is_builder_post, list_posts


@dataclass
class SiteUrls:
    """Builds front-end URLs for content items."""

    site_url: str

    def permalink(self, item: ContentItem) -> str:
        base = self.site_url.rstrip("/")
        if item.slug:
            return f"{base}/{item.slug}/"
        return f"{base}/?{urlencode({'p': item.id})}"

    def preview_link(self, item: ContentItem) -> str:
        """Preview URL for unpublished items; ``""`` for published ones."""
        if item.status == PUBLISHED:
            return ""
        base = self.site_url.rstrip("/")
        return f"{base}/?{urlencode({'p': item.id, 'preview': 'true'})}"


class SqliteCms:
    """Read-side CMS operations over one SQLite connection."""

    def __init__(self, conn: sqlite3.Connection, site_url: str) -> None:
        self.conn = conn
        self.urls = SiteUrls(site_url)

    def get_item(self, post_id: int) -> Optional[ContentItem]:
        return get_post(self.conn, post_id)

    def is_builder_item(self, post_id: int) -> bool:
        return is_builder_post(self.conn, post_id)

    def builder_data(self, post_id: int) -> str:
        return builder_data(self.conn, post_id)

    def permalink(self, item: ContentItem) -> str:
        return self.urls.permalink(item)

    def preview_link(self, item: ContentItem) -> str:
        return self.urls.preview_link(item)

    def render_content(self, body: str) -> str:
        return apply_content_filters(body)

    def templates(self) -> list[tuple[ContentItem, dict[str, Any]]]:
        """Published builder templates paired with their decoded settings.

        Templates whose settings are missing or not valid JSON are skipped.
        """
        found: list[tuple[ContentItem, dict[str, Any]]] = []
        for item in list_posts(self.conn, post_type=TEMPLATE_POST_TYPE, status=PUBLISHED):
            raw = get_post_meta(self.conn, item.id, TEMPLATE_SETTINGS_META_KEY)
            try:
                decoded = json.loads(raw) if raw else None
            except json.JSONDecodeError:
                continue
            if isinstance(decoded, dict):
                found.append((item, decoded))
        return found
