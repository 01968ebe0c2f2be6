"""Dataclass models representing content-store rows.

These are plain Python objects – not ORM models.  The CMS layer serialises /
deserialises to and from these types.
"""

from __future__ import annotations

from dataclasses import dataclass

PUBLISHED = "publish"

# Meta keys under which the page builder stores its render tree.
BUILDER_META_KEYS = ("_breakdance_data", "_breakdance_tree")
TEMPLATE_SETTINGS_META_KEY = "_breakdance_template_settings"
TEMPLATE_POST_TYPE = "breakdance_template"

ROLES = ("administrator", "editor", "author", "subscriber")


@dataclass
class ContentItem:
    id: int
    post_type: str
    status: str
    title: str
    slug: str | None
    body: str
    author_id: int | None
    created_at: int
    updated_at: int

    @property
    def is_published(self) -> bool:
        return self.status == PUBLISHED


@dataclass
class User:
    id: int
    login: str
    role: str
    token: str
    created_at: int
