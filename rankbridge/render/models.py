"""Data models for the rendering pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from rankbridge.cms.models import ContentItem


class ContentSource(str, Enum):
    """Which strategy produced a piece of rendered content."""

    INTERNAL_RENDER = "internal_render"
    FRONTEND_FETCH_FALLBACK = "frontend_fetch_fallback"
    FRONTEND_FETCH_NO_INTERNAL = "frontend_fetch_no_internal"
    RAW_FALLBACK = "raw_fallback"


class RenderStage(str, Enum):
    """Which step of the internal render produced its HTML."""

    BUILDER = "builder"
    TEMPLATE = "template"
    RAW = "raw"


@dataclass(frozen=True)
class RenderedContent:
    """Extracted content for one item.  ``source`` is ``None`` when empty."""

    post_id: int
    content: str
    source: Optional[ContentSource] = None

    def __bool__(self) -> bool:
        return bool(self.content)


@dataclass(frozen=True)
class RequestContext:
    """A single-item front-end request, as the renderer should observe it."""

    item: ContentItem
    query_vars: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_item(cls, item: ContentItem) -> RequestContext:
        return cls(item=item, query_vars={"p": item.id, "post_type": item.post_type})

    @property
    def post_id(self) -> int:
        return self.item.id

    @property
    def post_type(self) -> str:
        return self.item.post_type


@dataclass
class RenderResult:
    """Outcome of an internal render.

    ``failure`` carries the reason of the last renderer error, if any, even
    when a later stage produced HTML.
    """

    html: str
    stage: RenderStage
    failure: Optional[str] = None

    @property
    def ok(self) -> bool:
        return bool(self.html.strip())
