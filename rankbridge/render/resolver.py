"""Render strategy selection: which path produces an item's analysable content.

Strategies, tried in order until one yields non-empty extracted content:

1. internal render (builder-authored items, renderer configured);
2. HTTP fetch of the rendered front-end page (preview URL for unpublished
   items, with the caller's cookies);
3. the raw stored body through the default content pipeline.

Results are memoised per item for the life of the resolver, which is one
request, CLI command or recalculation pass.  Empty results are not memoised.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Optional

import structlog

from rankbridge.cms.models import ContentItem
from rankbridge.cms.site import SqliteCms
from rankbridge.exceptions import ContextReentryError, InvalidContentIdentifier
from rankbridge.render.cache import SingleFlightCache
from rankbridge.render.internal import render_internal
from rankbridge.render.models import ContentSource, RenderedContent
from rankbridge.scraper.extractor import ContentExtractor, default_extractor, extract_main_content
from rankbridge.scraper.fetcher import fetch_rendered_page

if TYPE_CHECKING:
    from rankbridge.builder.base import BuilderRenderer, TemplateResolver

logger = structlog.get_logger(__name__)

Fetcher = Callable[..., str]


def validate_post_id(post_id: object) -> int:
    """Return *post_id* if it is a positive ``int``.

    Raises:
        InvalidContentIdentifier: For zero, negatives, bools and non-ints.
    """
    if isinstance(post_id, bool) or not isinstance(post_id, int) or post_id < 1:
        raise InvalidContentIdentifier(post_id)
    return post_id


class ContentResolver:
    """Resolves rendered content for content items, with caching.

    The cache lives as long as the resolver.  Build one resolver per request
    or recalculation pass (see :meth:`BridgeService.new_resolver`) so edits
    are picked up by the next one.
    """

    def __init__(
        self,
        cms: SqliteCms,
        renderer: Optional[BuilderRenderer] = None,
        templates: Optional[TemplateResolver] = None,
        fetch: Fetcher = fetch_rendered_page,
        extractor: Optional[ContentExtractor] = None,
        cache: Optional[SingleFlightCache[int, RenderedContent]] = None,
    ) -> None:
        self.cms = cms
        self.renderer = renderer
        self.templates = templates
        self.fetch = fetch
        self.extractor = extractor or default_extractor()
        self.cache = cache if cache is not None else SingleFlightCache(bool)

    @property
    def internal_available(self) -> bool:
        return self.renderer is not None

    def resolve(
        self,
        post_id: int,
        cookies: Optional[dict[str, str]] = None,
    ) -> RenderedContent:
        """Return the rendered content for *post_id*.

        Unknown items resolve to empty content rather than an error.

        Raises:
            InvalidContentIdentifier: If *post_id* is not a positive int.
        """
        post_id = validate_post_id(post_id)
        return self.cache.get_or_compute(post_id, lambda: self._compute(post_id, cookies))

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _compute(self, post_id: int, cookies: Optional[dict[str, str]]) -> RenderedContent:
        item = self.cms.get_item(post_id)
        if item is None:
            logger.debug("No such content item", post_id=post_id)
            return RenderedContent(post_id=post_id, content="")

        if self.internal_available and self.cms.is_builder_item(post_id):
            content = self._internal(item)
            if content:
                return self._result(item, content, ContentSource.INTERNAL_RENDER)

        content = self._frontend(item, cookies)
        if content:
            source = (
                ContentSource.FRONTEND_FETCH_FALLBACK
                if self.internal_available
                else ContentSource.FRONTEND_FETCH_NO_INTERNAL
            )
            return self._result(item, content, source)

        content = self._extract(self.cms.render_content(item.body))
        if content:
            return self._result(item, content, ContentSource.RAW_FALLBACK)

        logger.debug("No content from any strategy", post_id=post_id)
        return RenderedContent(post_id=post_id, content="")

    def _internal(self, item: ContentItem) -> str:
        if self.renderer is None:
            return ""
        try:
            result = render_internal(item, self.cms, self.renderer, self.templates)
        except ContextReentryError as exc:
            logger.warning("Internal render rejected", post_id=item.id, reason=str(exc))
            return ""
        return self._extract(result.html)

    def _frontend(self, item: ContentItem, cookies: Optional[dict[str, str]]) -> str:
        """Fetch the front-end page for *item*.

        Unpublished items are fetched at their preview link with the caller's
        cookies; published items at their permalink without cookies.  The
        preview link is therefore either the primary URL or absent, so the
        fetcher's 401/403/404 retry against a different preview URL does not
        fire on this path.  It only applies to callers that pass a distinct
        primary URL to :func:`fetch_rendered_page` directly.
        """
        permalink = self.cms.permalink(item)
        preview = self.cms.preview_link(item)
        url = preview or permalink
        html = self.fetch(
            url,
            preview_url=preview or None,
            cookies=cookies if preview else None,
        )
        return self._extract(html)

    def _extract(self, html: str) -> str:
        return extract_main_content(html, self.extractor)

    def _result(self, item: ContentItem, content: str, source: ContentSource) -> RenderedContent:
        logger.debug(
            "Content resolved",
            post_id=item.id,
            source=source.value,
            length=len(content),
        )
        return RenderedContent(post_id=item.id, content=content, source=source)
