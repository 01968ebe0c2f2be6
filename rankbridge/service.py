"""The bridge service: one explicitly constructed instance per process.

The API lifespan and the CLI build a :class:`BridgeService` with
:func:`build_service` and pass it where it is needed; nothing reaches for a
global instance.

The service itself holds no rendered content.  Each unit of work (one HTTP
request, one CLI command, one recalculation pass) asks for its own
:meth:`BridgeService.new_resolver`, so memoised results live exactly as long
as that unit of work and edits show up on the next request.
"""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING, Any, Optional

from rankbridge.builder import ThemelessResolver, TreeRenderer
from rankbridge.cms.models import ContentItem, User
from rankbridge.cms.site import SqliteCms
from rankbridge.cms.users import user_can_edit
from rankbridge.config import Settings, settings as default_settings
from rankbridge.exceptions import InvalidContentIdentifier, NotAuthorized
from rankbridge.render.resolver import ContentResolver, Fetcher, validate_post_id
from rankbridge.scraper.extractor import ContentExtractor, default_extractor
from rankbridge.scraper.fetcher import fetch_rendered_page
from rankbridge.seo.recalculate import filter_recalculate_score_data

if TYPE_CHECKING:
    from rankbridge.builder.base import BuilderRenderer, TemplateResolver


class BridgeService:
    def __init__(
        self,
        cms: SqliteCms,
        settings: Settings,
        renderer: Optional[BuilderRenderer] = None,
        templates: Optional[TemplateResolver] = None,
        fetch: Fetcher = fetch_rendered_page,
        extractor: Optional[ContentExtractor] = None,
    ) -> None:
        self.cms = cms
        self.settings = settings
        self.renderer = renderer
        self.templates = templates
        self.fetch = fetch
        self.extractor = extractor or default_extractor(settings.extractor)

    @property
    def mode(self) -> str:
        return self.settings.mode

    def new_resolver(self) -> ContentResolver:
        """A resolver with an empty cache, scoped to one request or pass."""
        return ContentResolver(
            self.cms,
            renderer=self.renderer,
            templates=self.templates,
            fetch=self.fetch,
            extractor=self.extractor,
        )

    def authorize_edit(self, user: Optional[User], post_id: int) -> Optional[ContentItem]:
        """Return the item if *user* may edit it; ``None`` if it does not exist.

        Raises:
            InvalidContentIdentifier: If *post_id* is not a positive int.
            NotAuthorized: If the item exists and *user* may not edit it.
        """
        validate_post_id(post_id)
        if user is None:
            raise NotAuthorized("Authentication required.", status_code=401)
        item = self.cms.get_item(post_id)
        if item is None:
            return None
        if not user_can_edit(user, item):
            raise NotAuthorized(f"User {user.login!r} may not edit post {post_id}.")
        return item

    def rendered_content(
        self,
        post_id: int,
        cookies: Optional[dict[str, str]] = None,
        resolver: Optional[ContentResolver] = None,
    ) -> str:
        """Rendered content for *post_id*; ``""`` for unknown or invalid ids."""
        resolver = resolver or self.new_resolver()
        try:
            return resolver.resolve(post_id, cookies=cookies).content
        except InvalidContentIdentifier:
            return ""

    def recalculate(
        self,
        values: Any,
        item: Optional[ContentItem],
        resolver: Optional[ContentResolver] = None,
    ) -> Any:
        """Apply the recalculation filter.

        A bulk pass should create one resolver and hand it to every call.
        """
        resolver = resolver or self.new_resolver()
        return filter_recalculate_score_data(values, item, resolver, self.mode)


def build_service(
    conn: sqlite3.Connection,
    settings: Optional[Settings] = None,
    fetch: Fetcher = fetch_rendered_page,
) -> BridgeService:
    """Wire a :class:`BridgeService` from *settings* over *conn*."""
    settings = settings or default_settings
    settings.validate()
    cms = SqliteCms(conn, settings.site_url)
    return BridgeService(
        cms,
        settings,
        renderer=TreeRenderer(cms) if settings.builder_enabled else None,
        templates=ThemelessResolver(cms) if settings.builder_enabled else None,
        fetch=fetch,
        extractor=default_extractor(settings.extractor),
    )
