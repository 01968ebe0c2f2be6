"""Editor-side content client.

Sits between the SEO analyzer's content filter and the
``rendered-content`` endpoint:

- :meth:`EditorContentClient.filter_content` is the analyzer's content
  filter.  It returns rendered content (per mode) once known, and
  otherwise triggers a fetch.
- Each item is fetched at most once per client.  A per-item in-flight flag
  blocks duplicate fetches and is cleared when the fetch settles, whatever
  the outcome.
- Successful results are kept in a short-lived session store under
  ``bd_rm_content_<id>``.
- After a fetch settles the refresh callback (re-run the analysis) fires
  once per item.
"""

from __future__ import annotations

import threading
from typing import Callable, MutableMapping, Optional

import httpx
import structlog

from rankbridge.seo.recalculate import merge_content

logger = structlog.get_logger(__name__)

STORAGE_KEY_PREFIX = "bd_rm_content_"


class EditorContentClient:
    def __init__(
        self,
        rest_url: str,
        token: str,
        post_id: int,
        mode: str = "breakdance",
        *,
        storage: Optional[MutableMapping[str, str]] = None,
        on_refresh: Optional[Callable[[], None]] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.rest_url = rest_url
        self.post_id = post_id
        self.mode = mode
        self.storage: MutableMapping[str, str] = storage if storage is not None else {}
        self.on_refresh = on_refresh
        self._client = httpx.Client(
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )
        self._lock = threading.Lock()
        self._cache: dict[int, str] = {}
        self._loading: set[int] = set()
        self._fetched_once: set[int] = set()
        self._refreshed_once: set[int] = set()

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> EditorContentClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Analyzer hooks
    # ------------------------------------------------------------------

    def filter_content(self, content: str) -> str:
        """Content filter: rendered content when known, else *content*."""
        post_id = self.post_id
        if not post_id:
            return content

        cached = self._cached(post_id)
        if cached is None:
            self.fetch_rendered_content(post_id)
            cached = self._cached(post_id)
        if cached is None:
            return content
        return merge_content(content, cached, self.mode)

    def on_analyzer_loaded(self) -> None:
        """Refresh when content is already known, otherwise fetch it."""
        post_id = self.post_id
        if not post_id:
            return
        if self._cached(post_id) is not None:
            self._refresh()
            return
        with self._lock:
            loading = post_id in self._loading
        if not loading:
            self.fetch_rendered_content(post_id)

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def fetch_rendered_content(self, post_id: int) -> None:
        """Fetch rendered content for *post_id* unless already fetched or in flight."""
        with self._lock:
            if not post_id or post_id in self._loading or post_id in self._fetched_once:
                return
            self._loading.add(post_id)
            self._fetched_once.add(post_id)

        logger.debug("Fetching rendered content", post_id=post_id, mode=self.mode)
        try:
            response = self._client.get(self.rest_url, params={"post_id": post_id})
            response.raise_for_status()
            content = response.json().get("content") or ""
            if content:
                with self._lock:
                    self._cache[post_id] = content
                self._store(post_id, content)
                logger.debug("Rendered content received", post_id=post_id, length=len(content))
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Rendered content fetch failed", post_id=post_id, error=repr(exc))
        finally:
            with self._lock:
                self._loading.discard(post_id)
                first_refresh = post_id not in self._refreshed_once
                self._refreshed_once.add(post_id)
            if first_refresh:
                self._refresh()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _cached(self, post_id: int) -> Optional[str]:
        with self._lock:
            if post_id in self._cache:
                return self._cache[post_id]
        stored = self.storage.get(STORAGE_KEY_PREFIX + str(post_id))
        if stored:
            with self._lock:
                self._cache[post_id] = stored
            return stored
        return None

    def _store(self, post_id: int, content: str) -> None:
        try:
            self.storage[STORAGE_KEY_PREFIX + str(post_id)] = content
        except (OSError, KeyError, TypeError) as exc:
            logger.debug("Session storage write failed", post_id=post_id, error=repr(exc))

    def _refresh(self) -> None:
        if self.on_refresh is not None:
            logger.debug("Refreshing content analysis", post_id=self.post_id)
            self.on_refresh()
