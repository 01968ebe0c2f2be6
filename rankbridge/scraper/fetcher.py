"""HTTP fetcher for the site's own rendered front-end pages.

The fetch is a loopback-style request against the site being analysed, so
failures are expected (site down, page private, self-signed certificate)
and never raise: the caller treats ``""`` as "try the next strategy".
"""

from __future__ import annotations

from typing import Optional

import httpx
import structlog

from rankbridge.config import settings
from rankbridge.scraper.models import RawPage

logger = structlog.get_logger(__name__)


def _build_client(cookies: Optional[dict[str, str]] = None) -> httpx.Client:
    return httpx.Client(
        headers={"User-Agent": settings.user_agent},
        timeout=settings.fetch_timeout,
        follow_redirects=True,
        max_redirects=settings.max_redirects,
        verify=settings.verify_tls,
        cookies=cookies or None,
    )


def _get(client: httpx.Client, url: str) -> Optional[RawPage]:
    """GET *url*; ``None`` on any transport failure."""
    try:
        response = client.get(url)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.warning("Front-end fetch failed", url=url, error=repr(exc))
        return None
    logger.debug("Front-end fetch", url=url, final_url=str(response.url), status=response.status_code)
    return RawPage(
        url=url,
        final_url=str(response.url),
        html=response.text,
        status_code=response.status_code,
    )


def fetch_rendered_page(
    url: str,
    preview_url: Optional[str] = None,
    cookies: Optional[dict[str, str]] = None,
) -> str:
    """Fetch *url* and return its HTML, or ``""`` when nothing usable came back.

    When the first response is 401/403/404 and a *preview_url* different
    from *url* is known, exactly one retry is made against the preview.
    *cookies* (the caller's session) are sent with every request so the
    preview renders as the logged-in editor sees it.
    """
    if not url:
        return ""

    with _build_client(cookies) as client:
        raw = _get(client, url)
        if raw is None:
            return ""

        if raw.denied and preview_url and preview_url != url:
            logger.debug("Retrying against preview", url=url, preview_url=preview_url)
            raw = _get(client, preview_url)
            if raw is None:
                return ""

    if not raw.ok:
        logger.warning("Front-end fetch rejected", url=raw.final_url, status=raw.status_code)
        return ""

    if not raw.html.strip():
        logger.debug("Front-end fetch returned an empty body", url=raw.url)
        return ""

    return raw.html
