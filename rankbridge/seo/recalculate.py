"""Score-input filter for bulk / background SEO recalculation.

When the SEO tool recalculates a published item outside the editor it hands
its score inputs through :func:`filter_recalculate_score_data`, which swaps
in (or appends) the rendered content.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog

from rankbridge.cms.models import ContentItem
from rankbridge.exceptions import InvalidContentIdentifier
from rankbridge.render.resolver import ContentResolver

logger = structlog.get_logger(__name__)


def merge_content(original: str, rendered: str, mode: str) -> str:
    """Combine analysed content with rendered content according to *mode*.

    ``breakdance`` replaces *original* outright; ``combine`` appends
    *rendered* after the trimmed original with a blank line in between.
    Empty *rendered* leaves *original* untouched in both modes.
    """
    if not rendered:
        return original
    if mode == "combine":
        original = (original or "").strip()
        return f"{original}\n\n{rendered}" if original else rendered
    return rendered


def filter_recalculate_score_data(
    values: Any,
    item: Optional[ContentItem],
    resolver: ContentResolver,
    mode: str,
) -> Any:
    """Return *values* with ``content`` replaced/extended by rendered content.

    Anything that is not a dict, a missing or unpublished item, an invalid
    id, or empty rendered content returns *values* as given.
    """
    if not isinstance(values, dict) or item is None:
        return values
    if not item.is_published:
        return values

    try:
        rendered = resolver.resolve(item.id)
    except InvalidContentIdentifier as exc:
        logger.debug("Recalculation skipped", reason=str(exc))
        return values

    if not rendered.content:
        return values

    updated = dict(values)
    updated["content"] = merge_content(str(values.get("content") or ""), rendered.content, mode)
    return updated
