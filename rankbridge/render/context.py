"""Simulated front-end request context.

The active context lives in a :class:`~contextvars.ContextVar`, so every
thread or task sees its own value.  :func:`simulated_request_context` is the
only way to change it: it activates a single-item context for the duration
of a ``with`` block and always restores the previous value, including when
the block raises.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

import structlog

from rankbridge.cms.models import ContentItem
from rankbridge.exceptions import ContextReentryError
from rankbridge.render.models import RequestContext

logger = structlog.get_logger(__name__)

_active_context: ContextVar[Optional[RequestContext]] = ContextVar(
    "rankbridge_request_context", default=None
)


def current_request_context() -> Optional[RequestContext]:
    """Return the active simulated context, or ``None`` outside of one."""
    return _active_context.get()


@contextmanager
def simulated_request_context(item: ContentItem) -> Iterator[RequestContext]:
    """Make *item* the current content item for the enclosed block.

    Raises:
        ContextReentryError: If a context for a different item is already
            active in this thread/task.
    """
    active = _active_context.get()
    if active is not None and active.post_id != item.id:
        raise ContextReentryError(active.post_id, item.id)

    context = RequestContext.for_item(item)
    token = _active_context.set(context)
    logger.debug("Request context activated", post_id=item.id, post_type=item.post_type)
    try:
        yield context
    finally:
        _active_context.reset(token)
        logger.debug("Request context restored", post_id=item.id)
