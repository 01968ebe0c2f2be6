"""Internal rendering through the page builder, inside a simulated request.

Stages, all run inside one :func:`simulated_request_context`:

1. the builder renders the item itself (only for builder-authored items);
2. the themeless template for the request, when a resolver is configured;
3. the raw stored body through the default content pipeline.

Renderer exceptions never escape; they are logged and recorded on the
returned :class:`RenderResult`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import structlog

from rankbridge.cms.models import ContentItem
from rankbridge.cms.site import SqliteCms
from rankbridge.render.context import simulated_request_context
from rankbridge.render.models import RenderResult, RenderStage, RequestContext

if TYPE_CHECKING:
    from rankbridge.builder.base import BuilderRenderer, TemplateResolver

logger = structlog.get_logger(__name__)


def _attempt(
    renderer: BuilderRenderer,
    post_id: int,
    context: RequestContext,
) -> tuple[str, Optional[str]]:
    """Render *post_id*; return ``(html, failure_reason)``."""
    try:
        return renderer.render(post_id, context) or "", None
    except Exception as exc:
        reason = f"{type(exc).__name__}: {exc}"
        logger.warning(
            "Builder render failed",
            post_id=post_id,
            context_post_id=context.post_id,
            reason=reason,
        )
        return "", reason


def _template_id(templates: TemplateResolver, context: RequestContext) -> Optional[int]:
    try:
        return templates.template_for_request(context)
    except Exception as exc:
        logger.warning("Template lookup failed", post_id=context.post_id, error=repr(exc))
        return None


def render_internal(
    item: ContentItem,
    cms: SqliteCms,
    renderer: BuilderRenderer,
    templates: Optional[TemplateResolver] = None,
) -> RenderResult:
    """Render *item* the way a front-end request for it would.

    Raises:
        ContextReentryError: If called while a context for another item is
            active in the same thread/task.
    """
    failure: Optional[str] = None

    with simulated_request_context(item) as context:
        html = ""
        stage = RenderStage.BUILDER
        if cms.is_builder_item(item.id):
            html, failure = _attempt(renderer, item.id, context)

        if not html.strip() and templates is not None:
            template_id = _template_id(templates, context)
            if template_id:
                stage = RenderStage.TEMPLATE
                html, template_failure = _attempt(renderer, template_id, context)
                failure = template_failure or failure

        if not html.strip():
            stage = RenderStage.RAW
            html = cms.render_content(item.body)

    logger.debug(
        "Internal render finished",
        post_id=item.id,
        stage=stage.value,
        length=len(html),
        failure=failure,
    )
    return RenderResult(html=html, stage=stage, failure=failure)
