"""Themeless template lookup.

Templates are published ``breakdance_template`` items whose
``_breakdance_template_settings`` meta holds JSON such as::

    {"post_types": ["post", "page"], "priority": 10}

``"*"`` in ``post_types`` matches every type.  The highest priority wins;
ties go to the oldest template.
"""

from __future__ import annotations

from typing import Any, Optional

from rankbridge.builder.base import TemplateResolver
from rankbridge.cms.site import SqliteCms
from rankbridge.render.models import RequestContext


def _priority(conf: dict[str, Any]) -> int:
    try:
        return int(conf.get("priority", 0))
    except (TypeError, ValueError):
        return 0


class ThemelessResolver(TemplateResolver):
    def __init__(self, cms: SqliteCms) -> None:
        self.cms = cms

    def template_for_request(self, context: RequestContext) -> Optional[int]:
        best: Optional[tuple[int, int]] = None
        for template, conf in self.cms.templates():
            post_types = conf.get("post_types") or []
            if not isinstance(post_types, list):
                continue
            if context.post_type not in post_types and "*" not in post_types:
                continue
            key = (_priority(conf), -template.id)
            if best is None or key > best:
                best = key
        return -best[1] if best is not None else None
