"""Interfaces to the page builder's own rendering machinery."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from rankbridge.render.models import RequestContext


class BuilderRenderer(ABC):
    """Turns a builder-authored item (or template) into HTML."""

    @abstractmethod
    def render(self, post_id: int, context: RequestContext) -> str:
        """Render *post_id* as seen from *context*.  May raise on bad data."""


class TemplateResolver(ABC):
    """Finds the themeless template that applies to a request."""

    @abstractmethod
    def template_for_request(self, context: RequestContext) -> Optional[int]:
        """Return the id of the template to render, or ``None``."""
