"""Exception hierarchy for the bridge.

Only :class:`NotAuthorized` is meant to reach an end caller.  Everything
else is caught at a pipeline stage boundary and degrades to "no content".
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for all bridge errors."""


class InvalidContentIdentifier(BridgeError):
    """Raised when a post id is not a positive integer."""

    def __init__(self, post_id: object) -> None:
        super().__init__(f"Invalid content identifier: {post_id!r}")
        self.post_id = post_id


class NotAuthorized(BridgeError):
    """Raised when the caller may not edit the requested content item."""

    def __init__(self, message: str, status_code: int = 403) -> None:
        super().__init__(message)
        self.status_code = status_code


class BuilderRenderError(BridgeError):
    """Raised by the builder renderer for trees it cannot render."""


class ContextReentryError(BridgeError):
    """Raised when a request context is activated inside another one."""

    def __init__(self, active_id: int, requested_id: int) -> None:
        super().__init__(
            f"Request context for post {active_id} is active; "
            f"cannot simulate post {requested_id} inside it"
        )
        self.active_id = active_id
        self.requested_id = requested_id
