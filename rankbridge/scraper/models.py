"""Data models for the front-end fetch."""

from __future__ import annotations

from dataclasses import dataclass

# Statuses that mean "you may not see the public page" rather than "broken".
DENIED_STATUSES = frozenset({401, 403, 404})


@dataclass
class RawPage:
    """One front-end response.

    ``final_url`` differs from ``url`` when redirects were followed.
    """

    url: str
    final_url: str
    html: str
    status_code: int

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def denied(self) -> bool:
        """Login-wall style refusals worth retrying against a preview URL."""
        return self.status_code in DENIED_STATUSES
