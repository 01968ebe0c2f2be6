"""Centralised settings for the rankbridge service.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from rankbridge import __version__

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

MODES = ("breakdance", "combine")
EXTRACTORS = ("auto", "dom", "regex")


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("RANKBRIDGE_WORKSPACE", Path.home() / ".rankbridge")
        )
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite content store."""
        return self.workspace_dir / "site.db"

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return Path(__file__).resolve().parent / "cms" / "schema.sql"

    site_url: str = field(
        default_factory=lambda: os.environ.get("RANKBRIDGE_SITE_URL", "http://localhost:8080")
    )

    # ------------------------------------------------------------------
    # Bridge behaviour
    # ------------------------------------------------------------------
    mode: str = field(
        default_factory=lambda: os.environ.get("RANKBRIDGE_MODE", "breakdance")
    )
    debug: bool = field(
        default_factory=lambda: _env_bool("RANKBRIDGE_DEBUG", "false")
    )
    builder_enabled: bool = field(
        default_factory=lambda: _env_bool("RANKBRIDGE_BUILDER_ENABLED", "true")
    )
    extractor: str = field(
        default_factory=lambda: os.environ.get("RANKBRIDGE_EXTRACTOR", "auto")
    )

    # ------------------------------------------------------------------
    # Front-end fetch
    # ------------------------------------------------------------------
    fetch_timeout: float = field(
        default_factory=lambda: float(os.environ.get("RANKBRIDGE_FETCH_TIMEOUT", "15.0"))
    )
    max_redirects: int = field(
        default_factory=lambda: int(os.environ.get("RANKBRIDGE_MAX_REDIRECTS", "5"))
    )
    # Off by default: the fetch targets the site itself, often behind a
    # self-signed certificate.  Turn on for anything public-facing.
    verify_tls: bool = field(
        default_factory=lambda: _env_bool("RANKBRIDGE_VERIFY_TLS", "false")
    )
    user_agent: str = field(
        default_factory=lambda: os.environ.get(
            "RANKBRIDGE_USER_AGENT", f"rankbridge/{__version__}"
        )
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_format: str = field(
        default_factory=lambda: os.environ.get("RANKBRIDGE_LOG_FORMAT", "console")
    )
    log_level: str = field(
        default_factory=lambda: os.environ.get("RANKBRIDGE_LOG_LEVEL", "INFO")
    )

    @property
    def effective_log_level(self) -> str:
        """``DEBUG`` when the debug flag is on, otherwise the configured level."""
        return "DEBUG" if self.debug else self.log_level

    def validate(self) -> None:
        """Raise ``ValueError`` for settings outside their allowed values."""
        if self.mode not in MODES:
            raise ValueError(f"Unknown mode {self.mode!r}; expected one of {MODES}")
        if self.extractor not in EXTRACTORS:
            raise ValueError(
                f"Unknown extractor {self.extractor!r}; expected one of {EXTRACTORS}"
            )
        if self.max_redirects < 0:
            raise ValueError("max_redirects must be >= 0")

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


# Module-level instance, import this everywhere:
#   from rankbridge.config import settings
settings = Settings()
