"""Main-content extraction: turns a rendered HTML page into analysable markup.

Two strategies share one interface:

- :class:`DomExtractor` parses the page with BeautifulSoup, removes
  boilerplate regions structurally and picks the main region by priority.
- :class:`RegexExtractor` approximates the same with regular expressions for
  hosts without a DOM library.  It is best-effort only: non-greedy patterns
  stop at the first closing tag, so nested ``<div>``/``<main>`` markup can
  be cut short.

:func:`extract_main_content` wraps whichever strategy is configured and
never raises.
"""

from __future__ import annotations

import importlib.util
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

import structlog

from rankbridge.config import settings

logger = structlog.get_logger(__name__)

BOILERPLATE_TAGS = ("nav", "header", "footer", "aside")

# Whole class/id tokens marking navigation and chrome.  A heading styled
# ``class="header"`` is removed too; that false positive is accepted.
BOILERPLATE_KEYWORDS = frozenset(
    {
        "menu",
        "nav",
        "breadcrumb",
        "footer",
        "header",
        "sidebar",
        "skip",
        "cookie",
        "popup",
        "modal",
        "newsletter",
    }
)

BUILDER_CLASS = "breakdance"

_SCRIPT_RE = re.compile(r"<script\b[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)
_STYLE_RE = re.compile(r"<style\b[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL)

_MULTI_NEWLINE_RE = re.compile(r"\n{3,}")
_HSPACE_RE = re.compile(r"[ \t]+")


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def strip_scripts(html: str) -> str:
    """Drop ``<script>`` and ``<style>`` blocks wholesale."""
    html = _SCRIPT_RE.sub("", html)
    return _STYLE_RE.sub("", html)


def normalize_whitespace(text: str) -> str:
    """Collapse 3+ newlines to 2, runs of spaces/tabs to one space, and trim."""
    text = _MULTI_NEWLINE_RE.sub("\n\n", text)
    text = _HSPACE_RE.sub(" ", text)
    return text.strip()


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

class ContentExtractor(ABC):
    """Abstract base class for a main-content extraction strategy."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short strategy name used in logs."""

    @abstractmethod
    def select_region(self, html: str) -> str:
        """Return the markup of the main region of *html* (scripts already gone)."""

    def extract(self, html: str) -> str:
        return normalize_whitespace(self.select_region(strip_scripts(html)))


def _tokens(tag: Any, attr: str) -> list[str]:
    """Whitespace-split tokens of a tag attribute (``class`` arrives as a list)."""
    value = tag.get(attr)
    if not value:
        return []
    if isinstance(value, str):
        return value.split()
    return [token for part in value for token in str(part).split()]


def _is_boilerplate(tag: Any) -> bool:
    return any(
        token in BOILERPLATE_KEYWORDS
        for attr in ("class", "id")
        for token in _tokens(tag, attr)
    )


def _is_builder_root(tag: Any) -> bool:
    return BUILDER_CLASS in _tokens(tag, "class")


def _is_builder_element(tag: Any) -> bool:
    return any(token.startswith(BUILDER_CLASS + "-") for token in _tokens(tag, "class"))


def _remove(tags: list[Any]) -> None:
    for tag in tags:
        # Descendants of an already-removed element are decomposed with it.
        if not tag.decomposed:
            tag.decompose()


class DomExtractor(ContentExtractor):
    """BeautifulSoup-based structural extraction."""

    @property
    def name(self) -> str:
        return "dom"

    def select_region(self, html: str) -> str:
        # Imported lazily so hosts without bs4 can still use the regex path.
        from bs4 import BeautifulSoup  # noqa: PLC0415

        # html.parser recovers from malformed markup instead of raising.
        soup = BeautifulSoup(html, "html.parser")

        _remove(soup.find_all(list(BOILERPLATE_TAGS)))
        _remove(soup.find_all(_is_boilerplate))
        _remove(soup.find_all(attrs={"role": "navigation"}))

        region = (
            soup.find(_is_builder_root)
            or soup.find(_is_builder_element)
            or soup.find(["main", "article"])
            or soup.body
        )
        if region is None:
            return str(soup)
        return str(region)


_REGION_PATTERNS = [
    re.compile(r"<main[^>]*>(.*?)</main>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<article[^>]*>(.*?)</article>", re.IGNORECASE | re.DOTALL),
    re.compile(
        r"""<div[^>]*class=["'][^"']*content[^"']*["'][^>]*>(.*?)</div>""",
        re.IGNORECASE | re.DOTALL,
    ),
    re.compile(r"""<div[^>]*id=["']content["'][^>]*>(.*?)</div>""", re.IGNORECASE | re.DOTALL),
]
_BODY_RE = re.compile(r"<body[^>]*>(.*?)</body>", re.IGNORECASE | re.DOTALL)
_BOILERPLATE_BLOCK_RES = [
    re.compile(rf"<{tag}\b[^>]*>.*?</{tag}>", re.IGNORECASE | re.DOTALL)
    for tag in BOILERPLATE_TAGS
]


class RegexExtractor(ContentExtractor):
    """Pattern-based approximation of :class:`DomExtractor`."""

    @property
    def name(self) -> str:
        return "regex"

    def select_region(self, html: str) -> str:
        region = ""
        for pattern in _REGION_PATTERNS:
            match = pattern.search(html)
            if match:
                region = match.group(1)
                break

        if not region.strip():
            body = _BODY_RE.search(html)
            region = body.group(1) if body else html

        for pattern in _BOILERPLATE_BLOCK_RES:
            region = pattern.sub("", region)
        return region


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def dom_available() -> bool:
    """``True`` when BeautifulSoup can be imported."""
    return importlib.util.find_spec("bs4") is not None


def default_extractor(preference: Optional[str] = None) -> ContentExtractor:
    """Pick the extraction strategy for this process.

    ``preference`` is ``auto`` (DOM when available), ``dom`` or ``regex``;
    it defaults to ``settings.extractor``.
    """
    preference = preference or settings.extractor
    if preference == "regex":
        return RegexExtractor()
    if preference == "dom" or dom_available():
        return DomExtractor()
    return RegexExtractor()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_main_content(html: str, extractor: Optional[ContentExtractor] = None) -> str:
    """Extract the normalised main-content markup from *html*.

    Falls back from the DOM strategy to the regex strategy on any error, and
    from there to the whole document with whitespace normalised.  Never
    raises.
    """
    if not html:
        return ""

    extractor = extractor or default_extractor()
    try:
        return extractor.extract(html)
    except Exception as exc:
        logger.warning("Extraction failed", extractor=extractor.name, error=repr(exc))

    if not isinstance(extractor, RegexExtractor):
        try:
            return RegexExtractor().extract(html)
        except Exception as exc:
            logger.warning("Regex extraction failed", error=repr(exc))

    return normalize_whitespace(str(html))
