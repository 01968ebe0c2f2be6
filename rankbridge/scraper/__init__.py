"""Scraper package: front-end fetch and main-content extraction."""

from rankbridge.scraper.extractor import (
    ContentExtractor,
    DomExtractor,
    RegexExtractor,
    default_extractor,
    extract_main_content,
)
from rankbridge.scraper.fetcher import fetch_rendered_page
from rankbridge.scraper.models import RawPage

__all__ = [
    "fetch_rendered_page",
    "extract_main_content",
    "default_extractor",
    "ContentExtractor",
    "DomExtractor",
    "RegexExtractor",
    "RawPage",
]
