"""rankbridge: feeds rendered page-builder output to SEO content analysis."""

__version__ = "2.1.0"
