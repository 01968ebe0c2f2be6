"""The CMS default content pipeline (the ``the_content`` filter chain).

Raw stored bodies are mostly hand-typed text with the odd block of markup.
The pipeline turns them into the HTML a theme would print.
"""

from __future__ import annotations

import re

# Shortcode pattern: [shortcode ...] ... [/shortcode] or [shortcode ... /]
_SHORTCODE_RE = re.compile(r"\[/?[a-zA-Z_][\w-]*(?:\s[^\]]*)?/?\]")

# Paragraph breaks: a blank line, possibly holding whitespace
_PARAGRAPH_SPLIT_RE = re.compile(r"\n[ \t]*\n")

# Chunks that already open with block-level markup are left alone
_BLOCK_START_RE = re.compile(
    r"^<(?:p|div|h[1-6]|ul|ol|li|dl|table|blockquote|pre|section|article|"
    r"figure|hr|form|main|aside|nav|header|footer)\b",
    re.IGNORECASE,
)


def apply_content_filters(body: str) -> str:
    """Run *body* through the default content pipeline.

    Strips shortcodes, wraps bare text paragraphs in ``<p>`` and turns
    single newlines inside them into ``<br />``.
    """
    if not body or not body.strip():
        return ""

    text = _SHORTCODE_RE.sub("", body.replace("\r\n", "\n"))

    chunks: list[str] = []
    for chunk in _PARAGRAPH_SPLIT_RE.split(text.strip()):
        chunk = chunk.strip()
        if not chunk:
            continue
        if _BLOCK_START_RE.match(chunk):
            chunks.append(chunk)
        else:
            chunks.append("<p>" + chunk.replace("\n", "<br />\n") + "</p>")

    return "\n\n".join(chunks)
