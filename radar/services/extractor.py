"""HTML to clean text extractor using BeautifulSoup4."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

# Tags to remove before text extraction
_STRIP_TAGS = {"script", "style", "nav", "footer", "header", "aside"}

MAX_TEXT_LENGTH = 10000

_WHITESPACE_RE = re.compile(r"\s+")


def extract_text(html: str) -> str:
    """Return the visible text of a page.

    - Removes script, style, nav, footer, header, aside and role="navigation" elements
    - Reads from <body> when present
    - Collapses runs of whitespace into single spaces
    - Caps output at 10,000 characters
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")

    for tag in soup.find_all(_STRIP_TAGS):
        tag.decompose()
    for tag in soup.find_all(attrs={"role": "navigation"}):
        tag.decompose()

    root = soup.body or soup
    text = root.get_text(separator=" ", strip=True)
    text = _WHITESPACE_RE.sub(" ", text).strip()
    return text[:MAX_TEXT_LENGTH]


def html_to_plain_text(fragment: str) -> str:
    """Flatten an HTML fragment (feed summary/content) to plain text."""
    if not fragment:
        return ""
    if "<" not in fragment:
        return _WHITESPACE_RE.sub(" ", fragment).strip()
    text = BeautifulSoup(fragment, "html.parser").get_text(separator=" ", strip=True)
    return _WHITESPACE_RE.sub(" ", text).strip()
