"""HTML-to-text conversion for email bodies.

Plenty of club and event invitations are HTML-only with no text/plain MIME
part. This module converts that HTML to plain text for the classifier.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

# Real markup only: "<https://forms.gle/x>" in a plain-text mail is not a tag
_MARKUP_RE = re.compile(
    r"<\s*/?\s*(html|head|body|p|div|span|br|a|b|i|em|strong|table|tr|td|ul|ol|li|h[1-6]|img|style|script)\b[^>]*>",
    re.IGNORECASE,
)


def html_to_text(html: str) -> str:
    """Convert HTML email body to plain text.

    Args:
        html: Raw HTML string from email body.

    Returns:
        Plain text extracted from the HTML, entities decoded once.
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")

    for tag in soup(["script", "style", "head"]):
        tag.decompose()

    text = soup.get_text(separator="\n").replace("\xa0", " ")

    # Collapse whitespace: multiple blank lines -> single, strip each line
    lines = [line.strip() for line in text.splitlines()]
    text = "\n".join(lines)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def looks_like_html(text: str) -> bool:
    """True if the string carries HTML markup (not just angle-bracketed URLs or addresses)."""
    return bool(text) and _MARKUP_RE.search(text) is not None
