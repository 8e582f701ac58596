"""URL harvesting helpers shared by the normalizer, the heuristics and the card builder."""

from __future__ import annotations

import re
from collections.abc import Iterable

_URL_RE = re.compile(r"https?://[^\s)<>]+", re.IGNORECASE)
_GOOGLE_FORM_RE = re.compile(
    r"https?://(?:docs\.google\.com/forms/|forms\.gle/)[^\s)\"'<>]+", re.IGNORECASE
)
_TRAILING_PUNCTUATION = ".,;:!?\"'>]"


def _trim(url: str) -> str:
    return url.strip().rstrip(_TRAILING_PUNCTUATION)


def extract_links(text: str) -> list[str]:
    """Every URL in the text, in order of appearance (duplicates kept)."""
    if not text:
        return []
    return [_trim(match) for match in _URL_RE.findall(text)]


def extract_google_form_urls(body: str, links: Iterable[str] = ()) -> list[str]:
    """Google Form URLs from the body, then the link list, deduplicated in first-seen order."""
    found: list[str] = []
    for source in (body or "", *links):
        for match in _GOOGLE_FORM_RE.findall(source or ""):
            url = _trim(match)
            if url not in found:
                found.append(url)
    return found


def first_google_form_url(body: str, links: Iterable[str] = ()) -> str | None:
    forms = extract_google_form_urls(body, links)
    return forms[0] if forms else None


def is_application_form_url(url: str | None) -> bool:
    """True for links that open a recognized application form."""
    return bool(url) and _GOOGLE_FORM_RE.fullmatch(url) is not None
