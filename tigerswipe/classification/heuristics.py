"""
Deterministic keyword classifier.

Always available and dependency-free: this is the fallback whenever the LLM
layer is disabled or fails, and the merge base for any LLM reply. It never
marks an email as skip because it has no notion of relevance.
"""

from __future__ import annotations

import re

from tigerswipe.classification.models import CardCategory, ClassificationResult, EventType
from tigerswipe.config import PREVIEW_MAX_CHARS
from tigerswipe.email.models import NormalizedEmail
from tigerswipe.observability.telemetry import counter
from tigerswipe.utils.links import first_google_form_url

# Ordered: the first matching keyword decides the event_type
EVENT_PATTERNS: list[tuple[re.Pattern[str], EventType]] = [
    (re.compile(r"summit", re.IGNORECASE), EventType.SUMMIT),
    (re.compile(r"conference", re.IGNORECASE), EventType.CONFERENCE),
    (re.compile(r"fellowship", re.IGNORECASE), EventType.FELLOWSHIP),
    (re.compile(r"hackathon", re.IGNORECASE), EventType.HACKATHON),
    (re.compile(r"expo", re.IGNORECASE), EventType.EXPO),
    (re.compile(r"festival", re.IGNORECASE), EventType.FESTIVAL),
]

CLUB_PATTERNS: list[re.Pattern[str]] = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (r"club", r"collective", r"chapter", r"cohort", r"meetup", r"guild")
]

DATE_RE = re.compile(
    r"(january|february|march|april|may|june|july|august|september|october|november|december)"
    r"\s+\d{1,2}",
    re.IGNORECASE,
)

# Case-sensitive on purpose: the place name must be capitalized
LOCATION_RE = re.compile(r"\b(?:in|at)\s+([A-Z][A-Za-z]+(?:\s[A-Z][A-Za-z]+)*|\b[A-Z]{2,}\b)")

_AI_RE = re.compile(r"\bAI\b", re.IGNORECASE)
_DESIGN_RE = re.compile(r"design", re.IGNORECASE)
_FOUNDER_RE = re.compile(r"founder", re.IGNORECASE)


def _haystack(email: NormalizedEmail) -> str:
    return f"{email.subject} {email.body}"


def detect_category(email: NormalizedEmail) -> CardCategory:
    """Event vs club by keyword tally over subject and body; ties go to event."""
    haystack = _haystack(email)
    event_score = sum(1 for pattern, _ in EVENT_PATTERNS if pattern.search(haystack))
    club_score = sum(1 for pattern in CLUB_PATTERNS if pattern.search(haystack))
    return CardCategory.EVENT if event_score >= club_score else CardCategory.CLUB


def detect_event_type(email: NormalizedEmail) -> EventType | None:
    haystack = _haystack(email)
    for pattern, event_type in EVENT_PATTERNS:
        if pattern.search(haystack):
            return event_type
    return None


def detect_date(body: str) -> str | None:
    match = DATE_RE.search(body)
    return match.group(0) if match else None


def detect_location(body: str) -> str | None:
    match = LOCATION_RE.search(body)
    return match.group(1) if match else None


def build_tags(email: NormalizedEmail, category: CardCategory) -> list[str]:
    """Keyword tags plus the mandatory category tag, deduplicated in first-seen order."""
    tags: list[str] = []
    if _AI_RE.search(email.subject):
        tags.append("AI")
    if _DESIGN_RE.search(email.subject):
        tags.append("Design")
    if _FOUNDER_RE.search(email.body):
        tags.append("Founder")
    tags.append("Event" if category == CardCategory.EVENT else "Club")
    return list(dict.fromkeys(tags))


def classify_heuristically(email: NormalizedEmail) -> ClassificationResult:
    """
    Classify an email with regex heuristics only.

    Always returns a result with at least one tag, for any input.
    """
    category = detect_category(email)
    counter(f"classification.heuristic.{category.value}")

    summary = email.body[:PREVIEW_MAX_CHARS].strip()
    return ClassificationResult(
        type=category,
        tags=build_tags(email, category),
        event_type=detect_event_type(email) if category == CardCategory.EVENT else None,
        event_date=detect_date(email.body),
        location=detect_location(email.body),
        summary=summary or None,
        google_form_url=first_google_form_url(email.body, email.links),
    )
