"""
Converts loosely-shaped email input (mock JSON, API payloads) into NormalizedEmail.

Gmail MIME payloads are handled by tigerswipe.gmail.parser, which funnels into
build_normalized_email() so defaults and link extraction stay in one place.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from tigerswipe.email.models import NormalizedEmail
from tigerswipe.observability.logging import get_logger
from tigerswipe.observability.telemetry import counter
from tigerswipe.utils.html import html_to_text, looks_like_html
from tigerswipe.utils.links import extract_links

logger = get_logger(__name__)

DEFAULT_SENDER = "Unknown Sender"
DEFAULT_SUBJECT = "Untitled"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(UTC).isoformat()


def build_normalized_email(
    *,
    message_id: str,
    sender: str | None,
    subject: str | None,
    body: str | None,
    received_at: str | None,
) -> NormalizedEmail:
    """Apply header defaults and harvest links from the final plaintext body."""
    text = body or ""
    return NormalizedEmail(
        id=message_id,
        from_address=sender or DEFAULT_SENDER,
        subject=subject or DEFAULT_SUBJECT,
        body=text,
        received_at=received_at or utc_now_iso(),
        links=extract_links(text),
    )


def normalize_raw_email(item: dict[str, Any], index: int) -> NormalizedEmail:
    """
    Normalize one mock-dataset record ({id?, from?, subject?, body?, receivedAt?}).

    Missing ids become "mock-<index>"; HTML bodies are converted to text.
    """
    body = item.get("body") or ""
    if not isinstance(body, str):
        body = str(body)
    if looks_like_html(body):
        body = html_to_text(body)

    return build_normalized_email(
        message_id=str(item.get("id") or f"mock-{index}"),
        sender=item.get("from"),
        subject=item.get("subject"),
        body=body,
        received_at=item.get("receivedAt"),
    )


def drop_empty(emails: Iterable[NormalizedEmail]) -> list[NormalizedEmail]:
    """Filter out emails whose final body is empty (not an error, just nothing to show)."""
    kept: list[NormalizedEmail] = []
    dropped = 0
    for email in emails:
        if email.body.strip():
            kept.append(email)
        else:
            dropped += 1

    if dropped:
        counter("email.normalize.dropped_empty", dropped)
        logger.info("Dropped %d emails with empty bodies", dropped)
    return kept


def normalize_batch(items: Iterable[dict[str, Any]]) -> list[NormalizedEmail]:
    """Normalize a batch of raw records, skipping non-objects and empty bodies."""
    normalized: list[NormalizedEmail] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            counter("email.normalize.invalid_record")
            logger.warning("Skipping non-object email record at index %d", index)
            continue
        normalized.append(normalize_raw_email(item, index))
    return drop_empty(normalized)
