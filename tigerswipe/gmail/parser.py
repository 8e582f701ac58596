"""
Gmail adapter utilities for converting API payloads into NormalizedEmail.

This module focuses on deterministic parsing and stays side-effect free apart
from telemetry. A body part that fails to decode contributes an empty string
instead of failing the whole message.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Iterable
from datetime import UTC
from typing import Any

from dateutil import parser as date_parser

from tigerswipe.email.models import NormalizedEmail
from tigerswipe.email.normalizer import build_normalized_email, utc_now_iso
from tigerswipe.observability.telemetry import counter, log_event
from tigerswipe.utils.html import html_to_text
from tigerswipe.utils.redaction import redact

_TEXT_PLAIN = "text/plain"
_TEXT_HTML = "text/html"


class GmailParsingError(ValueError):
    """Raised when a Gmail payload is not a message object at all."""


def _header_lookup(headers: Iterable[dict[str, str]], name: str) -> str | None:
    name_lower = name.lower()
    for header in headers:
        if (header.get("name") or "").lower() == name_lower:
            return header.get("value")
    return None


def decode_base64url(data: str) -> str:
    """Decode Gmail's URL-safe base64 payloads; undecodable data becomes ""."""
    if not data:
        return ""
    padding = "=" * (-len(data) % 4)
    try:
        decoded = base64.urlsafe_b64decode((data + padding).encode("ascii"))
        return decoded.decode("utf-8", errors="replace")
    except (binascii.Error, ValueError, UnicodeEncodeError):
        counter("gmail.parse.decode_failed")
        return ""


def flatten_parts(parts: Iterable[dict[str, Any]]) -> tuple[str, str]:
    """
    Walk a multipart tree depth-first, concatenating text/plain and text/html leaves.

    Returns:
        (text, html) in traversal order
    """
    text = ""
    html = ""
    for part in parts:
        children = part.get("parts")
        if children:
            nested_text, nested_html = flatten_parts(children)
            text += nested_text
            html += nested_html
            continue

        mime_type = part.get("mimeType", "")
        if mime_type not in (_TEXT_PLAIN, _TEXT_HTML):
            continue
        decoded = decode_base64url((part.get("body") or {}).get("data") or "")
        if mime_type == _TEXT_PLAIN:
            text += decoded
        else:
            html += decoded
    return text, html


def extract_body(payload: dict[str, Any]) -> str:
    """Plaintext body for a Gmail payload, preferring text/plain over converted HTML."""
    inline = (payload.get("body") or {}).get("data")
    if inline:
        decoded = decode_base64url(inline)
        if payload.get("mimeType") == _TEXT_HTML:
            return html_to_text(decoded)
        return decoded

    parts = payload.get("parts") or []
    if not parts:
        return ""

    text, html = flatten_parts(parts)
    return text or html_to_text(html)


def _parse_date_header(value: str | None) -> str:
    if not value:
        return utc_now_iso()
    try:
        parsed = date_parser.parse(value)
    except (ValueError, OverflowError):
        counter("gmail.parse.bad_date")
        return utc_now_iso()
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC).isoformat()


def parse_message(message: dict[str, Any], fallback_id: str | None = None) -> NormalizedEmail | None:
    """
    Convert a Gmail API message (format=full) into NormalizedEmail.

    Returns None when the decoded body is empty; such emails are dropped from
    the batch rather than reported as errors.
    """
    if not isinstance(message, dict):
        raise GmailParsingError("message must be a dict")

    payload = message.get("payload") or {}
    headers = payload.get("headers") or []
    message_id = message.get("id") or fallback_id
    if not message_id:
        raise GmailParsingError("message id missing")

    body = extract_body(payload)
    if not body.strip():
        counter("gmail.parse.empty_body")
        log_event("gmail.parse.empty_body", message_id_hash=redact(message_id))
        return None

    email = build_normalized_email(
        message_id=message_id,
        sender=_header_lookup(headers, "From"),
        subject=_header_lookup(headers, "Subject"),
        body=body,
        received_at=_parse_date_header(_header_lookup(headers, "Date")),
    )
    counter("gmail.parsed.count")
    return email
