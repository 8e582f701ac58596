"""
Redaction helpers applied before anything reaches telemetry or an LLM prompt.

Provides:
- redact(): Hash sensitive strings for correlation without exposure
- redact_subject(): Partially redact email subjects for debugging
- sanitize_for_prompt(): Remove potential prompt injection patterns
"""

from __future__ import annotations

import re
from hashlib import sha256

# Patterns that could be used for prompt injection
INJECTION_PATTERNS = [
    r"ignore\s+(previous|above|all)\s+instructions?",
    r"disregard\s+(previous|above|all)\s+instructions?",
    r"forget\s+(previous|above|all)\s+instructions?",
    r"new\s+instructions?:",
    r"system\s*:",
    r"assistant\s*:",
    r"\[INST\]",
    r"\[/INST\]",
    r"<\|im_start\|>",
    r"<\|im_end\|>",
]
INJECTION_REGEX = re.compile("|".join(INJECTION_PATTERNS), re.IGNORECASE)


def redact(value: str | None) -> str:
    """
    Return a stable hash representation of a sensitive string.
    """
    if not value:
        return "hash:missing"
    digest = sha256(value.encode("utf-8")).hexdigest()[:12]
    return f"hash:{digest}"


def redact_subject(subject: str | None, max_length: int = 30) -> str:
    """
    Partially redact email subject for logging while preserving debuggability.

    Example:
        "Founders Summit invite for the spring cohort" ->
        "Founders Summit invite for the..." (h:7a8b9c)
    """
    if not subject:
        return "(no subject)"

    visible = subject[:max_length] + "..." if len(subject) > max_length else subject
    digest = sha256(subject.encode("utf-8")).hexdigest()[:6]
    return f"{visible} (h:{digest})"


def sanitize_for_prompt(text: str, max_length: int = 500) -> str:
    """
    Sanitize email-provided text before including it in the classification prompt.

    Truncates first, removes known injection patterns, then drops characters
    that could be confused with the prompt's own JSON template.
    """
    if not text:
        return ""

    text = text[:max_length]
    text = INJECTION_REGEX.sub("[REDACTED]", text)
    text = re.sub(r"[<>{}|\\]", "", text)

    return text.strip()
