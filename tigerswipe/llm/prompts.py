"""
Classification prompt for the enrichment layer.

Bump PROMPT_VERSION whenever the wording or the requested fields change: it is
part of the LLM cache key, so cached replies from an older prompt stop matching.
"""

from __future__ import annotations

from tigerswipe.classification.models import Atmosphere, ClubType, EventType
from tigerswipe.config import LLM_BODY_TRUNCATION
from tigerswipe.email.models import NormalizedEmail
from tigerswipe.utils.redaction import sanitize_for_prompt

PROMPT_VERSION = "v1"


def _choices(enum_cls) -> str:
    return " | ".join(f'"{member.value}"' for member in enum_cls)


CLASSIFICATION_PROMPT_TEMPLATE = """You are triaging inbox opportunities for student founders.
Decide whether this email is a real event or club opportunity and classify it.
Respond with a single JSON object and nothing else, using exactly these fields:
{{
  "skip": true | false,
  "type": "event" | "club",
  "eventType": {event_types} | null,
  "clubType": {club_types} | null,
  "atmosphere": {atmospheres} | null,
  "eventDate": "<month day or date range>" | null,
  "location": "<city or virtual>" | null,
  "tags": ["<keyword>", ...],
  "summary": "<one sentence summary>",
  "googleFormUrl": "<full Google Form URL if present, otherwise null>"
}}
Rules:
- Set "skip" to true for newsletters, receipts, promotions and anything that is not an opportunity.
- Use "eventType" only when type is "event" and "clubType" only when type is "club".
- At most 6 short tags.
- Look for Google Forms links (https://docs.google.com/forms/... or https://forms.gle/...) in the body or links and copy the complete URL.

Email metadata:
From: {sender}
Subject: {subject}
Body:
{body}
Links found: {links}"""


def build_classification_prompt(email: NormalizedEmail) -> str:
    """Render the prompt for one email with every email-provided value sanitized."""
    return CLASSIFICATION_PROMPT_TEMPLATE.format(
        event_types=_choices(EventType),
        club_types=_choices(ClubType),
        atmospheres=_choices(Atmosphere),
        sender=sanitize_for_prompt(email.from_address, max_length=200),
        subject=sanitize_for_prompt(email.subject, max_length=300),
        body=sanitize_for_prompt(email.body, max_length=LLM_BODY_TRUNCATION),
        links=", ".join(email.links) or "(none)",
    )
