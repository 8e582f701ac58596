"""
Builds EventCards from normalized emails.

The builder is the only place an email can disappear from the deck: a
classification with skip=True yields None instead of a card.
"""

from __future__ import annotations

from urllib.parse import urlencode

from tigerswipe.classification.enrichment import ClassificationEnricher, FallbackFn
from tigerswipe.classification.heuristics import classify_heuristically
from tigerswipe.classification.models import ClassificationResult
from tigerswipe.cards.models import EventCard
from tigerswipe.config import APPLICATION_REDIRECT_BASE, PREVIEW_MAX_CHARS
from tigerswipe.email.models import NormalizedEmail
from tigerswipe.observability.telemetry import counter, log_event
from tigerswipe.utils.links import first_google_form_url
from tigerswipe.utils.redaction import redact


def fallback_apply_link(email: NormalizedEmail, base: str = APPLICATION_REDIRECT_BASE) -> str:
    """Synthesized redirect carrying the email id as the rid query parameter."""
    separator = "&" if "?" in base else "?"
    return f"{base}{separator}{urlencode({'rid': email.id})}"


def resolve_apply_link(
    email: NormalizedEmail,
    classification: ClassificationResult,
    redirect_base: str = APPLICATION_REDIRECT_BASE,
) -> str:
    """
    First match wins:
        1. google_form_url from the classification
        2. a Google Form re-extracted from the email body/links
        3. the first raw link in the email
        4. the synthesized redirect
    """
    if classification.google_form_url:
        return classification.google_form_url

    form_url = first_google_form_url(email.body, email.links)
    if form_url:
        return form_url

    if email.links:
        return email.links[0]

    counter("cards.apply_link.synthesized")
    return fallback_apply_link(email, redirect_base)


def build_preview(email: NormalizedEmail, classification: ClassificationResult) -> str:
    text = classification.summary or email.body[:PREVIEW_MAX_CHARS].strip()
    return text[:PREVIEW_MAX_CHARS]


class CardBuilder:
    """Classifies an email (LLM over heuristics) and assembles its card."""

    def __init__(
        self,
        enricher: ClassificationEnricher,
        redirect_base: str = APPLICATION_REDIRECT_BASE,
        fallback_fn: FallbackFn = classify_heuristically,
    ):
        self.enricher = enricher
        self.redirect_base = redirect_base
        self.fallback_fn = fallback_fn

    async def build(self, email: NormalizedEmail) -> EventCard | None:
        """Return the card for an email, or None when the classifier says skip."""
        classification = await self.enricher.classify(email, self.fallback_fn)

        if classification.skip:
            counter("cards.skipped")
            log_event("cards.skipped", email_id=redact(email.id))
            return None

        counter("cards.built")
        return EventCard(
            id=email.id,
            subject=email.subject,
            sender=email.from_address,
            preview=build_preview(email, classification),
            type=classification.type,
            apply_link=resolve_apply_link(email, classification, self.redirect_base),
            event_date=classification.event_date,
            location=classification.location,
            tags=tuple(classification.tags),
            received_at=email.received_at,
            event_type=classification.event_type,
            club_type=classification.club_type,
            atmosphere=classification.atmosphere,
        )
