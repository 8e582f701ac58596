"""
Card Service - builds, caches and serves the swipe deck, and records applies.

Orchestrates between:
- email sources (per-user Gmail token, server Gmail credentials, mock JSON)
- CardBuilder (heuristics + LLM enrichment)
- CalendarClient (apply side effect)

The shared deck is cached for CARD_CACHE_TTL_SECONDS. Requests carrying a
per-user access token bypass that cache in both directions.
"""

from __future__ import annotations

import asyncio
import time
from datetime import UTC, datetime, timedelta

from dateutil import parser as date_parser

from tigerswipe.calendar.client import CalendarClient, CalendarEventPayload
from tigerswipe.cards.builder import CardBuilder
from tigerswipe.cards.models import ApplyRecord, ApplyRequest, CalendarWindow, EventCard
from tigerswipe.classification.enrichment import ClassificationEnricher
from tigerswipe.classification.models import CardCategory
from tigerswipe.config import (
    CALENDAR_DEFAULT_DURATION_MINUTES,
    CALENDAR_INFERRED_DURATION_MINUTES,
    CARD_CACHE_TTL_SECONDS,
    MAX_EMAILS_PER_BATCH,
    REQUIRE_FORM_LINK,
)
from tigerswipe.email.mock_source import MockEmailSource
from tigerswipe.email.models import NormalizedEmail
from tigerswipe.gmail.client import EmailSourceError, GmailSource
from tigerswipe.observability.logging import get_logger
from tigerswipe.observability.telemetry import counter, log_event, time_block
from tigerswipe.storage.cache import Clock, TTLCache
from tigerswipe.utils.links import is_application_form_url
from tigerswipe.utils.redaction import redact

logger = get_logger(__name__)

SHARED_DECK_KEY = "shared"

_EPOCH = datetime.min.replace(tzinfo=UTC)

__all__ = [
    "CardNotFoundError",
    "CardService",
    "CardServiceError",
    "EmailSourceError",
    "get_card_service",
    "infer_event_window",
]


class CardServiceError(Exception):
    """Base exception for card service errors."""

    pass


class CardNotFoundError(CardServiceError):
    """No card with this id in the current deck."""

    pass


def _parse_timestamp(value: str) -> datetime | None:
    try:
        parsed = date_parser.isoparse(value)
    except (ValueError, OverflowError):
        try:
            parsed = date_parser.parse(value)
        except (ValueError, OverflowError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _received_at_sort_key(card: EventCard) -> datetime:
    return _parse_timestamp(card.received_at) or _EPOCH


def infer_event_window(
    card: EventCard,
    duration_minutes: int = CALENDAR_INFERRED_DURATION_MINUTES,
) -> tuple[datetime, datetime] | None:
    """
    Start/end from the card's event date, read in the year the email arrived.

    Returns None when the card has no date or the date does not parse.
    """
    if not card.event_date:
        return None

    received = _parse_timestamp(card.received_at)
    year = received.year if received else datetime.now(UTC).year
    try:
        start = date_parser.parse(f"{card.event_date} {year}")
    except (ValueError, OverflowError):
        counter("cards.apply.unparsed_event_date")
        return None

    if start.tzinfo is None:
        start = start.replace(tzinfo=UTC)
    return start, start + timedelta(minutes=duration_minutes)


class CardService:
    """
    Service layer for the swipe deck.

    Handles deck loading (with a single in-flight refresh for the shared deck),
    filtering by category, and idempotent applies.
    """

    def __init__(
        self,
        builder: CardBuilder,
        mock_source: MockEmailSource | None = None,
        gmail_source: GmailSource | None = None,
        calendar: CalendarClient | None = None,
        cache_ttl_seconds: float = CARD_CACHE_TTL_SECONDS,
        max_emails: int = MAX_EMAILS_PER_BATCH,
        require_form_link: bool = REQUIRE_FORM_LINK,
        clock: Clock = time.time,
    ):
        self.builder = builder
        self.mock_source = mock_source or MockEmailSource()
        self.gmail_source = gmail_source or GmailSource.from_settings()
        self.calendar = calendar or CalendarClient.from_settings()
        self.max_emails = max_emails
        self.require_form_link = require_form_link
        self._clock = clock
        self.deck_cache: TTLCache[list[EventCard]] = TTLCache(
            "card_deck", ttl_seconds=cache_ttl_seconds, clock=clock
        )
        self._refresh_task: asyncio.Task[list[EventCard]] | None = None
        self._applied: dict[str, ApplyRecord] = {}
        self._apply_locks: dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Deck
    # ------------------------------------------------------------------

    async def list_cards(
        self,
        card_type: CardCategory | None = None,
        access_token: str | None = None,
    ) -> list[EventCard]:
        """
        Cards newest first, optionally limited to one category.

        Raises:
            EmailSourceError: If the active email source fails
        """
        cards = await self.load_cards(access_token)
        # cached cards are frozen, tags included
        if card_type is None:
            return list(cards)
        return [card for card in cards if card.type == card_type]

    async def load_cards(self, access_token: str | None = None) -> list[EventCard]:
        """
        Full deck for the caller.

        Per-user decks are rebuilt on every call and never touch the shared
        cache. Concurrent cold-cache callers share one refresh task.
        """
        if access_token:
            counter("cards.deck.per_user")
            return await self._build_deck(access_token)

        cached = self.deck_cache.get(SHARED_DECK_KEY)
        if cached is not None:
            return cached

        task = self._refresh_task
        if task is None:
            task = asyncio.create_task(self._refresh_shared_deck())
            self._refresh_task = task
        else:
            counter("cards.deck.refresh_joined")
        return await asyncio.shield(task)

    async def _refresh_shared_deck(self) -> list[EventCard]:
        try:
            cards = await self._build_deck(None)
            self.deck_cache.put(SHARED_DECK_KEY, cards)
            return cards
        finally:
            self._refresh_task = None

    async def _fetch_emails(self, access_token: str | None) -> list[NormalizedEmail]:
        if access_token:
            return await self.gmail_source.fetch(self.max_emails, access_token=access_token)
        if self.gmail_source.is_configured:
            return await self.gmail_source.fetch(self.max_emails)
        return self.mock_source.load()[: self.max_emails]

    async def _build_deck(self, access_token: str | None) -> list[EventCard]:
        emails = await self._fetch_emails(access_token)

        with time_block("cards.deck_build.latency"):
            built = await asyncio.gather(*(self.builder.build(email) for email in emails))

        cards = [card for card in built if card is not None]
        if self.require_form_link:
            cards = [card for card in cards if is_application_form_url(card.apply_link)]
        cards.sort(key=_received_at_sort_key, reverse=True)

        log_event(
            "cards.deck_built",
            emails=len(emails),
            cards=len(cards),
            per_user=bool(access_token),
        )
        return cards

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    def get_apply_record(self, card_id: str) -> ApplyRecord | None:
        return self._applied.get(card_id)

    async def apply(
        self,
        card_id: str,
        request: ApplyRequest,
        access_token: str | None = None,
    ) -> ApplyRecord:
        """
        Confirm an apply for a card, creating its calendar event once.

        Args:
            card_id: Card to apply to
            request: Apply body (optional explicit calendar window)
            access_token: Per-user token used to look the card up

        Returns:
            The stored ApplyRecord (existing one on repeat calls)

        Raises:
            CardNotFoundError: Unknown card id
            CalendarServiceError: Calendar service failure (nothing is recorded)
        """
        existing = self._applied.get(card_id)
        if existing is not None:
            counter("cards.apply.repeat")
            return existing

        cards = await self.load_cards(access_token)
        card = next((item for item in cards if item.id == card_id), None)
        if card is None:
            raise CardNotFoundError(f"Card {card_id} not found")

        lock = self._apply_locks.setdefault(card_id, asyncio.Lock())
        async with lock:
            existing = self._applied.get(card_id)
            if existing is not None:
                counter("cards.apply.repeat")
                return existing

            start, end = self._event_window(card, request)
            payload = CalendarEventPayload(
                title=card.subject,
                description=f"{card.sender} • {card.preview}",
                start=start,
                end=end,
                location=card.location,
            )
            event_id = await self.calendar.create_event(payload)

            record = ApplyRecord(card_id=card_id, calendar_event_id=event_id)
            self._applied[card_id] = record

        # repeat applies return from _applied before touching a lock
        self._apply_locks.pop(card_id, None)
        counter("cards.apply.created")
        log_event("cards.applied", card_id=redact(card_id), calendar_event_id=event_id)
        return record

    def _event_window(self, card: EventCard, request: ApplyRequest) -> tuple[datetime, datetime]:
        window = request.calendar
        if window is None:
            inferred = infer_event_window(card)
            if inferred is not None:
                return inferred
            window = CalendarWindow()

        duration = timedelta(minutes=CALENDAR_DEFAULT_DURATION_MINUTES)
        start, end = window.start, window.end
        if start is None:
            start = end - duration if end is not None else datetime.fromtimestamp(self._clock(), UTC)
        if end is None:
            end = start + duration
        return start, end


_service: CardService | None = None


def get_card_service() -> CardService:
    """Get or create singleton CardService instance."""
    global _service
    if _service is None:
        _service = CardService(builder=CardBuilder(ClassificationEnricher.from_settings()))
    return _service


def reset_card_service() -> None:
    """Drop the singleton (tests and reconfiguration)."""
    global _service
    _service = None
