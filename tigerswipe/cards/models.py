"""
Card domain models.

Attributes are snake_case in Python; JSON uses camelCase aliases
(applyLink, receivedAt, ...) to match the swipe client.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from tigerswipe.classification.models import Atmosphere, CardCategory, ClubType, EventType


def utc_now() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EventCard(CamelModel):
    """The user-facing unit: one email plus its classification and resolved apply link."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Source email id")
    subject: str
    sender: str
    preview: str = Field(..., max_length=180, description="Summary or body excerpt")
    type: CardCategory
    apply_link: str = Field(..., description="Resolved application URL")
    event_date: str | None = None
    location: str | None = None
    tags: tuple[str, ...] = ()
    received_at: str = Field(..., description="ISO-8601 timestamp of the source email")
    event_type: EventType | None = None
    club_type: ClubType | None = None
    atmosphere: Atmosphere | None = None


class CardListResponse(CamelModel):
    data: list[EventCard]


class CalendarWindow(CamelModel):
    """Client-chosen start and/or end for the calendar event; gaps are filled in."""

    start: datetime | None = None
    end: datetime | None = None

    @model_validator(mode="after")
    def _check_order(self) -> CalendarWindow:
        if self.start is not None and self.end is not None and self.end <= self.start:
            raise ValueError("calendar end must be after start")
        return self


class ApplyRequest(CamelModel):
    status: Literal["applied"]
    calendar: CalendarWindow | None = None


class ApplyRecord(CamelModel):
    """Bookkeeping for a confirmed apply; at most one per card id."""

    model_config = ConfigDict(frozen=True)

    card_id: str
    applied_at: datetime = Field(default_factory=utc_now)
    calendar_event_id: str | None = None


class ApplyResponse(CamelModel):
    status: Literal["ok"] = "ok"
    calendar_event_id: str | None = None
