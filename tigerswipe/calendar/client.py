"""
Calendar service client used by the apply flow.

POSTs an event to <CALENDAR_URL>/events and returns the service's event id.
Without a configured URL it returns a synthesized mock id so apply still works
in local development.
"""

from __future__ import annotations

import time
from datetime import datetime

import httpx
from pydantic import BaseModel, Field

from tigerswipe.config import CALENDAR_API_KEY, CALENDAR_URL
from tigerswipe.observability.logging import get_logger
from tigerswipe.observability.telemetry import counter, log_event

logger = get_logger(__name__)

CALENDAR_TIMEOUT_SECONDS = 10.0


class CalendarServiceError(RuntimeError):
    """The calendar service rejected the event or could not be reached."""


class CalendarEventPayload(BaseModel):
    title: str
    description: str | None = None
    start: datetime
    end: datetime
    location: str | None = Field(default=None, description="Free-form place or 'virtual'")


class CalendarClient:
    """Creates calendar events through the configured calendar service."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.api_key = api_key
        self._http_client = http_client

    @classmethod
    def from_settings(cls) -> CalendarClient:
        return cls(base_url=CALENDAR_URL, api_key=CALENDAR_API_KEY)

    @property
    def is_configured(self) -> bool:
        return self.base_url is not None

    async def create_event(self, payload: CalendarEventPayload) -> str:
        """
        Create an event and return its id.

        Raises:
            CalendarServiceError: Non-2xx status or transport failure
        """
        if not self.base_url:
            logger.warning("CALENDAR_URL not set; returning mock event id")
            counter("calendar.mock_event")
            return f"mock-event-{int(time.time() * 1000)}"

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        body = payload.model_dump(mode="json", exclude_none=True)
        url = f"{self.base_url}/events"

        try:
            if self._http_client is not None:
                response = await self._http_client.post(url, json=body, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=CALENDAR_TIMEOUT_SECONDS) as client:
                    response = await client.post(url, json=body, headers=headers)
        except httpx.HTTPError as e:
            counter("calendar.error")
            logger.error("Calendar service unreachable: %s", e)
            raise CalendarServiceError(f"Failed to create calendar event: {e}") from e

        if not response.is_success:
            counter("calendar.error")
            logger.error("Calendar service returned %d", response.status_code)
            raise CalendarServiceError(
                f"Failed to create calendar event: {response.status_code} {response.text}"
            )

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        event_id = data.get("id") or data.get("eventId") or "mock-event"
        counter("calendar.created")
        log_event("calendar.event_created", event_id=event_id)
        return str(event_id)
