"""
Pytest configuration for TigerSwipe tests

Provides fixtures shared across unit and integration tests: email factories,
a scripted classification backend, a controllable clock and a recording
calendar client.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from tigerswipe.calendar.client import CalendarEventPayload
from tigerswipe.email.models import NormalizedEmail
from tigerswipe.observability.telemetry import reset_counters
from tigerswipe.utils.links import extract_links


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeBackend:
    """Classification backend that replays canned replies (or raises them)."""

    model_name = "fake-model"

    def __init__(self, *replies: str | Exception):
        self.replies = list(replies)
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply

    @property
    def calls(self) -> int:
        return len(self.prompts)


class RecordingCalendar:
    """Calendar client double that records payloads and returns sequential ids."""

    is_configured = True

    def __init__(self, error: Exception | None = None):
        self.payloads: list[CalendarEventPayload] = []
        self.error = error

    async def create_event(self, payload: CalendarEventPayload) -> str:
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error
        return f"evt-{len(self.payloads)}"


@pytest.fixture(autouse=True)
def _reset_telemetry():
    reset_counters()
    yield
    reset_counters()


@pytest.fixture
def make_email() -> Callable[..., NormalizedEmail]:
    """Factory for NormalizedEmail; links default to those found in the body."""

    def _make(
        id: str = "email-1",
        subject: str = "Hello",
        body: str = "Just a note",
        sender: str = "Sender <sender@example.com>",
        received_at: str = "2025-03-01T12:00:00+00:00",
        links: list[str] | None = None,
    ) -> NormalizedEmail:
        return NormalizedEmail(
            id=id,
            from_address=sender,
            subject=subject,
            body=body,
            received_at=received_at,
            links=extract_links(body) if links is None else links,
        )

    return _make


@pytest.fixture
def founders_summit_email(make_email) -> NormalizedEmail:
    return make_email(
        id="summit-1",
        subject="Founders Summit invite",
        body="Join us for the Founders Summit on March 20 in Miami. Apply at https://test.org/apply",
        links=["https://test.org/apply"],
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_backend_factory() -> Callable[..., FakeBackend]:
    return FakeBackend


@pytest.fixture
def recording_calendar() -> RecordingCalendar:
    return RecordingCalendar()


@pytest.fixture
def recording_calendar_factory() -> Callable[..., RecordingCalendar]:
    return RecordingCalendar
