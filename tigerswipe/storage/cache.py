"""
In-memory TTL cache shared by the LLM enrichment layer and the card deck.

Expiry is lazy: a stale entry is dropped by the lookup that finds it. Time comes
from an injected clock (epoch seconds).
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from tigerswipe.observability.telemetry import counter, log_event

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass
class CacheEntry(Generic[T]):
    value: T
    expires_at: float


class TTLCache(Generic[T]):
    """Keyed values that stop being served once `ttl_seconds` have elapsed."""

    def __init__(self, name: str, ttl_seconds: float, clock: Clock = time.time):
        self.name = name
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}

    def get(self, key: str) -> T | None:
        entry = self._entries.get(key)
        if entry is None:
            counter(f"cache.{self.name}.miss")
            return None

        if self._clock() >= entry.expires_at:
            del self._entries[key]
            counter(f"cache.{self.name}.expired")
            log_event("cache.expired", cache=self.name, key=key[:12])
            return None

        counter(f"cache.{self.name}.hit")
        return entry.value

    def put(self, key: str, value: T) -> None:
        """Store (or replace) a value; its expiry restarts from now."""
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + self.ttl_seconds)
        counter(f"cache.{self.name}.write")

    def stats(self) -> dict[str, int]:
        now = self._clock()
        active = sum(1 for entry in self._entries.values() if now < entry.expires_at)
        return {
            "total_entries": len(self._entries),
            "active_entries": active,
            "expired_entries": len(self._entries) - active,
        }
