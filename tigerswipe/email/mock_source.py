"""
Static JSON inbox used when no Gmail source is configured.

The file is read once per source instance; a missing or corrupt file yields an
empty inbox rather than an error so the deck still renders.
"""

from __future__ import annotations

import json
from pathlib import Path

from tigerswipe.config import MOCK_EMAIL_PATH
from tigerswipe.email.models import NormalizedEmail
from tigerswipe.email.normalizer import normalize_batch
from tigerswipe.observability.logging import get_logger
from tigerswipe.observability.telemetry import counter, log_event

logger = get_logger(__name__)


class MockEmailSource:
    """Loads the mock inbox from a JSON array on disk."""

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path) if path is not None else MOCK_EMAIL_PATH
        self._emails: list[NormalizedEmail] | None = None

    def load(self) -> list[NormalizedEmail]:
        """
        Return the normalized mock inbox.

        Side Effects:
            - Reads the JSON file on first call
            - Logs a warning if the file is missing, an error if it cannot be parsed
        """
        if self._emails is not None:
            return self._emails

        if not self.path.exists():
            logger.warning("Mock emails file not found at %s, returning empty inbox", self.path)
            counter("email.mock.missing")
            self._emails = []
            return self._emails

        try:
            raw_items = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Error loading mock emails from %s: %s", self.path, exc)
            counter("email.mock.load_error")
            self._emails = []
            return self._emails

        if not isinstance(raw_items, list):
            logger.error("Mock emails file %s must contain a JSON array", self.path)
            counter("email.mock.load_error")
            self._emails = []
            return self._emails

        self._emails = normalize_batch(raw_items)
        log_event("email.mock.loaded", count=len(self._emails))
        return self._emails
