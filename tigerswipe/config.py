"""Centralized configuration for the TigerSwipe backend.

Re-exports everything from tigerswipe.infrastructure.settings so callers have a
single import point, then adds typed constants for the card pipeline, the LLM
layer and the API. Environment variable overrides use safe defaults so the app
starts without extra env configuration (mock inbox, heuristic-only mode).
"""

from __future__ import annotations

import os

from tigerswipe.infrastructure.settings import *  # noqa: F401, F403


def _env_flag(key: str, default: str) -> bool:
    return os.getenv(key, default).lower() in ("true", "1", "yes")


# --- App ---
APP_VERSION: str = "0.1.0"

# --- Card pipeline ---
PREVIEW_MAX_CHARS: int = 180
MAX_TAGS: int = 6
MAX_EMAILS_PER_BATCH: int = int(os.getenv("MAX_EMAILS_PER_BATCH", "50"))
CARD_CACHE_TTL_SECONDS: float = float(os.getenv("CARD_CACHE_TTL_SECONDS", "300"))
APPLICATION_REDIRECT_BASE: str = os.getenv(
    "APPLICATION_REDIRECT_BASE", "https://tigerswipe.local/apply"
)
# Only surface cards whose apply link is a recognized application form
REQUIRE_FORM_LINK: bool = _env_flag("REQUIRE_FORM_LINK", "true")

# --- LLM ---
LLM_CACHE_TTL_SECONDS: float = float(os.getenv("LLM_CACHE_TTL_SECONDS", "900"))
LLM_BODY_TRUNCATION: int = 4000

# --- Gmail ---
GMAIL_MAX_RETRIES: int = int(os.getenv("GMAIL_MAX_RETRIES", "3"))
GMAIL_TIMEOUT_SECONDS: float = float(os.getenv("GMAIL_TIMEOUT_SECONDS", "20"))

# --- Calendar ---
CALENDAR_DEFAULT_DURATION_MINUTES: int = 60
CALENDAR_INFERRED_DURATION_MINUTES: int = 120

# --- API ---
ALLOWED_ORIGINS: list[str] = [
    origin.strip()
    for origin in os.getenv(
        "ALLOWED_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
    ).split(",")
    if origin.strip()
]
