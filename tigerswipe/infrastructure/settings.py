"""
Application-wide settings and environment configuration
"""

from __future__ import annotations

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent.parent

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "4000"))
LOG_LEVEL = os.getenv("TIGERSWIPE_LOG_LEVEL", os.getenv("LOG_LEVEL", "INFO"))

# Gemini (classification service). No API key means heuristic-only mode.
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
GEMINI_MAX_TOKENS = int(os.getenv("GEMINI_MAX_TOKENS", "400"))
GEMINI_TEMPERATURE = float(os.getenv("GEMINI_TEMPERATURE", "0.2"))

# Gmail (server-wide credentials; per-user access tokens arrive per request)
GMAIL_CLIENT_ID = os.getenv("GMAIL_CLIENT_ID")
GMAIL_CLIENT_SECRET = os.getenv("GMAIL_CLIENT_SECRET")
GMAIL_REFRESH_TOKEN = os.getenv("GMAIL_REFRESH_TOKEN")
GMAIL_USER_EMAIL = os.getenv("GMAIL_USER_EMAIL")
GMAIL_QUERY = os.getenv("GMAIL_QUERY", "is:unread OR in:inbox")

# Calendar service
CALENDAR_URL = os.getenv("CALENDAR_URL")
CALENDAR_API_KEY = os.getenv("CALENDAR_API_KEY")

# Mock dataset used when no Gmail source is configured
MOCK_EMAIL_PATH = Path(os.getenv("MOCK_EMAIL_PATH", str(PROJECT_ROOT / "data" / "mock_emails.json")))
