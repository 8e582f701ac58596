"""Gmail API email source (read-only).

Lists inbox messages (paginated) and fetches each one with format=full,
concurrently. Auth is either a per-user OAuth access token passed in by the
caller, or the server-wide refresh token, refreshed through google-auth
Credentials and reused until it expires.

Transient per-message failures (429, 5xx) are retried with exponential backoff;
anything else fails the whole batch with EmailSourceError.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from tigerswipe.config import (
    GMAIL_CLIENT_ID,
    GMAIL_CLIENT_SECRET,
    GMAIL_MAX_RETRIES,
    GMAIL_QUERY,
    GMAIL_REFRESH_TOKEN,
    GMAIL_TIMEOUT_SECONDS,
    GMAIL_USER_EMAIL,
)
from tigerswipe.email.models import NormalizedEmail
from tigerswipe.email.normalizer import drop_empty
from tigerswipe.gmail.parser import GmailParsingError, parse_message
from tigerswipe.observability.logging import get_logger
from tigerswipe.observability.telemetry import counter, log_event, time_block

logger = get_logger(__name__)

GMAIL_API_BASE = "https://gmail.googleapis.com/gmail/v1/users/me"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]

_RETRYABLE_STATUSES = {429, 500, 502, 503, 504}


class EmailSourceError(RuntimeError):
    """The inbox could not be loaded; the batch fails as a whole."""


class GmailNotConfiguredError(EmailSourceError):
    """No access token was given and server credentials are missing."""


class _TransientGmailError(Exception):
    """Retryable Gmail API failure (rate limit or server error)."""


class GmailSource:
    """Fetches and normalizes inbox messages through the Gmail REST API."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        refresh_token: str | None = None,
        user_email: str | None = None,
        query: str = GMAIL_QUERY,
        http_client: httpx.AsyncClient | None = None,
        max_retries: int = GMAIL_MAX_RETRIES,
        retry_backoff_seconds: float = 0.5,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.user_email = user_email
        self.query = query
        self.max_retries = max(1, max_retries)
        self.retry_backoff_seconds = retry_backoff_seconds
        self._http_client = http_client
        self._credentials: Credentials | None = None

    @classmethod
    def from_settings(cls) -> GmailSource:
        return cls(
            client_id=GMAIL_CLIENT_ID,
            client_secret=GMAIL_CLIENT_SECRET,
            refresh_token=GMAIL_REFRESH_TOKEN,
            user_email=GMAIL_USER_EMAIL,
        )

    @property
    def is_configured(self) -> bool:
        """True when server-wide refresh-token credentials are all present."""
        return bool(
            self.client_id and self.client_secret and self.refresh_token and self.user_email
        )

    async def fetch(self, max_results: int = 50, access_token: str | None = None) -> list[NormalizedEmail]:
        """
        Fetch up to max_results inbox messages as NormalizedEmail.

        Args:
            max_results: Maximum number of messages to fetch
            access_token: Per-user OAuth token; takes precedence over server credentials

        Raises:
            GmailNotConfiguredError: No token and no server credentials
            EmailSourceError: Any API failure (no partial batch is returned)
        """
        if not access_token and not self.is_configured:
            raise GmailNotConfiguredError(
                "Gmail API not configured. Provide an access token or set GMAIL_CLIENT_ID, "
                "GMAIL_CLIENT_SECRET, GMAIL_REFRESH_TOKEN, and GMAIL_USER_EMAIL."
            )

        if self._http_client is not None:
            return await self._fetch(self._http_client, max_results, access_token)

        async with httpx.AsyncClient(timeout=GMAIL_TIMEOUT_SECONDS) as client:
            return await self._fetch(client, max_results, access_token)

    async def _fetch(
        self, client: httpx.AsyncClient, max_results: int, access_token: str | None
    ) -> list[NormalizedEmail]:
        try:
            with time_block("gmail.fetch.latency"):
                token = access_token or await self._server_access_token()
                headers = {"Authorization": f"Bearer {token}"}
                message_ids = await self._list_message_ids(client, headers, max_results)
                messages = await asyncio.gather(
                    *(self._get_message(client, headers, message_id) for message_id in message_ids)
                )
        except EmailSourceError:
            counter("gmail.fetch.error")
            raise
        except (httpx.HTTPError, _TransientGmailError) as exc:
            counter("gmail.fetch.error")
            log_event("gmail.fetch.error", error=type(exc).__name__)
            raise EmailSourceError(f"Failed to fetch Gmail emails: {exc}") from exc

        emails: list[NormalizedEmail] = []
        for message_id, message in zip(message_ids, messages, strict=True):
            try:
                parsed = parse_message(message, fallback_id=message_id)
            except GmailParsingError as exc:
                counter("gmail.parse_failed.count")
                logger.warning("Skipping unparseable Gmail message: %s", exc)
                continue
            if parsed is not None:
                emails.append(parsed)

        log_event("gmail.fetched", listed=len(message_ids), normalized=len(emails))
        return drop_empty(emails)

    async def _server_access_token(self) -> str:
        """Access token for the server account, refreshed only once it has expired."""
        if self._credentials is None:
            self._credentials = Credentials(
                token=None,
                refresh_token=self.refresh_token,
                token_uri=GOOGLE_TOKEN_URL,
                client_id=self.client_id,
                client_secret=self.client_secret,
                scopes=GMAIL_SCOPES,
            )

        credentials = self._credentials
        if not credentials.valid:
            try:
                # google-auth refreshes synchronously
                await asyncio.to_thread(credentials.refresh, Request())
            except (GoogleAuthError, ValueError) as e:
                counter("gmail.token_refresh.error")
                logger.error("Gmail token refresh failed: %s", e)
                raise EmailSourceError(f"Gmail token refresh failed: {e}") from e
            counter("gmail.token_refreshed.count")

        if not credentials.token:
            raise EmailSourceError("Gmail token refresh returned no access token")
        return credentials.token

    async def _list_message_ids(
        self, client: httpx.AsyncClient, headers: dict[str, str], max_results: int
    ) -> list[str]:
        message_ids: list[str] = []
        page_token: str | None = None

        while len(message_ids) < max_results:
            params: dict[str, Any] = {
                "maxResults": max_results - len(message_ids),
                "q": self.query,
            }
            if page_token:
                params["pageToken"] = page_token

            response = await client.get(f"{GMAIL_API_BASE}/messages", headers=headers, params=params)
            self._raise_for_status(response, "list")

            data = self._json(response, "list")
            message_ids.extend(msg["id"] for msg in data.get("messages", []) if msg.get("id"))
            page_token = data.get("nextPageToken")
            if not page_token:
                break

        counter("gmail.messages.listed", len(message_ids))
        return message_ids[:max_results]

    async def _get_message(
        self, client: httpx.AsyncClient, headers: dict[str, str], message_id: str
    ) -> dict[str, Any]:
        @retry(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(
                multiplier=self.retry_backoff_seconds, min=self.retry_backoff_seconds, max=8
            ),
            retry=retry_if_exception_type(_TransientGmailError),
            reraise=True,
        )
        async def _get() -> dict[str, Any]:
            response = await client.get(
                f"{GMAIL_API_BASE}/messages/{message_id}",
                headers=headers,
                params={"format": "full"},
            )
            self._raise_for_status(response, "get")
            return self._json(response, "get")

        return await _get()

    @staticmethod
    def _json(response: httpx.Response, operation: str) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            counter(f"gmail.{operation}.invalid_json")
            raise EmailSourceError(f"Gmail {operation} returned a non-JSON body") from e
        if not isinstance(data, dict):
            counter(f"gmail.{operation}.invalid_json")
            raise EmailSourceError(f"Gmail {operation} returned unexpected JSON")
        return data

    @staticmethod
    def _raise_for_status(response: httpx.Response, operation: str) -> None:
        if response.status_code == 200:
            return
        if response.status_code in _RETRYABLE_STATUSES:
            counter(f"gmail.{operation}.transient_error")
            logger.warning("Gmail %s returned %d, will retry", operation, response.status_code)
            raise _TransientGmailError(f"Gmail {operation} returned {response.status_code}")
        logger.error("Gmail %s failed with status %d", operation, response.status_code)
        raise EmailSourceError(f"Gmail {operation} failed: {response.status_code}")
