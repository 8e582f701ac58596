"""Unit tests for the Gmail REST source, using httpx.MockTransport.

Tests cover:
- Bearer token from a per-user access token
- Refresh-token exchange when no token is given
- Pagination up to max_results
- Retry of transient per-message failures
- Failures surfacing as EmailSourceError (no partial batch)
"""

from __future__ import annotations

import base64

import httpx
import pytest
from google.auth.exceptions import RefreshError

from tigerswipe.gmail import client as gmail_client
from tigerswipe.gmail.client import (
    GOOGLE_TOKEN_URL,
    EmailSourceError,
    GmailNotConfiguredError,
    GmailSource,
)
from tigerswipe.observability.telemetry import get_counter


def b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def gmail_message(msg_id: str, body: str) -> dict:
    return {
        "id": msg_id,
        "payload": {
            "mimeType": "text/plain",
            "headers": [{"name": "Subject", "value": f"Subject {msg_id}"}],
            "body": {"data": b64(body)},
        },
    }


class FakeGmail:
    """Routes Gmail API requests to canned responses and records them."""

    def __init__(self, pages: list[list[str]], bodies: dict[str, str] | None = None):
        self.pages = pages
        self.bodies = bodies or {}
        self.requests: list[httpx.Request] = []
        self.get_failures: dict[str, list[int]] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.path.endswith("/messages"):
            page_token = request.url.params.get("pageToken")
            index = int(page_token) if page_token else 0
            data: dict = {"messages": [{"id": msg_id} for msg_id in self.pages[index]]}
            if index + 1 < len(self.pages):
                data["nextPageToken"] = str(index + 1)
            return httpx.Response(200, json=data)

        msg_id = request.url.path.rsplit("/", 1)[-1]
        failures = self.get_failures.get(msg_id)
        if failures:
            return httpx.Response(failures.pop(0))
        return httpx.Response(200, json=gmail_message(msg_id, self.bodies.get(msg_id, f"body {msg_id}")))


def make_source(fake: FakeGmail, **kwargs) -> GmailSource:
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake))
    return GmailSource(http_client=client, retry_backoff_seconds=0, **kwargs)


class FakeCredentials:
    """Stands in for google.oauth2.credentials.Credentials; refresh hands out server-token."""

    instances: list[FakeCredentials] = []
    refresh_error: Exception | None = None

    def __init__(self, token=None, **kwargs):
        self.token = token
        self.kwargs = kwargs
        self.refreshes = 0
        FakeCredentials.instances.append(self)

    @property
    def valid(self) -> bool:
        return self.token is not None

    def refresh(self, request) -> None:
        self.refreshes += 1
        if FakeCredentials.refresh_error is not None:
            raise FakeCredentials.refresh_error
        self.token = "server-token"


@pytest.fixture
def fake_credentials(monkeypatch):
    FakeCredentials.instances = []
    FakeCredentials.refresh_error = None
    monkeypatch.setattr(gmail_client, "Credentials", FakeCredentials)
    monkeypatch.setattr(gmail_client, "Request", lambda: None)
    return FakeCredentials


CONFIGURED = {
    "client_id": "cid",
    "client_secret": "secret",
    "refresh_token": "refresh",
    "user_email": "me@example.com",
}


class TestGmailSource:
    @pytest.mark.asyncio
    async def test_access_token_used_as_bearer(self):
        fake = FakeGmail([["m1", "m2"]])
        emails = await make_source(fake).fetch(10, access_token="user-token")

        assert [email.id for email in emails] == ["m1", "m2"]
        assert all(r.headers["Authorization"] == "Bearer user-token" for r in fake.requests)
        assert not any(str(r.url).startswith(GOOGLE_TOKEN_URL) for r in fake.requests)

    @pytest.mark.asyncio
    async def test_refresh_token_exchanged_once_while_valid(self, fake_credentials):
        fake = FakeGmail([["m1"]])
        source = make_source(fake, **CONFIGURED)

        emails = await source.fetch(10)
        await source.fetch(10)

        assert [email.id for email in emails] == ["m1"]
        assert fake.requests[-1].headers["Authorization"] == "Bearer server-token"
        [credentials] = fake_credentials.instances
        assert credentials.refreshes == 1
        assert credentials.kwargs["refresh_token"] == "refresh"
        assert credentials.kwargs["token_uri"] == GOOGLE_TOKEN_URL

    @pytest.mark.asyncio
    async def test_refresh_failure_raises_source_error(self, fake_credentials):
        fake_credentials.refresh_error = RefreshError("invalid_grant")
        fake = FakeGmail([["m1"]])

        with pytest.raises(EmailSourceError):
            await make_source(fake, **CONFIGURED).fetch(10)
        assert fake.requests == []
        assert get_counter("gmail.token_refresh.error") == 1

    @pytest.mark.asyncio
    async def test_non_json_list_response_raises_source_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>not json</html>")

        source = GmailSource(http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        with pytest.raises(EmailSourceError):
            await source.fetch(10, access_token="t")

    @pytest.mark.asyncio
    async def test_non_json_message_response_raises_source_error(self):
        fake = FakeGmail([["m1"]])

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/messages"):
                return fake(request)
            return httpx.Response(200, text="oops")

        source = GmailSource(http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        with pytest.raises(EmailSourceError):
            await source.fetch(10, access_token="t")
        assert get_counter("gmail.get.invalid_json") == 1

    @pytest.mark.asyncio
    async def test_not_configured_without_token(self):
        with pytest.raises(GmailNotConfiguredError):
            await make_source(FakeGmail([[]])).fetch(10)

    @pytest.mark.asyncio
    async def test_paginates_up_to_max_results(self):
        fake = FakeGmail([["m1", "m2"], ["m3", "m4"], ["m5"]])
        emails = await make_source(fake).fetch(3, access_token="t")
        assert [email.id for email in emails] == ["m1", "m2", "m3"]

    @pytest.mark.asyncio
    async def test_empty_bodies_dropped(self):
        fake = FakeGmail([["m1", "m2"]], bodies={"m2": "   "})
        emails = await make_source(fake).fetch(10, access_token="t")
        assert [email.id for email in emails] == ["m1"]

    @pytest.mark.asyncio
    async def test_transient_get_failure_is_retried(self):
        fake = FakeGmail([["m1"]])
        fake.get_failures["m1"] = [503]
        emails = await make_source(fake).fetch(10, access_token="t")
        assert [email.id for email in emails] == ["m1"]

    @pytest.mark.asyncio
    async def test_auth_failure_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": "invalid_token"})

        source = GmailSource(http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        with pytest.raises(EmailSourceError):
            await source.fetch(10, access_token="expired")

    @pytest.mark.asyncio
    async def test_persistent_server_error_fails_whole_batch(self):
        fake = FakeGmail([["m1", "m2"]])
        fake.get_failures["m2"] = [500, 500, 500]
        with pytest.raises(EmailSourceError):
            await make_source(fake, max_retries=3).fetch(10, access_token="t")
