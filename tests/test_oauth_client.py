"""
Tests for the OAuth2 client: consent URLs, grant requests, response parsing.
"""

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from delegation.errors import InternalError, ProviderError
from providers.base import Endpoint
from providers.oauth import ClientConfig, OAuth2Client, ProviderToken

_ENDPOINT = Endpoint(
    auth_url="https://provider.example/authorize",
    token_url="https://provider.example/token",
)


def _config(**overrides) -> ClientConfig:
    values = dict(
        client_id="client",
        client_secret="secret",
        redirect_url="https://x/cb",
        endpoint=_ENDPOINT,
        scopes=("mail:imap_ro",),
    )
    values.update(overrides)
    return ClientConfig(**values)


def _client(handler) -> OAuth2Client:
    return OAuth2Client(transport=httpx.MockTransport(handler))


class TestAuthCodeURL:
    def test_carries_client_and_state(self):
        url = _config().auth_code_url("state-123")
        parts = urlsplit(url)
        query = parse_qs(parts.query)

        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == _ENDPOINT.auth_url
        assert query["response_type"] == ["code"]
        assert query["client_id"] == ["client"]
        assert query["redirect_uri"] == ["https://x/cb"]
        assert query["scope"] == ["mail:imap_ro"]
        assert query["state"] == ["state-123"]

    def test_scope_omitted_when_empty(self):
        query = parse_qs(urlsplit(_config(scopes=()).auth_code_url("s")).query)
        assert "scope" not in query

    def test_existing_query_is_extended(self):
        endpoint = Endpoint(auth_url="https://p.example/auth?display=page", token_url="")
        url = _config(endpoint=endpoint).auth_code_url("s")
        assert url.startswith("https://p.example/auth?display=page&")


class TestExchange:
    @pytest.mark.asyncio
    async def test_posts_authorization_code_grant(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["form"] = parse_qs(request.content.decode())
            return httpx.Response(
                200,
                json={
                    "access_token": "at",
                    "refresh_token": "rt",
                    "token_type": "bearer",
                    "expires_in": 3600,
                },
            )

        token = await _client(handler).exchange(_config(), "the-code")

        assert seen["url"] == _ENDPOINT.token_url
        assert seen["form"]["grant_type"] == ["authorization_code"]
        assert seen["form"]["code"] == ["the-code"]
        assert seen["form"]["client_id"] == ["client"]
        assert seen["form"]["client_secret"] == ["secret"]
        assert seen["form"]["redirect_uri"] == ["https://x/cb"]

        assert token.access_token == "at"
        assert token.refresh_token == "rt"
        assert token.token_type == "bearer"
        remaining = token.expiry - datetime.now(timezone.utc)
        assert timedelta(minutes=59) < remaining <= timedelta(hours=1)

    @pytest.mark.asyncio
    async def test_form_encoded_response(self):
        def handler(request):
            return httpx.Response(
                200,
                text="access_token=at&refresh_token=rt&expires_in=0",
                headers={"content-type": "application/x-www-form-urlencoded"},
            )

        token = await _client(handler).exchange(_config(), "code")
        assert token.access_token == "at"
        assert token.token_type == "Bearer"
        assert token.expiry is None

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        def handler(request):
            return httpx.Response(400, json={"error": "invalid_grant"})

        with pytest.raises(ProviderError):
            await _client(handler).exchange(_config(), "code")

    @pytest.mark.asyncio
    async def test_missing_access_token_raises(self):
        def handler(request):
            return httpx.Response(200, json={"token_type": "bearer"})

        with pytest.raises(ProviderError, match="access_token"):
            await _client(handler).exchange(_config(), "code")

    @pytest.mark.asyncio
    async def test_transport_failure_is_internal(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(InternalError):
            await _client(handler).exchange(_config(), "code")


class TestRefresh:
    @pytest.mark.asyncio
    async def test_keeps_refresh_token_when_not_rotated(self):
        forms = []

        def handler(request):
            forms.append(parse_qs(request.content.decode()))
            return httpx.Response(200, json={"access_token": "new", "expires_in": 60})

        token = await _client(handler).refresh(_config(), "old-refresh")

        assert forms[0]["grant_type"] == ["refresh_token"]
        assert forms[0]["refresh_token"] == ["old-refresh"]
        assert token.access_token == "new"
        assert token.refresh_token == "old-refresh"

    @pytest.mark.asyncio
    async def test_empty_refresh_token_fails_without_request(self):
        def handler(request):  # pragma: no cover
            raise AssertionError("no request expected")

        with pytest.raises(ProviderError):
            await _client(handler).refresh(_config(), "")


class TestProviderToken:
    def test_validity(self):
        now = datetime.now(timezone.utc)
        assert ProviderToken("at").is_valid()
        assert ProviderToken("at", expiry=now + timedelta(minutes=5)).is_valid()
        assert not ProviderToken("at", expiry=now + timedelta(seconds=5)).is_valid()
        assert not ProviderToken("", expiry=now + timedelta(hours=1)).is_valid()
