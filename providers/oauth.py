"""
OAuth2 client — authorization URLs and token grants against a provider.

``ClientConfig`` is the runnable configuration for one registered app;
``OAuth2Client`` performs the authorization-code and refresh-token grants
over HTTP.  Nothing here is retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple
from urllib.parse import parse_qsl, urlencode

import httpx

from delegation.errors import ProviderError
from providers.base import Endpoint

logger = logging.getLogger(__name__)

# Tokens this close to expiry are treated as already expired.
_EXPIRY_DELTA = timedelta(seconds=10)

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "text/plain")


@dataclass(frozen=True)
class ClientConfig:
    """Client credentials of one app joined with its provider endpoint."""

    client_id: str
    client_secret: str
    redirect_url: str
    endpoint: Endpoint
    scopes: Tuple[str, ...] = ()

    def auth_code_url(self, state: str) -> str:
        """Build the provider's consent URL carrying ``state``."""
        params = {
            "response_type": "code",
            "client_id": self.client_id,
        }
        if self.redirect_url:
            params["redirect_uri"] = self.redirect_url
        if self.scopes:
            params["scope"] = " ".join(self.scopes)
        params["state"] = state

        sep = "&" if "?" in self.endpoint.auth_url else "?"
        return f"{self.endpoint.auth_url}{sep}{urlencode(params)}"


@dataclass
class ProviderToken:
    """Token material returned by a provider's token endpoint."""

    access_token: str
    token_type: str = "Bearer"
    refresh_token: str = ""
    expiry: Optional[datetime] = None

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """True if the access token can still be used without refreshing."""
        if not self.access_token:
            return False
        if self.expiry is None:
            return True
        now = now or datetime.now(timezone.utc)
        return _as_utc(self.expiry) - _EXPIRY_DELTA > now


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class OAuth2Client:
    """Performs OAuth2 grants with ``httpx``."""

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    async def exchange(self, config: ClientConfig, code: str) -> ProviderToken:
        """Exchange an authorization code for tokens."""
        data = {
            "grant_type": "authorization_code",
            "code": code,
        }
        if config.redirect_url:
            data["redirect_uri"] = config.redirect_url
        return await self._retrieve_token(config, data)

    async def refresh(self, config: ClientConfig, refresh_token: str) -> ProviderToken:
        """Use a refresh token to obtain new token material."""
        if not refresh_token:
            raise ProviderError("refresh token is not set")

        token = await self._retrieve_token(
            config,
            {"grant_type": "refresh_token", "refresh_token": refresh_token},
        )
        # Providers that do not rotate refresh tokens omit them from the answer.
        if not token.refresh_token:
            token.refresh_token = refresh_token
        return token

    async def _retrieve_token(
        self, config: ClientConfig, data: Dict[str, str]
    ) -> ProviderToken:
        data = {
            **data,
            "client_id": config.client_id,
            "client_secret": config.client_secret,
        }
        url = config.endpoint.token_url

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    url,
                    data=data,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            logger.warning("Token request to %s failed: %s", url, exc)
            raise ProviderError(f"cannot fetch token: {exc}") from exc

        if not response.is_success:
            logger.warning(
                "Token endpoint %s answered %d", url, response.status_code
            )
            raise ProviderError(
                f"cannot fetch token: {response.status_code} {response.text[:200]}"
            )

        return _parse_token_response(response)


def _parse_token_response(response: httpx.Response) -> ProviderToken:
    content_type = response.headers.get("content-type", "").split(";")[0].strip()

    if content_type in _FORM_CONTENT_TYPES:
        payload: Dict[str, Any] = dict(parse_qsl(response.text))
    else:
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError("cannot parse token response") from exc
        if not isinstance(payload, dict):
            raise ProviderError("cannot parse token response")

    access_token = payload.get("access_token")
    if not access_token:
        raise ProviderError("server response missing access_token")

    expiry = None
    expires_in = payload.get("expires_in")
    if expires_in not in (None, ""):
        try:
            seconds = int(expires_in)
        except (TypeError, ValueError) as exc:
            raise ProviderError(f"invalid expires_in: {expires_in!r}") from exc
        if seconds > 0:
            expiry = datetime.now(timezone.utc) + timedelta(seconds=seconds)

    return ProviderToken(
        access_token=str(access_token),
        token_type=str(payload.get("token_type") or "Bearer"),
        refresh_token=str(payload.get("refresh_token") or ""),
        expiry=expiry,
    )
