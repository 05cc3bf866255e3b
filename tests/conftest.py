"""
Shared fixtures: a throwaway SQLite database and a scripted OAuth provider.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional
from urllib.parse import parse_qsl

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from config.settings import Settings
from database.models import App
from database.session import build_session_factory, init_models
from delegation.service import DelegationService
from providers.oauth import OAuth2Client
from providers.registry import default_registry


class FakeProvider:
    """
    Token endpoint double for ``httpx.MockTransport``.

    Every successful grant issues ``access-N``, plus ``refresh-N`` while
    ``rotate_refresh`` is set.  Set ``status`` to make the endpoint fail,
    or ``on_request`` to run a hook (sync or async) before answering.
    """

    def __init__(self) -> None:
        self.requests: List[Dict[str, str]] = []
        self.urls: List[str] = []
        self.issued = 0
        self.status = 200
        self.rotate_refresh = True
        self.token_type = "bearer"
        self.on_request: Optional[Callable[[Dict[str, str]], Any]] = None

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        form = dict(parse_qsl(request.content.decode()))
        self.requests.append(form)
        self.urls.append(str(request.url))

        if self.on_request is not None:
            result = self.on_request(form)
            if hasattr(result, "__await__"):
                await result

        if self.status != 200:
            return httpx.Response(self.status, json={"error": "invalid_grant"})

        self.issued += 1
        payload = {
            "access_token": f"access-{self.issued}",
            "token_type": self.token_type,
            "expires_in": 3600,
        }
        if self.rotate_refresh:
            payload["refresh_token"] = f"refresh-{self.issued}"
        return httpx.Response(200, json=payload)

    def grants(self, grant_type: str) -> List[Dict[str, str]]:
        return [r for r in self.requests if r.get("grant_type") == grant_type]


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'auth.db'}")
    await init_models(engine)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def oauth_client(provider: FakeProvider) -> OAuth2Client:
    return OAuth2Client(transport=httpx.MockTransport(provider))


@pytest.fixture
def settings() -> Settings:
    return Settings(exchange_ttl_seconds=600, exchange_id_length=32)


@pytest.fixture
def delegation(session_factory, settings, oauth_client) -> DelegationService:
    return DelegationService.build(
        session_factory, default_registry(), settings, oauth=oauth_client
    )


@pytest.fixture
async def yandex_app(delegation: DelegationService) -> App:
    return await delegation.register_app(
        App(
            id="abc",
            service="yandex",
            password="secret",
            callback_url="https://x/cb",
            status="enable",
        )
    )
