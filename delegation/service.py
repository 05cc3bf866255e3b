"""
DelegationService — the two user-facing flows plus app administration.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import Settings
from database.models import App, Token
from delegation.apps import AppDirectory, AppStatus
from delegation.exchanges import ExchangeLedger
from delegation.tokens import TokenStore
from providers.base import Service, service_key
from providers.oauth import OAuth2Client
from providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)


class DelegationService:
    """Coordinates the app directory, exchange ledger and token store."""

    def __init__(
        self,
        apps: AppDirectory,
        exchanges: ExchangeLedger,
        tokens: TokenStore,
    ) -> None:
        self.apps = apps
        self.exchanges = exchanges
        self.tokens = tokens

    @classmethod
    def build(
        cls,
        session_factory: async_sessionmaker[AsyncSession],
        registry: ProviderRegistry,
        settings: Settings,
        oauth: OAuth2Client | None = None,
    ) -> "DelegationService":
        """Wire the components against one session factory."""
        apps = AppDirectory(session_factory, registry)
        exchanges = ExchangeLedger(
            session_factory,
            ttl=timedelta(seconds=settings.exchange_ttl_seconds),
            id_length=settings.exchange_id_length,
        )
        tokens = TokenStore(
            session_factory,
            apps=apps,
            exchanges=exchanges,
            oauth=oauth or OAuth2Client(timeout=settings.provider_timeout_seconds),
        )
        return cls(apps, exchanges, tokens)

    # ── Delegation ──────────────────────────────────────────────────────

    async def start_delegation(self, service: Union[Service, str], user_id: int) -> str:
        """Issue an exchange and return the provider consent URL for it."""
        config = await self.apps.get_client_config(service)
        exchange_id = await self.exchanges.create(service, user_id)
        logger.info("Delegation started: user=%s service=%s", user_id, service_key(service))
        return config.auth_code_url(exchange_id)

    async def complete_delegation(self, code: str, state: str) -> int:
        """Consume the exchange named by ``state`` and store the grant."""
        return await self.tokens.create(code, state)

    async def fetch_token(self, user_id: int, service: Union[Service, str]) -> Token:
        return await self.tokens.get(user_id, service)

    async def refresh_token(
        self,
        user_id: int,
        service: Union[Service, str],
        *,
        force: bool = False,
    ) -> Token:
        return await self.tokens.refresh(user_id, service, force=force)

    # ── Apps ────────────────────────────────────────────────────────────

    async def register_app(self, app: App) -> App:
        app_id = await self.apps.create(app)
        return await self.apps.get_by_id(app_id)

    async def set_app_status(self, app_id: str, status: Union[AppStatus, str]) -> App:
        return await self.apps.set_status(app_id, status)

    async def get_app(self, service: Union[Service, str]) -> App:
        return await self.apps.get_by_service(service)
