"""
App directory — registered OAuth2 clients, one enabled per service.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Union

from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.models import App
from delegation.errors import (
    AlreadyExistsError,
    InternalError,
    InvalidStatusError,
    NotFoundError,
)
from delegation.repository import Repository, is_unique_violation, utcnow
from providers.base import Service, parse_service, service_key
from providers.oauth import ClientConfig
from providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)


class AppStatus(str, Enum):
    ENABLE = "enable"
    DISABLE = "disable"


def parse_status(status: Union[AppStatus, str]) -> AppStatus:
    try:
        return AppStatus(status)
    except ValueError:
        raise InvalidStatusError(f"app status {status!r} unavailable") from None


class AppDirectory(Repository):
    """Stores app credentials and resolves runnable client configurations."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        registry: ProviderRegistry,
    ) -> None:
        super().__init__(session_factory)
        self._registry = registry

    async def get_by_id(self, app_id: str) -> App:
        """Exact lookup regardless of status."""
        async with self._session("get app") as session:
            app = await session.get(App, app_id)
        if app is None:
            raise NotFoundError("app not found")
        return app

    async def get_by_service(self, service: Union[Service, str]) -> App:
        """Return the enabled app serving ``service``."""
        key = service_key(service)
        async with self._session("get app by service") as session:
            result = await session.execute(
                select(App)
                .where(App.service == key, App.status == AppStatus.ENABLE.value)
                .order_by(App.created_at.desc())
                .limit(1)
            )
            app = result.scalar_one_or_none()
        if app is None:
            raise NotFoundError("app not found")
        return app

    async def get_client_config(self, service: Union[Service, str]) -> ClientConfig:
        """
        Build the OAuth2 client configuration for ``service``.

        Raises ``ServiceUnsupportedError`` for a name outside ``Service`` or a
        service with no provider, and ``NotFoundError`` when no enabled app
        exists.
        """
        app = await self.get_by_service(service)
        provider = self._registry.get(app.service)
        return ClientConfig(
            client_id=app.id,
            client_secret=app.password,
            redirect_url=app.callback_url,
            endpoint=provider.endpoint,
            scopes=provider.scopes,
        )

    async def create(self, app: App) -> str:
        """Insert a new app and return its id."""
        service = parse_service(app.service)
        status = parse_status(app.status or AppStatus.ENABLE)

        async with self._session("create app") as session:
            try:
                await session.execute(
                    insert(App).values(
                        id=app.id,
                        service=service.value,
                        password=app.password,
                        callback_url=app.callback_url,
                        expiry=app.expiry,
                        created_at=utcnow(),
                        status=status.value,
                    )
                )
            except IntegrityError as exc:
                if is_unique_violation(exc):
                    raise AlreadyExistsError("app exists") from None
                logger.error("create app %s failed: %s", app.id, exc)
                raise InternalError("create app failed") from exc

        logger.info("Registered %s app %s (%s)", service.value, app.id, status.value)
        return app.id

    async def set_status(self, app_id: str, status: Union[AppStatus, str]) -> App:
        """Enable or disable an app; the status is checked before any query."""
        new_status = parse_status(status)

        async with self._session("set app status") as session:
            app = await session.get(App, app_id)
            if app is None:
                raise NotFoundError("app not found")
            app.status = new_status.value

        logger.info("App %s status set to %s", app_id, new_status.value)
        return app
