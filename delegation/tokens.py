"""
Token store — persisted OAuth2 grants per (user, service).

Creation consumes an exchange and performs the authorization-code grant;
refresh rotates the stored material through the provider's refresh grant.
"""

from __future__ import annotations

import logging
from typing import Union

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.models import Token
from delegation.apps import AppDirectory
from delegation.errors import InternalError, NotFoundError
from delegation.exchanges import ExchangeLedger
from delegation.repository import Repository, as_utc, insert_for, utcnow
from providers.base import Service, service_key
from providers.oauth import OAuth2Client, ProviderToken

logger = logging.getLogger(__name__)


class TokenStore(Repository):
    """Owns token rows and drives their create/refresh transitions."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        apps: AppDirectory,
        exchanges: ExchangeLedger,
        oauth: OAuth2Client,
    ) -> None:
        super().__init__(session_factory)
        self._apps = apps
        self._exchanges = exchanges
        self._oauth = oauth

    async def get(self, user_id: int, service: Union[Service, str]) -> Token:
        async with self._session("get token") as session:
            token = await session.get(Token, (user_id, service_key(service)))
        if token is None:
            raise NotFoundError("token not found")
        return token

    async def create(self, code: str, exchange_id: str) -> int:
        """
        Complete a delegation and return the user it belongs to.

        The exchange is deleted once the provider has issued tokens.  That
        delete is best-effort and is not atomic with the token write: a
        failed delete leaves an unusable exchange row behind, a failed grant
        leaves the exchange untouched.
        """
        exchange = await self._exchanges.get(exchange_id)
        config = await self._apps.get_client_config(exchange.service)

        issued = await self._oauth.exchange(config, code)

        try:
            await self._exchanges.delete(exchange_id)
        except InternalError:
            logger.warning("Exchange for user %s was not deleted", exchange.user_id)

        await self._upsert(exchange.user_id, exchange.service, issued)
        logger.info("Delegation granted: user=%s service=%s", exchange.user_id, exchange.service)
        return exchange.user_id

    async def refresh(
        self,
        user_id: int,
        service: Union[Service, str],
        *,
        force: bool = False,
    ) -> Token:
        """
        Rotate the stored token and return the rotated values.

        A token that is still valid is returned as-is unless ``force`` is
        set; that path writes nothing, so ``created_at`` keeps the time of
        the last grant or rotation.  The write only lands if the row still
        holds the access token read at the start; otherwise a concurrent
        refresh won and its row is returned.
        """
        current = await self.get(user_id, service)
        config = await self._apps.get_client_config(current.service)

        stored = ProviderToken(
            access_token=current.access_token,
            token_type=current.token_type,
            refresh_token=current.refresh_token,
            expiry=as_utc(current.expiry),
        )
        if not force and stored.is_valid():
            logger.debug("Token for user %s on %s still valid", user_id, current.service)
            return current

        fresh = await self._oauth.refresh(config, current.refresh_token)
        now = utcnow()

        async with self._session("refresh token") as session:
            result = await session.execute(
                update(Token)
                .where(
                    Token.user_id == current.user_id,
                    Token.service == current.service,
                    Token.access_token == current.access_token,
                )
                .values(
                    token_type=fresh.token_type,
                    access_token=fresh.access_token,
                    refresh_token=fresh.refresh_token,
                    expiry=fresh.expiry,
                    created_at=now,
                )
                .execution_options(synchronize_session=False)
            )

        if not result.rowcount:
            logger.warning(
                "Concurrent refresh for user %s on %s; keeping the stored token",
                user_id,
                current.service,
            )
            return await self.get(user_id, current.service)

        logger.info("Refreshed %s token for user %s", current.service, user_id)
        return Token(
            user_id=current.user_id,
            service=current.service,
            token_type=fresh.token_type,
            access_token=fresh.access_token,
            refresh_token=fresh.refresh_token,
            expiry=fresh.expiry,
            created_at=now,
        )

    async def _upsert(self, user_id: int, service: str, issued: ProviderToken) -> None:
        async with self._session("store token") as session:
            insert = insert_for(session)
            stmt = insert(Token).values(
                user_id=user_id,
                service=service,
                token_type=issued.token_type,
                access_token=issued.access_token,
                refresh_token=issued.refresh_token,
                expiry=issued.expiry,
                created_at=utcnow(),
            )
            await session.execute(
                stmt.on_conflict_do_update(
                    index_elements=[Token.user_id, Token.service],
                    set_={
                        "token_type": stmt.excluded.token_type,
                        "access_token": stmt.excluded.access_token,
                        "refresh_token": stmt.excluded.refresh_token,
                        "expiry": stmt.excluded.expiry,
                        "created_at": stmt.excluded.created_at,
                    },
                )
            )
