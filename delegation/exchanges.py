"""
Exchange ledger — single-use records tying an OAuth ``state`` to a user.
"""

from __future__ import annotations

import logging
import secrets
import string
from datetime import timedelta
from typing import Union

from sqlalchemy import delete, insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.models import Exchange
from delegation.errors import InternalError, NotFoundError
from delegation.repository import Repository, as_utc, utcnow
from providers.base import Service, service_key

logger = logging.getLogger(__name__)

_ALPHABET = string.digits + string.ascii_letters


def random_id(length: int) -> str:
    """Cryptographically random string over ``[0-9a-zA-Z]``."""
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


class ExchangeLedger(Repository):
    """Creates, resolves and discards pending authorization exchanges."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        ttl: timedelta = timedelta(minutes=10),
        id_length: int = 32,
    ) -> None:
        super().__init__(session_factory)
        self._ttl = ttl
        self._id_length = id_length

    async def create(self, service: Union[Service, str], user_id: int) -> str:
        key = service_key(service)
        exchange_id = random_id(self._id_length)
        async with self._session("create exchange") as session:
            await session.execute(
                insert(Exchange).values(
                    id=exchange_id,
                    service=key,
                    user_id=user_id,
                    created_at=utcnow(),
                )
            )
        logger.debug("Exchange issued for user %s on %s", user_id, key)
        return exchange_id

    async def get(self, exchange_id: str) -> Exchange:
        """Return a live exchange; expired ones are reported as missing."""
        async with self._session("get exchange") as session:
            exchange = await session.get(Exchange, exchange_id)
        if exchange is None:
            raise NotFoundError("exchange not found")

        if as_utc(exchange.created_at) + self._ttl < utcnow():
            logger.info("Exchange for user %s expired", exchange.user_id)
            try:
                await self.delete(exchange_id)
            except InternalError:
                pass  # purge_expired will catch it
            raise NotFoundError("exchange not found")
        return exchange

    async def delete(self, exchange_id: str) -> None:
        """Remove an exchange; deleting a missing one is a no-op."""
        async with self._session("delete exchange") as session:
            await session.execute(delete(Exchange).where(Exchange.id == exchange_id))

    async def purge_expired(self) -> int:
        """Delete every exchange older than the TTL and return how many."""
        cutoff = utcnow() - self._ttl
        async with self._session("purge exchanges") as session:
            result = await session.execute(
                delete(Exchange).where(Exchange.created_at < cutoff)
            )
        return result.rowcount or 0
