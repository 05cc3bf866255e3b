"""
Shared session handling for the storage-backed components.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from delegation.errors import InternalError

logger = logging.getLogger(__name__)


class Repository:
    """Base for components that own rows in one table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        """
        Open a session, commit on success, roll back on failure.

        Storage errors are logged with their driver detail and re-raised as
        ``InternalError``; delegation errors pass through untouched.
        """
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error("%s failed: %s", operation, exc)
                raise InternalError(f"{operation} failed") from exc
            except Exception:
                await session.rollback()
                raise


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive timestamps read back from the database."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_unique_violation(exc: IntegrityError) -> bool:
    """True if ``exc`` was raised by a primary-key or unique constraint."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is not None:
        return code == "23505"
    return "UNIQUE constraint failed" in str(orig)


def insert_for(session: AsyncSession):
    """Dialect-specific ``insert`` that supports ``on_conflict_do_update``."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise InternalError(f"upsert not supported on {dialect}")
    return insert
