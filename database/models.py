"""
SQLAlchemy ORM models mirroring database/schema.sql.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class App(Base):
    """A registered OAuth2 client for one provider."""

    __tablename__ = "apps"

    id = Column(String(255), primary_key=True)
    service = Column(String(16), nullable=False)
    password = Column(Text, nullable=False)
    callback_url = Column("callback_URL", Text, nullable=False)
    expiry = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    status = Column(String(16), nullable=False, default="enable")

    __table_args__ = (Index("ix_apps_service_status", "service", "status"),)


class Exchange(Base):
    """Single-use correlation between an OAuth ``state`` and a user."""

    __tablename__ = "exchanges"

    id = Column(String(64), primary_key=True)
    service = Column(String(16), nullable=False)
    user_id = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class Token(Base):
    """Delegated grant for one (user, service) pair."""

    __tablename__ = "tokens"

    user_id = Column(Integer, primary_key=True)
    service = Column(String(16), primary_key=True)
    token_type = Column(String(32), nullable=False, default="Bearer")
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=False, default="")
    expiry = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
