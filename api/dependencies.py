"""
FastAPI dependencies (shared across routes).
"""

from __future__ import annotations

from functools import lru_cache

from config.settings import config
from database.session import async_session_factory
from delegation.service import DelegationService
from providers.registry import default_registry


@lru_cache()
def get_delegation_service() -> DelegationService:
    """One service per process, wired to the shared connection pool."""
    return DelegationService.build(async_session_factory, default_registry(), config)
