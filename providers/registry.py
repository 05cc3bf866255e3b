"""
ProviderRegistry — maps a service key to its OAuth2 endpoint and scopes.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Union

from delegation.errors import ServiceUnsupportedError
from providers.base import Endpoint, Provider, Service, parse_service

logger = logging.getLogger(__name__)

# ── All known providers — add new ones here and to ``Service`` ───────────

_ALL_PROVIDERS: List[Provider] = [
    Provider(
        service=Service.GOOGLE,
        endpoint=Endpoint(
            auth_url="https://accounts.google.com/o/oauth2/auth",
            token_url="https://oauth2.googleapis.com/token",
        ),
        scopes=("https://www.googleapis.com/auth/gmail.addons.current.message.readonly",),
    ),
    Provider(
        service=Service.YANDEX,
        endpoint=Endpoint(
            auth_url="https://oauth.yandex.com/authorize",
            token_url="https://oauth.yandex.com/token",
        ),
        scopes=("mail:imap_ro",),
    ),
    Provider(
        service=Service.MAIL,
        endpoint=Endpoint(
            auth_url="https://o2.mail.ru/login",
            token_url="https://o2.mail.ru/token",
        ),
    ),
    Provider(
        service=Service.VK,
        endpoint=Endpoint(
            auth_url="https://oauth.vk.com/authorize",
            token_url="https://oauth.vk.com/access_token",
        ),
    ),
]


class ProviderRegistry:
    """Immutable lookup table of OAuth2 providers."""

    def __init__(self, providers: Iterable[Provider]) -> None:
        self._providers: Dict[Service, Provider] = {}
        for provider in providers:
            self._providers[provider.service] = provider

    def get(self, service: Union[Service, str]) -> Provider:
        """Return the provider for ``service`` or raise ``ServiceUnsupportedError``."""
        key = parse_service(service)
        provider = self._providers.get(key)
        if provider is None:
            raise ServiceUnsupportedError(f"service {key.value!r} is not supported")
        return provider

    def services(self) -> List[Service]:
        return list(self._providers)


def default_registry() -> ProviderRegistry:
    """Registry holding every provider the service ships with."""
    registry = ProviderRegistry(_ALL_PROVIDERS)
    logger.debug(
        "Provider registry loaded: %s",
        ", ".join(s.value for s in registry.services()),
    )
    return registry
