"""
Provider identity types shared by the registry and the app directory.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union

from delegation.errors import ServiceUnsupportedError


class Service(str, Enum):
    """Closed set of supported identity providers."""

    GOOGLE = "google"
    YANDEX = "yandex"
    MAIL = "mail"
    VK = "vk"


@dataclass(frozen=True)
class Endpoint:
    """Authorization and token URLs of one provider."""

    auth_url: str
    token_url: str


@dataclass(frozen=True)
class Provider:
    """One registry entry: where to send users and which scopes to request."""

    service: Service
    endpoint: Endpoint
    scopes: Tuple[str, ...] = ()


def parse_service(service: Union[Service, str]) -> Service:
    """Resolve ``service`` to a ``Service`` member or raise ``ServiceUnsupportedError``."""
    try:
        return Service(service)
    except ValueError:
        raise ServiceUnsupportedError(f"service {service!r} is not supported") from None


def service_key(service: Union[Service, str]) -> str:
    """Storage form of a service; unknown names are rejected."""
    return parse_service(service).value
