"""
Exception hierarchy for the delegation core.

The HTTP layer maps each typed error to a status code; anything else is
wrapped as ``InternalError`` before it leaves the core.
"""


class DelegationError(Exception):
    """Base exception for all delegation errors."""

    pass


class NotFoundError(DelegationError):
    """Entity absent, expired, or filtered out by status."""

    pass


class AlreadyExistsError(DelegationError):
    """Uniqueness violation on creation."""

    pass


class ServiceUnsupportedError(DelegationError):
    """No provider is registered for the requested service."""

    pass


class InvalidStatusError(DelegationError):
    """App status outside the closed enumeration."""

    pass


class InternalError(DelegationError):
    """Storage or provider failure not otherwise classified."""

    pass


class ProviderError(InternalError):
    """The provider's token endpoint failed or answered with garbage."""

    pass
