"""Service-level exceptions.

Each carries a stable machine ``code`` which the API layer maps to an HTTP
status. ``NotFoundError`` is shared with the repository layer.
"""

from datetime import datetime, timedelta

from coinfolio.services.repositories.exceptions import NotFoundError


class ServiceError(Exception):
    """Base exception for business rule failures."""

    code = "SERVICE_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(ServiceError):
    """Input violates a plan, holding or ledger constraint."""

    code = "VALIDATION_ERROR"


class InvalidStateError(ServiceError):
    """Operation is not legal for the entity's current lifecycle state."""

    code = "INVALID_STATE"


class LockedError(ServiceError):
    """Withdrawal attempted before the lock period ended."""

    code = "LOCKED"

    def __init__(self, message: str, unlocks_at: datetime, remaining: timedelta):
        super().__init__(message)
        self.unlocks_at = unlocks_at
        self.remaining = remaining


class UpstreamUnavailable(ServiceError):
    """The data store or a provider failed on a write path."""

    code = "UPSTREAM_UNAVAILABLE"


__all__ = [
    "InvalidStateError",
    "LockedError",
    "NotFoundError",
    "ServiceError",
    "UpstreamUnavailable",
    "ValidationError",
]
