"""
Exception hierarchy for eventq.

EventQError
├── ConfigurationError   — invalid queue name, delimiter, store or handlers
├── SerializationError   — payload cannot be encoded to / decoded from JSON
├── LockTimeoutError     — lock not acquired within the bounded wait
├── DeliveryError        — transport rejected an item (non-2xx, etc.)
└── StorageError         — underlying I/O failure (wraps original exception)
"""

from __future__ import annotations

from datetime import timedelta


class EventQError(Exception):
    """Base class for all eventq exceptions."""


class ConfigurationError(EventQError):
    """Raised synchronously at construction time. No queue is created."""


class SerializationError(EventQError):
    """
    Raised when a payload cannot be converted to its stored string form,
    or a stored string cannot be parsed back.

    Attributes
    ----------
    cause : Exception | None
        The original encoder/decoder exception, if any.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.cause = cause
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class LockTimeoutError(EventQError):
    """
    The queue lock was not acquired within `timeout`.

    push() and pop() never let this escape: they log it and degrade to a
    dropped push or an empty pop.
    """

    def __init__(self, timeout: timedelta) -> None:
        self.timeout = timeout
        ms = timeout.total_seconds() * 1000
        super().__init__(f"Lock not acquired within {ms:g}ms")


class DeliveryError(EventQError):
    """Raised by transports when the endpoint does not accept an item."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class StorageError(EventQError):
    """
    Wraps an underlying I/O failure from a storage adapter.

    Attributes
    ----------
    cause : Exception
        The original exception from the storage backend.
    """

    def __init__(self, message: str, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"{message}: {cause}")
