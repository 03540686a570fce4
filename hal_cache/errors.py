"""Exceptions raised by the HAL cache."""

from __future__ import annotations

from typing import Any


class HalCacheError(Exception):
    """Base exception for all cache failures."""


class NotAnEntityReference(HalCacheError, ValueError):
    """Raised when an argument is neither a URI nor a view with a self link."""


class HttpStatusError(HalCacheError):
    """Raised by transports when the server answered with an error status."""

    def __init__(self, status: int, body: Any = None, message: str | None = None):
        self.status = status
        self.body = body
        super().__init__(message or f"Request failed with status code {status}")


class TransportError(HalCacheError):
    """Raised when no response was received (network failure, timeout)."""


class ServerError(HalCacheError):
    """
    An operation failed with an HTTP error response.

    Attributes:
        status: HTTP status code of the response
        body: Decoded response body, if any
        operation: Operation that was running, e.g. "fetch" or "patch"
        uri: Store URI the operation was addressing
    """

    def __init__(self, message: str, *, status: int, body: Any, operation: str, uri: str):
        self.status = status
        self.body = body
        self.operation = operation
        self.uri = uri
        super().__init__(message)


class ResourceDeletedError(ServerError):
    """The resource no longer exists upstream (404 or 410)."""


class PermissionDeniedError(ServerError):
    """The server refused the operation (403)."""


class NotARelationError(HalCacheError):
    """A property was used like a relation, but the loaded data has no such relation."""


class UnknownPropertyError(HalCacheError, AttributeError):
    """A loaded resource has no field or relation with the requested name."""


class UnsupportedOnVirtualResource(HalCacheError):
    """Embedded collections have no URI of their own to write to."""


__all__ = [
    "HalCacheError",
    "NotAnEntityReference",
    "HttpStatusError",
    "TransportError",
    "ServerError",
    "ResourceDeletedError",
    "PermissionDeniedError",
    "NotARelationError",
    "UnknownPropertyError",
    "UnsupportedOnVirtualResource",
]
