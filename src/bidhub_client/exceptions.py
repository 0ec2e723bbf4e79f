"""Error taxonomy for the BidHub client.

Every failure the client surfaces is a ``ClientError`` carrying a machine
readable ``error`` code, a human readable ``message``, the HTTP status when
one exists, and a ``details`` mapping.
"""

from __future__ import annotations

from typing import Any


class ClientError(Exception):
    """Base error raised by the client and its flow controllers."""

    default_error = "CLIENT_ERROR"

    def __init__(
        self,
        message: str,
        *,
        error: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error = error or self.default_error
        self.status_code = status_code
        self.details: dict[str, Any] = details or {}

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(error={self.error!r}, message={self.message!r}, "
            f"status_code={self.status_code!r})"
        )


class ValidationError(ClientError):
    """A required field is missing or malformed; raised before any network call."""

    default_error = "VALIDATION_ERROR"


class AuthorizationError(ClientError):
    """An action that needs a session was attempted without one."""

    default_error = "UNAUTHORIZED"


class ApiError(ClientError):
    """The API answered with a non-2xx status."""

    default_error = "API_ERROR"


class SessionExpiredError(ApiError):
    """An authenticated call was rejected with 401; the local session was cleared."""

    default_error = "SESSION_EXPIRED"


class NetworkError(ClientError):
    """The request could not be completed (connection, timeout, transport)."""

    default_error = "NETWORK_ERROR"


class ParseError(ClientError):
    """A response body or persisted value did not have the expected shape."""

    default_error = "PARSE_ERROR"


class StorageUnavailableError(ClientError):
    """The persisted key-value storage cannot be read or written."""

    default_error = "STORAGE_UNAVAILABLE"


__all__ = [
    "ApiError",
    "AuthorizationError",
    "ClientError",
    "NetworkError",
    "ParseError",
    "SessionExpiredError",
    "StorageUnavailableError",
    "ValidationError",
]
