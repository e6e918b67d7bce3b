"""
Errors raised by the snippetbox client core.

Everything the request pipeline raises is an ApiError subclass so callers
can catch one type and branch on ``status`` / ``is_network_error``.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx


class ApiError(Exception):
    """Base error for a failed call to the snippet service."""

    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, status: int = 0, data: Any = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.status = status
        self.data = data

    @property
    def is_network_error(self) -> bool:
        return False

    @staticmethod
    def message_from(data: Any, fallback: str) -> str:
        if isinstance(data, dict):
            for key in ("detail", "message"):
                value = data.get(key)
                if value:
                    return str(value)
        return fallback

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        try:
            data = response.json()
        except ValueError:
            data = response.text or None

        status = response.status_code
        message = cls.message_from(data, f"Request failed with status code {status}")

        if status == 401:
            return AuthExpiredError(message, data=data)
        if 400 <= status < 500:
            return ApiValidationError(message, status=status, data=data)
        return ServerError(message, status=status, data=data)


class NetworkError(ApiError):
    """No response was received (offline, DNS, timeout)."""

    default_message = "Unable to connect to the server. Please check your internet connection."

    @property
    def is_network_error(self) -> bool:
        return True


class AuthExpiredError(ApiError):
    """The service rejected the access token (HTTP 401)."""

    default_message = "Authentication credentials were not provided or have expired"

    def __init__(self, message: Optional[str] = None, status: int = 401, data: Any = None):
        super().__init__(message, status=status, data=data)


class RefreshFailedError(AuthExpiredError):
    """Obtaining a new access token failed; the session has been terminated."""

    default_message = "Session expired. Please log in again."


class ApiValidationError(ApiError):
    """4xx response other than 401. Passed through to the caller untouched."""


class ServerError(ApiError):
    """5xx response."""


class StorageUnavailableError(Exception):
    """Durable token storage could not be read or written."""
