"""Failure taxonomy for calls to the library backend.

Every failure raised by the gateway is one of the ``ApiError`` subclasses
below. Each carries enough context for a single short user-facing message
(``user_message``); the status codes and underlying causes are for logs.
"""
from __future__ import annotations

from typing import Optional


class ApiError(Exception):
    """Base class for classified gateway failures."""

    user_message = "An unexpected error occurred. Please try again."

    def __init__(self, detail: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.cause = cause


class NetworkFailure(ApiError):
    """DNS, connection, timeout or other transport-level failure."""

    user_message = "Network connection failed. Please check your connection and try again."


class DecodeFailure(ApiError):
    """The response body did not match the expected shape."""

    user_message = "The server sent data the app could not read."


class ServerFailure(ApiError):
    """The backend answered with a status code outside 200-299."""

    def __init__(self, status_code: int, message: Optional[str] = None) -> None:
        super().__init__(f"Server responded with HTTP {status_code}")
        self.status_code = status_code
        self.message = message

    @property
    def user_message(self) -> str:  # type: ignore[override]
        if self.status_code in (401, 403):
            return "Your session is not authorized. Please log in again."
        if self.status_code == 404:
            return "The requested item could not be found."
        if self.status_code >= 500:
            return "The library server is having trouble. Please try again later."
        return "The request was rejected by the server."


class AuthRequired(ApiError):
    """An authenticated endpoint was called with no stored credential."""

    user_message = "Please log in first."

    def __init__(self, detail: str = "No credential is stored for an authenticated request") -> None:
        super().__init__(detail)


class UnknownApiError(ApiError):
    """Any other failure of the HTTP layer."""


def describe_error(error: BaseException) -> str:
    """Turn any failure into the one-line message shown to the user."""
    if isinstance(error, ApiError):
        return error.user_message
    return ApiError.user_message
