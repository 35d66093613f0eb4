"""Errors raised by the auth operations and rendered as response envelopes."""

from __future__ import annotations

from typing import Any

from fastapi import status as http_status


class AuthServiceError(Exception):
    """Base class for every error translated into the response envelope."""

    status: str = "error"
    http_code: int = http_status.HTTP_400_BAD_REQUEST
    message: str = "request failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        data: Any = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        if message is not None:
            self.message = message
        self.data = data
        self.headers = headers
        super().__init__(self.message)


class ValidationFailed(AuthServiceError):
    """Field-level validation errors; ``data`` maps field names to messages."""

    message = "error validation"

    def __init__(self, errors: dict[str, list[str]], message: str | None = None) -> None:
        super().__init__(message, data=errors)


class NotFound(AuthServiceError):
    http_code = http_status.HTTP_404_NOT_FOUND
    message = "user not found!"


class Unauthorized(AuthServiceError):
    status = "failed"
    http_code = http_status.HTTP_401_UNAUTHORIZED
    message = "error token"


class IdentityError(AuthServiceError):
    """The bearer token could not be resolved to a user."""

    http_code = http_status.HTTP_401_UNAUTHORIZED
    message = "can not fetch user data"


class InvalidCredentials(AuthServiceError):
    status = "failed"
    message = "login credentials invalid"


class RateLimited(AuthServiceError):
    status = "failed"
    message = "Too many request!. Please wait"


class TokenIssuerError(AuthServiceError):
    status = "failed"
    http_code = http_status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "failed created token!"
