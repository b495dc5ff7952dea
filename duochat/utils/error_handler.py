"""Error handling utilities and custom exceptions.

Every failure the API reports to a client is a :class:`ChatError`
subclass carrying its HTTP status.  The handlers registered in
``main.py`` turn them into JSON bodies of the form
``{"message": ..., **extra}`` and never include tracebacks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger


class ChatError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)
        self.message = message

    def extra(self) -> dict[str, Any]:
        """Additional body fields for the JSON response."""
        return {}

    def headers(self) -> dict[str, str] | None:
        return None


@dataclass(frozen=True)
class FieldError:
    """One rejected field: dotted path plus a human readable reason."""

    path: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "message": self.message}


class PayloadValidationError(ChatError):
    """Request payload failed sanitisation or schema validation."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, errors: list[FieldError], message: str = "Validation failed") -> None:
        super().__init__(message)
        self.errors = errors

    def extra(self) -> dict[str, Any]:
        return {"errors": [error.to_dict() for error in self.errors]}


class NotFoundError(ChatError):
    """A referenced resource id does not resolve."""

    status_code = status.HTTP_404_NOT_FOUND


class RateLimitError(ChatError):
    """Client exceeded the request budget for an endpoint class."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(
        self,
        retry_after: int,
        message: str = "Too many requests, please try again later",
    ) -> None:
        super().__init__(message)
        self.retry_after = retry_after

    def extra(self) -> dict[str, Any]:
        return {"retryAfter": self.retry_after}

    def headers(self) -> dict[str, str] | None:
        return {"Retry-After": str(self.retry_after)}


class UnsupportedMediaTypeError(ChatError):
    status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE

    def __init__(self, expected: str = "application/json") -> None:
        super().__init__(f"Unsupported Media Type. Expected {expected}")


class UpstreamProviderError(ChatError):
    """An AI provider call failed, timed out or returned nothing usable.

    ``reply`` holds any text the provider produced instead of the
    requested artefact, so callers can show it in-band.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, reply: str | None = None) -> None:
        super().__init__(message)
        self.reply = reply


class InternalError(ChatError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    """Convert a ChatError into its JSON response."""
    if exc.status_code >= 500:
        logger.error("{} on {} {}: {}", type(exc).__name__, request.method, request.url.path, exc)
    else:
        logger.warning("Rejected {} {} ({}): {}", request.method, request.url.path, exc.status_code, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, **exc.extra()},
        headers=exc.headers(),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: log the traceback, return a bare 500."""
    logger.opt(exception=exc).error("Unhandled exception on {} {}", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error"},
    )
