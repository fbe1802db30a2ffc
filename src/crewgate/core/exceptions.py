"""Error taxonomy and the handlers that map it onto HTTP responses.

Every error carries a stable machine-readable ``code``, a human message and
structured ``details``. Details never contain bearer tokens.
"""

import math
from datetime import datetime
from typing import Any

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.crewgate.core.logging import get_logger

logger = get_logger(__name__)


class CrewgateError(Exception):
    """Base class for errors surfaced to callers."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ForbiddenError(CrewgateError):
    status_code = 403
    code = "forbidden"
    default_message = "You are not allowed to perform this action"


class RateLimitedError(CrewgateError):
    status_code = 429
    code = "rate_limited"
    default_message = "Too many attempts. Please try again later."

    def __init__(
        self,
        message: str | None = None,
        *,
        retry_after: int,
        reset_at: datetime | None = None,
        limit: int | None = None,
        **details: Any,
    ):
        self.retry_after = max(1, math.ceil(retry_after))
        self.reset_at = reset_at
        self.limit = limit
        super().__init__(message, retry_after=self.retry_after, reset_at=reset_at, **details)


class ConflictError(CrewgateError):
    status_code = 409
    code = "conflict"
    default_message = "The request conflicts with the current state"


class AlreadyAcceptedError(ConflictError):
    code = "already_accepted"
    default_message = "This invitation has already been accepted"


class InvalidInputError(CrewgateError):
    status_code = 400
    code = "invalid_input"
    default_message = "Invalid input"


class NotFoundError(CrewgateError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class ExpiredError(CrewgateError):
    status_code = 410
    code = "expired"
    default_message = "This invitation has expired"


class InternalError(CrewgateError):
    status_code = 500
    code = "internal_error"
    default_message = "Internal error"


def error_payload(exc: CrewgateError) -> dict[str, Any]:
    """Build the JSON body for a domain error."""
    payload: dict[str, Any] = {
        "detail": exc.message,
        "code": exc.code,
        "request_id": correlation_id.get(),
    }
    if exc.details:
        payload["details"] = jsonable_encoder(exc.details)
    return payload


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses."""

    @app.exception_handler(CrewgateError)
    async def crewgate_error_handler(request: Request, exc: CrewgateError) -> JSONResponse:
        headers: dict[str, str] = {}
        if isinstance(exc, RateLimitedError):
            headers["Retry-After"] = str(exc.retry_after)
            if exc.limit is not None:
                headers["X-RateLimit-Limit"] = str(exc.limit)
                headers["X-RateLimit-Remaining"] = "0"
            if exc.reset_at is not None:
                headers["X-RateLimit-Reset"] = exc.reset_at.isoformat()

        if exc.status_code >= 500:
            logger.error(
                "Request failed",
                code=exc.code,
                error=exc.message,
                path=request.url.path,
            )
        else:
            logger.info(
                "Request rejected",
                code=exc.code,
                status_code=exc.status_code,
                path=request.url.path,
            )

        return JSONResponse(
            status_code=exc.status_code,
            content=error_payload(exc),
            headers=headers or None,
        )

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = correlation_id.get()
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=request_id,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "request_id": request_id,
            },
        )
