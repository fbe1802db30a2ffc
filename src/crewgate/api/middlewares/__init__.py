"""Application middlewares."""

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import RequestResponseEndpoint

from src.crewgate.core.config import Settings

from .logging_context import logging_context_middleware
from .request_context import RequestContextMiddleware

__all__ = [
    "RequestContextMiddleware",
    "logging_context_middleware",
    "setup_middlewares",
]


def setup_middlewares(app: FastAPI, settings: Settings) -> None:
    """Configure all application middlewares.

    The last one added is the outermost, so the correlation id is added last.
    """
    # Request context - audit metadata, needs the correlation id
    app.add_middleware(RequestContextMiddleware)

    # Logging context - binds request_id to structlog context
    @app.middleware("http")
    async def _logging_context(request: Request, call_next: RequestResponseEndpoint) -> Response:
        return await logging_context_middleware(request, call_next)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    # Correlation ID - generates/propagates X-Request-ID (outermost)
    app.add_middleware(CorrelationIdMiddleware)
