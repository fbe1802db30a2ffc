"""Logging configuration using structlog."""

import logging
import sys
from uuid import UUID

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars


def setup_logging(debug: bool = False) -> None:
    """Configure structlog on top of the standard library logger.

    Args:
        debug: Colored console output when True, JSON lines otherwise.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if debug else logging.INFO,
    )

    shared_processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: structlog.typing.Processor
    if debug:
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Quiet noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance."""
    return structlog.get_logger(name)


def bind_request_context(request_id: str | None) -> None:
    """Bind the correlation ID to all subsequent log calls in this context."""
    if request_id:
        bind_contextvars(request_id=request_id)


def bind_actor_context(
    actor_id: UUID,
    tenant_id: UUID | None = None,
    email: str | None = None,
) -> None:
    """Bind the authenticated actor (and tenant, when known) to the log context.

    The email is only bound when ``LOG_USER_EMAILS`` is enabled.
    """
    from src.crewgate.core.config import get_settings

    bind_contextvars(actor_id=str(actor_id))
    if tenant_id is not None:
        bind_contextvars(tenant_id=str(tenant_id))
    if email and get_settings().log_user_emails:
        bind_contextvars(actor_email=email)


def clear_request_context() -> None:
    """Clear all request-scoped context."""
    clear_contextvars()
