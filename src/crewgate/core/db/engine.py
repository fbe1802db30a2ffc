"""Database engine management.

Two engines: the regular one used for authorization reads and ordinary
request work, and the elevated one whose sessions are only handed out behind
an authorization grant (see ``ElevatedSessionGate``).
"""

import ssl
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.crewgate.core.config import get_settings

_engine: AsyncEngine | None = None
_elevated_engine: AsyncEngine | None = None


def _get_connect_args() -> dict[str, Any]:
    """Connection arguments including SSL configuration."""
    settings = get_settings()
    connect_args: dict[str, Any] = {
        "statement_cache_size": settings.database_statement_cache_size,
    }

    ssl_mode = settings.database_ssl_mode
    if ssl_mode != "disable":
        ssl_context = ssl.create_default_context()
        if ssl_mode in ("prefer", "require"):
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE
        elif ssl_mode in ("verify-ca", "verify-full"):
            ssl_context.check_hostname = ssl_mode == "verify-full"
            ssl_context.verify_mode = ssl.CERT_REQUIRED
        connect_args["ssl"] = ssl_context

    return connect_args


def _create_engine(url: str) -> AsyncEngine:
    settings = get_settings()
    return create_async_engine(
        url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,
        connect_args=_get_connect_args(),
    )


def get_engine() -> AsyncEngine:
    """Get or create the regular engine singleton."""
    global _engine
    if _engine is None:
        _engine = _create_engine(get_settings().database_url)
    return _engine


def get_elevated_engine() -> AsyncEngine:
    """Get or create the elevated engine singleton.

    Shares the regular engine when no separate elevated URL is configured.
    """
    global _elevated_engine
    settings = get_settings()
    if settings.database_elevated_url is None:
        return get_engine()
    if _elevated_engine is None:
        _elevated_engine = _create_engine(settings.database_elevated_url)
    return _elevated_engine


async def dispose_engine() -> None:
    """Dispose both engines. Call during shutdown."""
    global _engine, _elevated_engine
    if _elevated_engine is not None:
        await _elevated_engine.dispose()
        _elevated_engine = None
    if _engine is not None:
        await _engine.dispose()
        _engine = None
