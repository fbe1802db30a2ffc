"""Database utilities - engines, sessions, migrations."""

from src.crewgate.core.db.engine import dispose_engine, get_elevated_engine, get_engine
from src.crewgate.core.db.migrations import run_migrations_sync
from src.crewgate.core.db.session import get_elevated_session, get_session

__all__ = [
    # Engines
    "dispose_engine",
    "get_elevated_engine",
    "get_engine",
    # Sessions
    "get_elevated_session",
    "get_session",
    # Migrations
    "run_migrations_sync",
]
