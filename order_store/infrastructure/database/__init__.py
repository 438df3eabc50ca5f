"""Database engine, session factory and schema lifecycle."""

from .config import (
    DatabaseSettings,
    close_database,
    create_engine,
    get_engine,
    get_session_factory,
    init_database,
    settings,
)

__all__ = [
    "DatabaseSettings",
    "close_database",
    "create_engine",
    "get_engine",
    "get_session_factory",
    "init_database",
    "settings",
]
