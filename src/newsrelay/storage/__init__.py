"""Storage layer: PostgreSQL (asyncpg) history store."""

from newsrelay.storage.base import HistoryStore
from newsrelay.storage.database import (
    Database,
    PostgresHistoryStore,
    close_database,
    get_database,
    init_database,
)

__all__ = [
    "Database",
    "HistoryStore",
    "PostgresHistoryStore",
    "close_database",
    "get_database",
    "init_database",
]
