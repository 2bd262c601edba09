"""PostgreSQL history store using raw asyncpg."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, cast

import asyncpg

from newsrelay.core.exceptions import DatabaseConnectionError, HistoryStoreError
from newsrelay.core.logging import get_logger
from newsrelay.processing.models import Item

if TYPE_CHECKING:
    from datetime import datetime

logger = get_logger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS news_items (
    id BIGSERIAL PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    url TEXT NOT NULL,
    content_hash CHAR(64) NOT NULL,
    source TEXT NOT NULL DEFAULT '',
    published_at TIMESTAMPTZ NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    delivered BOOLEAN NOT NULL DEFAULT FALSE
);
CREATE INDEX IF NOT EXISTS idx_news_items_url ON news_items (url) WHERE delivered;
CREATE INDEX IF NOT EXISTS idx_news_items_hash ON news_items (content_hash) WHERE delivered;
CREATE INDEX IF NOT EXISTS idx_news_items_created ON news_items (created_at DESC) WHERE delivered;
"""

_COLUMNS = "id, title, description, url, content_hash, source, published_at, created_at, delivered"


def _row_to_item(row: asyncpg.Record) -> Item:
    return Item(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        url=row["url"],
        fingerprint=row["content_hash"],
        source=row["source"],
        published_at=row["published_at"],
        created_at=row["created_at"],
        delivered=row["delivered"],
    )


class Database:
    """Async PostgreSQL database wrapper using asyncpg."""

    def __init__(self, dsn: str, min_size: int = 1, max_size: int = 10) -> None:
        self._dsn = dsn
        self._min_size = min_size
        self._max_size = max_size
        self._pool: asyncpg.Pool[asyncpg.Record] | None = None

    async def connect(self) -> None:
        """Create connection pool."""
        # Convert SQLAlchemy-style DSN to asyncpg format
        dsn = self._dsn.replace("postgresql+asyncpg://", "postgresql://")
        try:
            self._pool = await asyncpg.create_pool(
                dsn,
                min_size=self._min_size,
                max_size=self._max_size,
            )
        except (OSError, asyncpg.PostgresError) as e:
            raise DatabaseConnectionError(f"Failed to connect to database: {e}") from e
        logger.debug("Database pool created", min_size=self._min_size, max_size=self._max_size)

    async def disconnect(self) -> None:
        """Close connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.debug("Database pool closed")

    async def init_schema(self) -> None:
        """Create tables and indexes if they don't exist."""
        await self.execute(SCHEMA_SQL)
        logger.info("Database schema ready")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection[asyncpg.Record]]:
        """Acquire a connection from the pool."""
        if not self._pool:
            raise RuntimeError("Database not connected. Call connect() first.")
        async with self._pool.acquire() as conn:
            yield conn

    async def execute(self, query: str, *args: Any) -> str:
        """Execute a query and return status."""
        async with self.acquire() as conn:
            result = await conn.execute(query, *args)
            return cast(str, result)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        """Fetch multiple rows."""
        async with self.acquire() as conn:
            result = await conn.fetch(query, *args)
            return list(result)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        """Fetch a single row."""
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        """Fetch a single value."""
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args)


class PostgresHistoryStore:
    """HistoryStore backed by the ``news_items`` table.

    Lookups only see delivered rows. Database errors are re-raised as
    HistoryStoreError.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    async def find_by_url(self, url: str) -> Item | None:
        query = f"""
            SELECT {_COLUMNS} FROM news_items
            WHERE url = $1 AND delivered
            ORDER BY created_at DESC
            LIMIT 1
        """
        row = await self._fetchrow(query, url)
        return _row_to_item(row) if row else None

    async def find_by_fingerprint(self, fingerprint: str) -> Item | None:
        query = f"""
            SELECT {_COLUMNS} FROM news_items
            WHERE content_hash = $1 AND delivered
            ORDER BY created_at DESC
            LIMIT 1
        """
        row = await self._fetchrow(query, fingerprint)
        return _row_to_item(row) if row else None

    async def find_delivered_since(self, since: datetime) -> list[Item]:
        query = f"""
            SELECT {_COLUMNS} FROM news_items
            WHERE created_at >= $1 AND delivered
            ORDER BY created_at DESC
        """
        try:
            rows = await self._db.fetch(query, since)
        except (OSError, asyncpg.PostgresError, RuntimeError) as e:
            raise HistoryStoreError(f"Recent items lookup failed: {e}") from e
        return [_row_to_item(row) for row in rows]

    async def save(self, item: Item) -> Item:
        query = """
            INSERT INTO news_items
                (title, description, url, content_hash, source, published_at, created_at, delivered)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
            RETURNING id
        """
        try:
            item_id = await self._db.fetchval(
                query,
                item.title,
                item.description,
                item.url,
                item.fingerprint,
                item.source,
                item.published_at,
                item.created_at,
                item.delivered,
            )
        except (OSError, asyncpg.PostgresError, RuntimeError) as e:
            raise HistoryStoreError(f"Failed to save item: {e}") from e
        item.id = item_id
        logger.debug("Item saved", item_id=item_id, title=item.title)
        return item

    async def mark_delivered(self, items: list[Item]) -> None:
        ids = [item.id for item in items if item.id is not None]
        if len(ids) != len(items):
            logger.warning(
                "Skipping unsaved items when marking delivered",
                skipped=len(items) - len(ids),
            )
        if ids:
            try:
                await self._db.execute(
                    "UPDATE news_items SET delivered = TRUE WHERE id = ANY($1::bigint[])",
                    ids,
                )
            except (OSError, asyncpg.PostgresError, RuntimeError) as e:
                raise HistoryStoreError(f"Failed to mark items delivered: {e}") from e
        for item in items:
            if item.id is not None:
                item.mark_delivered()
        logger.info("Marked items as delivered", count=len(ids))

    async def _fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        try:
            return await self._db.fetchrow(query, *args)
        except (OSError, asyncpg.PostgresError, RuntimeError) as e:
            raise HistoryStoreError(f"History lookup failed: {e}") from e


# Global database instance (initialized in lifespan)
_db: Database | None = None


def get_database() -> Database:
    """Get the global database instance."""
    if _db is None:
        raise RuntimeError("Database not initialized")
    return _db


async def init_database(dsn: str) -> Database:
    """Initialize the global database instance and make sure the schema exists."""
    global _db
    _db = Database(dsn)
    await _db.connect()
    await _db.init_schema()
    return _db


async def close_database() -> None:
    """Close the global database instance."""
    global _db
    if _db:
        await _db.disconnect()
        _db = None
