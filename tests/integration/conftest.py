"""Shared fixtures for integration tests.

These tests talk to a real PostgreSQL server and real RSS feeds.
Run with: pytest -m integration

Environment variables:
- DATABASE_URL: PostgreSQL DSN for a disposable database
- NEWSRELAY_TEST_FEED_URL: RSS feed to fetch (defaults to The Verge)
"""

import os
from collections.abc import AsyncIterator

import pytest

from newsrelay.storage.database import Database


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio for async tests."""
    return "asyncio"


@pytest.fixture
def feed_url() -> str:
    return os.environ.get("NEWSRELAY_TEST_FEED_URL", "https://www.theverge.com/rss/index.xml")


@pytest.fixture
async def database() -> AsyncIterator[Database]:
    """Connected database with a clean ``news_items`` table."""
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        pytest.skip("DATABASE_URL not set")

    db = Database(dsn, min_size=1, max_size=2)
    await db.connect()
    await db.init_schema()
    await db.execute("TRUNCATE news_items RESTART IDENTITY")
    try:
        yield db
    finally:
        await db.execute("TRUNCATE news_items RESTART IDENTITY")
        await db.disconnect()
