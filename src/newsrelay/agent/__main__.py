"""Agent lifecycle used by the FastAPI server.

Provides `agent_lifespan()`, an async context manager that connects the
database, builds the news pipeline and starts the daily scheduler. The FastAPI
app calls this from its own lifespan.

Running the module performs a single pipeline run and exits:
    uv run -m newsrelay.agent

Configuration (set in .env):
    - DATABASE_URL: PostgreSQL history store
    - RSS_FEEDS: ``name|url`` pairs or a JSON array
    - DISCORD_WEBHOOK_URL: delivery target
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from newsrelay.agent.scheduler import create_scheduler, schedule_daily_news
from newsrelay.config import Settings, get_settings
from newsrelay.core.logging import get_logger, setup_logging
from newsrelay.core.processor import NewsPipeline, create_pipeline
from newsrelay.ingestion.rss import RSSFeedClient
from newsrelay.storage.database import Database, close_database, init_database

logger = get_logger(__name__)


@dataclass
class AgentState:
    """Holds references to all running agent resources."""

    db: Database
    settings: Settings
    pipeline: NewsPipeline
    feeds: RSSFeedClient
    scheduler: AsyncIOScheduler | None = None


@asynccontextmanager
async def agent_lifespan(settings: Settings) -> AsyncIterator[AgentState]:
    """Async context manager that starts/stops the news pipeline.

    Yields an AgentState with references to all running resources.
    On exit, gracefully shuts down everything.
    """
    db_initialized = False
    feeds: RSSFeedClient | None = None
    scheduler: AsyncIOScheduler | None = None

    try:
        logger.debug("Connecting to PostgreSQL")
        db = await init_database(settings.database_url)
        db_initialized = True

        if not settings.rss_feeds:
            logger.warning("No RSS_FEEDS configured, runs will find nothing")
        if settings.discord_webhook_url is None:
            logger.warning("No DISCORD_WEBHOOK_URL configured, delivery will be skipped")

        feeds = RSSFeedClient(feeds=settings.rss_feeds, user_agent=settings.rss_user_agent)
        pipeline = create_pipeline(settings, db, feeds)

        if settings.scheduler_enabled:
            scheduler = create_scheduler(settings.schedule_timezone)
            schedule_daily_news(
                scheduler,
                pipeline,
                cron=settings.schedule_cron,
                timezone=settings.schedule_timezone,
            )
            scheduler.start()

        logger.info(
            "Agent ready",
            llm_provider=settings.llm_provider,
            llm_model=settings.llm_model,
            feeds=len(settings.rss_feeds),
            scheduler_enabled=scheduler is not None,
        )

        yield AgentState(
            db=db,
            settings=settings,
            pipeline=pipeline,
            feeds=feeds,
            scheduler=scheduler,
        )

    finally:
        logger.info("Shutting down agent...")

        if scheduler and scheduler.running:
            scheduler.shutdown(wait=False)
            logger.debug("Scheduler stopped")

        if feeds:
            try:
                await feeds.close()
            except Exception as e:
                logger.error("Failed to close RSS client", error=str(e))

        if db_initialized:
            await close_database()
            logger.debug("PostgreSQL disconnected")


async def run_once(settings: Settings) -> int:
    """Run the pipeline a single time without the scheduler."""
    settings = settings.model_copy(update={"scheduler_enabled": False})
    async with agent_lifespan(settings) as state:
        result = await state.pipeline.run_once()
    print(result.status)
    return 0 if result.success else 1


def main() -> None:
    settings = get_settings()
    setup_logging(settings)
    sys.exit(asyncio.run(run_once(settings)))


if __name__ == "__main__":
    main()
