"""Job scheduler for the daily news run."""

from __future__ import annotations

from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from newsrelay.core.logging import get_logger

if TYPE_CHECKING:
    from newsrelay.core.processor import NewsPipeline

logger = get_logger(__name__)

DAILY_NEWS_JOB_ID = "daily_news"


def create_scheduler(timezone: str = "UTC") -> AsyncIOScheduler:
    """Create a new scheduler instance."""
    return AsyncIOScheduler(timezone=timezone)


async def daily_news_job(pipeline: NewsPipeline) -> None:
    """Run the news pipeline once and log the outcome."""
    try:
        result = await pipeline.run_once()
        if result.failed:
            logger.error("Daily news job failed", status=result.status)
            return
        logger.info(
            "Daily news job finished",
            status=result.status,
            selected=result.selected,
            delivered=result.delivered,
        )
    except Exception:
        logger.exception("Daily news job failed")


def schedule_daily_news(
    scheduler: AsyncIOScheduler,
    pipeline: NewsPipeline,
    cron: str,
    timezone: str,
) -> None:
    """Register the daily news job on a crontab expression."""
    scheduler.add_job(
        daily_news_job,
        CronTrigger.from_crontab(cron, timezone=timezone),
        args=[pipeline],
        id=DAILY_NEWS_JOB_ID,
        max_instances=1,
        misfire_grace_time=None,
        replace_existing=True,
    )
    logger.info("Daily news job scheduled", cron=cron, timezone=timezone)
