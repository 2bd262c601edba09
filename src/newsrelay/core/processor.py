"""End-to-end news pipeline.

Architecture:
  Feeds → [Duplicate Filter] → save → [Selector] → [Enricher] → [Dispatcher]
                                                                    ↓
                                                     mark delivered in history

Each stage degrades on its own (fail-open filter, heuristic/recency
selection, per-item enrichment drops, per-batch delivery drops). A run never
raises: callers get a RunResult with counts and a status string.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from newsrelay.config import PipelineConfig, Settings
from newsrelay.core.logging import bound_run, get_logger
from newsrelay.ingestion.rss import RSSFeedClient
from newsrelay.notifications.discord import DiscordWebhookSink
from newsrelay.notifications.dispatcher import BatchedDispatcher, enrich_and_dispatch
from newsrelay.processing.common.llm import PydanticAIOracle, create_model
from newsrelay.processing.deduplication import DuplicateFilter
from newsrelay.processing.enricher import NewsEnricher
from newsrelay.processing.language import LangDetectChecker
from newsrelay.processing.models import Item, RunResult
from newsrelay.processing.selector import NewsSelector
from newsrelay.storage.base import HistoryStore
from newsrelay.storage.database import Database, PostgresHistoryStore

logger = get_logger(__name__)

ItemSource = Callable[[], Awaitable[list[Item]]]


@dataclass
class NewsPipeline:
    """Wire the pipeline stages together around a history store.

    Usage:
        pipeline = NewsPipeline(fetch=rss.fetch_all, history=store, ...)
        result = await pipeline.run_once()
    """

    fetch: ItemSource
    history: HistoryStore
    duplicate_filter: DuplicateFilter
    selector: NewsSelector
    enricher: NewsEnricher
    dispatcher: BatchedDispatcher
    webhook_url: str | None = None
    config: PipelineConfig = field(default_factory=PipelineConfig)

    async def run_once(self) -> RunResult:
        """Run the whole pipeline once. Never raises."""
        with bound_run():
            logger.info("Starting news run")
            try:
                result = await self._run()
            except Exception as e:
                logger.exception("News run failed")
                return RunResult(status=f"Run failed: {type(e).__name__}", failed=True)

            logger.info(
                "News run complete",
                status=result.status,
                fetched=result.fetched,
                accepted=result.accepted,
                selected=result.selected,
                delivered=result.delivered,
            )
            return result

    async def _run(self) -> RunResult:
        candidates = await self.fetch()
        accepted = await self.process_candidates(candidates)
        result = RunResult(status="", fetched=len(candidates), accepted=len(accepted))

        if not accepted:
            result.status = "No new items found"
            return result

        selected = await self.selector.select(accepted, self.config.top_news_count)
        result.selected = len(selected)
        if not selected:
            result.status = "Editor selected no items"
            return result

        logger.info("Items selected for delivery", selected=len(selected), accepted=len(accepted))

        if not self.webhook_url or not self.webhook_url.strip():
            logger.warning("Discord webhook URL not configured, skipping delivery")
            result.status = f"Selected {len(selected)} items; delivery skipped (no webhook)"
            return result

        delivered = await enrich_and_dispatch(
            selected,
            self.webhook_url,
            enricher=self.enricher,
            dispatcher=self.dispatcher,
        )
        result.delivered = len(delivered)

        if not delivered:
            logger.warning("No items were delivered")
            result.status = f"Selected {len(selected)} items; none delivered"
            return result

        await self.mark_delivered(delivered)
        result.status = f"Delivered {len(delivered)} of {len(selected)} selected items"
        return result

    async def process_candidates(self, candidates: list[Item]) -> list[Item]:
        """Filter duplicates and persist the survivors.

        Items the store fails to save are dropped so they can't be marked
        delivered later without a row behind them.
        """
        accepted = await self.duplicate_filter.filter(candidates)
        saved: list[Item] = []
        for item in accepted:
            try:
                saved.append(await self.history.save(item))
            except Exception as e:
                logger.error(
                    "Failed to save item, skipping",
                    title=item.title,
                    error_type=type(e).__name__,
                    error=str(e),
                )
        return saved

    async def mark_delivered(self, items: list[Item]) -> None:
        try:
            await asyncio.wait_for(
                self.history.mark_delivered(items),
                timeout=self.config.mark_delivered_timeout,
            )
        except Exception as e:
            # Items were sent; the next run may re-send them
            logger.error(
                "Failed to mark items as delivered",
                count=len(items),
                error_type=type(e).__name__,
                error=str(e),
            )


def create_pipeline(settings: Settings, db: Database, feeds: RSSFeedClient) -> NewsPipeline:
    """Build a production pipeline from settings and a connected database."""
    config = settings.pipeline_config()
    oracle = PydanticAIOracle(create_model(settings))
    webhook = settings.discord_webhook_url
    history = PostgresHistoryStore(db)
    return NewsPipeline(
        fetch=feeds.fetch_all,
        history=history,
        duplicate_filter=DuplicateFilter(history, config),
        selector=NewsSelector(oracle, config),
        enricher=NewsEnricher(
            oracle,
            LangDetectChecker(target_language=config.target_language),
            config,
        ),
        dispatcher=BatchedDispatcher(DiscordWebhookSink(), config),
        webhook_url=webhook.get_secret_value() if webhook else None,
        config=config,
    )
