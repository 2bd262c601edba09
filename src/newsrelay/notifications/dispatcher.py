"""Batched, paced delivery of enriched items.

Embeds are packed into batches bounded by entry count and character budget,
then sent one batch at a time with a pause in between, since the webhook
rate limit is shared across all messages. A batch that fails after retries
is dropped from the success set but later batches are still attempted.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from newsrelay.config import PipelineConfig
from newsrelay.core.exceptions import DeliveryError
from newsrelay.core.logging import get_logger
from newsrelay.notifications.discord import DiscordWebhookPayload, Embed, build_embed
from newsrelay.processing.common.retry import call_with_retry
from newsrelay.processing.models import EnrichedItem, Item

if TYPE_CHECKING:
    from newsrelay.processing.enricher import NewsEnricher

logger = get_logger(__name__)


@runtime_checkable
class DeliverySink(Protocol):
    async def send(self, target: str, payload: DiscordWebhookPayload) -> None:
        """Deliver one payload or raise DeliveryError."""
        ...


@dataclass(frozen=True)
class BatchEntry:
    """An item and the embed built from it."""

    item: Item
    embed: Embed


@dataclass
class Batch:
    entries: list[BatchEntry] = field(default_factory=list)
    characters: int = 0

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def items(self) -> list[Item]:
        return [entry.item for entry in self.entries]

    @property
    def embeds(self) -> list[Embed]:
        return [entry.embed for entry in self.entries]

    def fits(self, entry: BatchEntry, max_entries: int, max_characters: int) -> bool:
        return (
            len(self.entries) < max_entries
            and self.characters + entry.embed.characters <= max_characters
        )

    def add(self, entry: BatchEntry) -> None:
        self.entries.append(entry)
        self.characters += entry.embed.characters


def build_batches(entries: list[BatchEntry], max_entries: int, max_characters: int) -> list[Batch]:
    """Group entries in order, starting a new batch whenever the next one doesn't fit.

    An entry too large for any batch still goes out alone in its own batch.
    """
    batches: list[Batch] = []
    current = Batch()
    for entry in entries:
        if current.entries and not current.fits(entry, max_entries, max_characters):
            batches.append(current)
            current = Batch()
        current.add(entry)
    if current.entries:
        batches.append(current)
    return batches


@dataclass
class BatchedDispatcher:
    """Send enriched items to a sink in sequential, paced batches."""

    sink: DeliverySink
    config: PipelineConfig = field(default_factory=PipelineConfig)

    def build_entries(self, enriched: list[EnrichedItem]) -> list[BatchEntry]:
        return [BatchEntry(e.item, build_embed(e, self.config.embed_color)) for e in enriched]

    async def dispatch(
        self,
        enriched: list[EnrichedItem],
        target: str,
        delivered: list[Item] | None = None,
    ) -> list[Item]:
        """Send everything and return the items whose batch went through.

        Args:
            enriched: Items to send, in display order
            target: Webhook URL
            delivered: Optional list that confirmed items are appended to as
                they succeed, so an outer timeout can still see them

        Returns:
            Delivered items in original order
        """
        if delivered is None:
            delivered = []
        if not enriched:
            logger.info("No entries to send")
            return delivered

        batches = build_batches(
            self.build_entries(enriched),
            self.config.max_entries_per_batch,
            self.config.max_batch_characters,
        )
        logger.info("Sending entries in batches", entries=len(enriched), batches=len(batches))

        try:
            await asyncio.wait_for(
                self._send_all(batches, target, delivered),
                timeout=self.config.send_all_timeout,
            )
        except TimeoutError:
            logger.error(
                "Timed out sending batches, keeping what was delivered",
                timeout=self.config.send_all_timeout,
                delivered=len(delivered),
            )
        return delivered

    async def _send_all(self, batches: list[Batch], target: str, delivered: list[Item]) -> None:
        for index, batch in enumerate(batches):
            logger.debug("Sending batch", batch=index + 1, total=len(batches), size=len(batch))
            if await self.send_batch(batch, target):
                delivered.extend(batch.items)
            if index < len(batches) - 1 and self.config.batch_pacing_delay > 0:
                await asyncio.sleep(self.config.batch_pacing_delay)

    async def send_batch(self, batch: Batch, target: str) -> bool:
        """Send one batch with retries. Returns True on confirmed delivery."""
        payload = DiscordWebhookPayload(embeds=batch.embeds)
        try:
            await asyncio.wait_for(
                call_with_retry(
                    lambda: self.sink.send(target, payload),
                    name="send_batch",
                    max_retries=self.config.send_max_retries,
                    backoff_base=self.config.send_backoff_base,
                    backoff_max=self.config.send_backoff_max,
                ),
                timeout=self.config.batch_send_timeout,
            )
        except DeliveryError as e:
            if e.client_error:
                logger.error(
                    "Batch rejected by sink, not retrying",
                    size=len(batch),
                    status=e.status_code,
                    error=e.message,
                )
            else:
                logger.error(
                    "Batch delivery failed",
                    size=len(batch),
                    status=e.status_code,
                    kind=e.kind.value,
                    error=e.message,
                )
            return False
        except Exception as e:
            logger.error(
                "Batch delivery failed",
                size=len(batch),
                error_type=type(e).__name__,
                error=str(e),
            )
            return False

        logger.info("Batch delivered", size=len(batch))
        return True


async def enrich_and_dispatch(
    items: list[Item],
    target: str,
    *,
    enricher: NewsEnricher,
    dispatcher: BatchedDispatcher,
) -> list[Item]:
    """Enrich selected items and send them, returning the confirmed subset.

    Bounded overall by ``dispatch_timeout``; on timeout whatever was already
    confirmed is returned.
    """
    if not items:
        return []

    logger.info("Delivering items", count=len(items))
    delivered: list[Item] = []

    async def run() -> None:
        enriched = await enricher.enrich(items)
        logger.info("Enriched items ready to send", count=len(enriched))
        await dispatcher.dispatch(enriched, target, delivered)

    try:
        await asyncio.wait_for(run(), timeout=dispatcher.config.dispatch_timeout)
    except TimeoutError:
        logger.error(
            "Delivery timed out, keeping what was delivered",
            timeout=dispatcher.config.dispatch_timeout,
            delivered=len(delivered),
        )
    except Exception:
        logger.exception("Delivery failed", delivered=len(delivered))

    logger.info("Delivery complete", delivered=len(delivered), requested=len(items))
    return delivered
