"""Tests for batching, paced dispatch and the enrich-and-dispatch stage."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from newsrelay.config import PipelineConfig
from newsrelay.core.exceptions import DeliveryError
from newsrelay.notifications.discord import DiscordWebhookPayload, Embed
from newsrelay.notifications.dispatcher import (
    BatchedDispatcher,
    BatchEntry,
    build_batches,
    enrich_and_dispatch,
)
from newsrelay.processing.models import EnrichedItem, Item

WEBHOOK = "https://discord.com/api/webhooks/123/abc"


def create_enriched(count: int, description: str = "summary") -> list[EnrichedItem]:
    return [
        EnrichedItem(
            Item(title=f"Headline {i}", url=f"https://example.com/{i}"),
            f"Title {i}",
            description,
        )
        for i in range(count)
    ]


def create_entry(chars: int) -> BatchEntry:
    return BatchEntry(Item(title="t", url="https://example.com"), Embed(description="x" * chars))


def first_title(payload: DiscordWebhookPayload) -> str:
    return payload.embeds[0].title or ""


class TestBuildBatches:
    def test_splits_by_entry_count(self) -> None:
        batches = build_batches([create_entry(10) for _ in range(25)], 10, 6000)
        assert [len(b) for b in batches] == [10, 10, 5]

    def test_splits_by_character_budget(self) -> None:
        batches = build_batches([create_entry(2500) for _ in range(5)], 10, 6000)
        assert [len(b) for b in batches] == [2, 2, 1]
        assert all(b.characters <= 6000 for b in batches)

    def test_oversized_entry_goes_alone(self) -> None:
        entries = [create_entry(100), create_entry(1500), create_entry(100)]
        batches = build_batches(entries, 10, 1000)
        assert [len(b) for b in batches] == [1, 1, 1]
        assert batches[1].entries == [entries[1]]

    def test_preserves_order(self) -> None:
        entries = [create_entry(i + 1) for i in range(12)]
        batches = build_batches(entries, 5, 6000)
        assert [e for b in batches for e in b.entries] == entries

    def test_empty(self) -> None:
        assert build_batches([], 10, 6000) == []


class TestBatchedDispatcher:
    """Tests for BatchedDispatcher.dispatch."""

    @pytest.mark.anyio
    async def test_sends_all_batches(self, fast_config: PipelineConfig) -> None:
        sink = AsyncMock()
        enriched = create_enriched(25)

        delivered = await BatchedDispatcher(sink, fast_config).dispatch(enriched, WEBHOOK)

        assert delivered == [e.item for e in enriched]
        sizes = [len(call.args[1].embeds) for call in sink.send.await_args_list]
        assert sizes == [10, 10, 5]
        assert all(call.args[0] == WEBHOOK for call in sink.send.await_args_list)

    @pytest.mark.anyio
    async def test_failed_batch_is_dropped(self, fast_config: PipelineConfig) -> None:
        async def send(target: str, payload: DiscordWebhookPayload) -> None:
            if first_title(payload) == "Title 10":
                raise DeliveryError("Invalid Form Body", status_code=400)

        sink = AsyncMock()
        sink.send = AsyncMock(side_effect=send)
        enriched = create_enriched(25)

        delivered = await BatchedDispatcher(sink, fast_config).dispatch(enriched, WEBHOOK)

        expected = [e.item for e in enriched[:10]] + [e.item for e in enriched[20:]]
        assert delivered == expected
        # 4xx is not retried: exactly one call per batch
        assert sink.send.await_count == 3

    @pytest.mark.anyio
    async def test_server_error_retried(self, fast_config: PipelineConfig) -> None:
        sink = AsyncMock()
        sink.send = AsyncMock(side_effect=[DeliveryError("oops", status_code=502), None])
        enriched = create_enriched(3)

        delivered = await BatchedDispatcher(sink, fast_config).dispatch(enriched, WEBHOOK)

        assert delivered == [e.item for e in enriched]
        assert sink.send.await_count == 2

    @pytest.mark.anyio
    async def test_retries_exhausted(self, fast_config: PipelineConfig) -> None:
        sink = AsyncMock()
        sink.send = AsyncMock(side_effect=DeliveryError("rate limited", status_code=429))

        delivered = await BatchedDispatcher(sink, fast_config).dispatch(
            create_enriched(2), WEBHOOK
        )

        assert delivered == []
        assert sink.send.await_count == fast_config.send_max_retries + 1

    @pytest.mark.anyio
    async def test_empty_input_makes_no_calls(self, fast_config: PipelineConfig) -> None:
        sink = AsyncMock()
        assert await BatchedDispatcher(sink, fast_config).dispatch([], WEBHOOK) == []
        sink.send.assert_not_awaited()

    @pytest.mark.anyio
    async def test_pacing_between_batches_only(self) -> None:
        config = PipelineConfig(batch_pacing_delay=3.0)
        sink = AsyncMock()

        with patch(
            "newsrelay.notifications.dispatcher.asyncio.sleep", new_callable=AsyncMock
        ) as mock_sleep:
            await BatchedDispatcher(sink, config).dispatch(create_enriched(25), WEBHOOK)

        assert [call.args[0] for call in mock_sleep.await_args_list] == [3.0, 3.0]

    @pytest.mark.anyio
    async def test_outer_timeout_keeps_partial_success(self) -> None:
        config = PipelineConfig(send_all_timeout=0.2, batch_pacing_delay=0)

        async def send(target: str, payload: DiscordWebhookPayload) -> None:
            if first_title(payload) == "Title 10":
                await asyncio.sleep(5)

        sink = AsyncMock()
        sink.send = AsyncMock(side_effect=send)
        enriched = create_enriched(15)

        delivered = await BatchedDispatcher(sink, config).dispatch(enriched, WEBHOOK)

        assert delivered == [e.item for e in enriched[:10]]


class TestEnrichAndDispatch:
    """Tests for the enrich-then-dispatch stage."""

    @pytest.mark.anyio
    async def test_enriches_then_dispatches(self, fast_config: PipelineConfig) -> None:
        enriched = create_enriched(2)
        items = [e.item for e in enriched]
        enricher = MagicMock()
        enricher.enrich = AsyncMock(return_value=enriched)
        dispatcher = BatchedDispatcher(AsyncMock(), fast_config)

        delivered = await enrich_and_dispatch(
            items, WEBHOOK, enricher=enricher, dispatcher=dispatcher
        )

        enricher.enrich.assert_awaited_once_with(items)
        assert delivered == [e.item for e in enriched]

    @pytest.mark.anyio
    async def test_empty_items(self, fast_config: PipelineConfig) -> None:
        enricher = MagicMock()
        enricher.enrich = AsyncMock()
        dispatcher = BatchedDispatcher(AsyncMock(), fast_config)

        delivered = await enrich_and_dispatch(
            [], WEBHOOK, enricher=enricher, dispatcher=dispatcher
        )
        assert delivered == []
        enricher.enrich.assert_not_awaited()

    @pytest.mark.anyio
    async def test_enrichment_crash_returns_empty(self, fast_config: PipelineConfig) -> None:
        enricher = MagicMock()
        enricher.enrich = AsyncMock(side_effect=RuntimeError("boom"))
        dispatcher = BatchedDispatcher(AsyncMock(), fast_config)
        items = [e.item for e in create_enriched(2)]

        delivered = await enrich_and_dispatch(
            items, WEBHOOK, enricher=enricher, dispatcher=dispatcher
        )
        assert delivered == []
