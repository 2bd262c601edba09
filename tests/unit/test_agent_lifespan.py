"""Tests for agent startup/shutdown and pipeline wiring."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from newsrelay.agent import agent_lifespan, run_once
from newsrelay.config import FeedSource, Settings
from newsrelay.core.processor import create_pipeline
from newsrelay.notifications.discord import DiscordWebhookSink
from newsrelay.processing.language import LangDetectChecker
from newsrelay.processing.models import RunResult
from newsrelay.storage.database import PostgresHistoryStore


def make_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "rss_feeds": [FeedSource(name="Example", url="https://example.com/rss")],
        "discord_webhook_url": "https://discord.com/api/webhooks/1/x",
        "anthropic_api_key": "test-key",
        "top_news_count": 7,
    }
    values.update(overrides)
    return Settings.model_validate(values)


class TestCreatePipeline:
    def test_wires_components(self) -> None:
        settings = make_settings()
        db = MagicMock()
        feeds = MagicMock()

        pipeline = create_pipeline(settings, db, feeds)

        assert pipeline.webhook_url == "https://discord.com/api/webhooks/1/x"
        assert pipeline.fetch is feeds.fetch_all
        assert isinstance(pipeline.history, PostgresHistoryStore)
        assert pipeline.duplicate_filter.history is pipeline.history
        assert isinstance(pipeline.dispatcher.sink, DiscordWebhookSink)
        assert isinstance(pipeline.enricher.language_checker, LangDetectChecker)
        assert pipeline.config.top_news_count == 7
        assert pipeline.selector.config is pipeline.config

    def test_no_webhook(self) -> None:
        settings = make_settings(discord_webhook_url=None)
        pipeline = create_pipeline(settings, MagicMock(), MagicMock())
        assert pipeline.webhook_url is None


class TestAgentLifespan:
    @pytest.mark.anyio
    async def test_starts_and_stops(self) -> None:
        settings = make_settings(scheduler_enabled=True)
        mock_db = MagicMock()

        with (
            patch(
                "newsrelay.agent.__main__.init_database",
                new_callable=AsyncMock,
                return_value=mock_db,
            ) as mock_init,
            patch(
                "newsrelay.agent.__main__.close_database", new_callable=AsyncMock
            ) as mock_close,
        ):
            async with agent_lifespan(settings) as state:
                assert state.db is mock_db
                assert state.scheduler is not None
                assert state.scheduler.running
                assert state.scheduler.get_job("daily_news") is not None
                scheduler = state.scheduler

            mock_init.assert_awaited_once_with(settings.database_url)
            mock_close.assert_awaited_once()
            assert not scheduler.running

    @pytest.mark.anyio
    async def test_scheduler_disabled(self) -> None:
        settings = make_settings(scheduler_enabled=False)

        with (
            patch("newsrelay.agent.__main__.init_database", new_callable=AsyncMock),
            patch("newsrelay.agent.__main__.close_database", new_callable=AsyncMock),
        ):
            async with agent_lifespan(settings) as state:
                assert state.scheduler is None

    @pytest.mark.anyio
    async def test_database_failure_propagates(self) -> None:
        with (
            patch(
                "newsrelay.agent.__main__.init_database",
                new_callable=AsyncMock,
                side_effect=OSError("refused"),
            ),
            patch(
                "newsrelay.agent.__main__.close_database", new_callable=AsyncMock
            ) as mock_close,
        ):
            with pytest.raises(OSError):
                async with agent_lifespan(make_settings()):
                    pass

        mock_close.assert_not_awaited()


class TestRunOnce:
    @pytest.mark.anyio
    async def test_exit_code_follows_result(self) -> None:
        with (
            patch("newsrelay.agent.__main__.init_database", new_callable=AsyncMock),
            patch("newsrelay.agent.__main__.close_database", new_callable=AsyncMock),
            patch("newsrelay.core.processor.NewsPipeline.run_once", new_callable=AsyncMock) as run,
        ):
            run.return_value = RunResult(status="ok")
            assert await run_once(make_settings()) == 0

            run.return_value = RunResult(status="Run failed", failed=True)
            assert await run_once(make_settings()) == 1
