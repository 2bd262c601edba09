"""Tests for the HTTP API (health, readiness, manual news run)."""

from __future__ import annotations

from collections.abc import AsyncIterator
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from newsrelay.core.dependencies import get_agent_state
from newsrelay.main import app
from newsrelay.processing.models import RunResult

pytestmark = pytest.mark.anyio


@pytest.fixture()
def mock_agent_state() -> MagicMock:
    state = MagicMock()
    state.pipeline = MagicMock()
    state.pipeline.run_once = AsyncMock(
        return_value=RunResult(status="Delivered 3 of 3 selected items", selected=3, delivered=3)
    )
    state.db = MagicMock()
    state.db.fetchval = AsyncMock(return_value=1)
    state.scheduler = MagicMock()
    state.scheduler.running = True
    return state


@pytest.fixture()
async def client(mock_agent_state: MagicMock) -> AsyncIterator[httpx.AsyncClient]:
    app.dependency_overrides[get_agent_state] = lambda: mock_agent_state
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


class TestHealth:
    async def test_health(self, client: httpx.AsyncClient) -> None:
        r = await client.get("/health")
        assert r.status_code == 200
        assert r.json() == {"status": "ok"}


class TestReady:
    async def test_ready_all_ok(self, client: httpx.AsyncClient) -> None:
        r = await client.get("/ready")
        assert r.json() == {"status": "ready", "db": "ok", "scheduler": "ok"}

    async def test_ready_db_down(
        self, client: httpx.AsyncClient, mock_agent_state: MagicMock
    ) -> None:
        mock_agent_state.db.fetchval.side_effect = ConnectionError("refused")
        body = (await client.get("/ready")).json()
        assert body["status"] == "not_ready"
        assert body["db"] == "error"

    async def test_ready_scheduler_disabled(
        self, client: httpx.AsyncClient, mock_agent_state: MagicMock
    ) -> None:
        mock_agent_state.scheduler = None
        body = (await client.get("/ready")).json()
        assert body["status"] == "ready"
        assert body["scheduler"] == "disabled"


class TestExecuteNews:
    async def test_success(self, client: httpx.AsyncClient, mock_agent_state: MagicMock) -> None:
        r = await client.post("/api/v1/news/execute")

        assert r.status_code == 200
        assert r.json() == {
            "success": True,
            "message": "Delivered 3 of 3 selected items",
            "articles_processed": 3,
        }
        mock_agent_state.pipeline.run_once.assert_awaited_once()

    async def test_failed_run(self, client: httpx.AsyncClient, mock_agent_state: MagicMock) -> None:
        mock_agent_state.pipeline.run_once.return_value = RunResult(
            status="Run failed: RuntimeError", failed=True
        )

        body = (await client.post("/api/v1/news/execute")).json()

        assert body["success"] is False
        assert body["articles_processed"] == -1

    async def test_not_initialized(self) -> None:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
            r = await c.post("/api/v1/news/execute")
        assert r.status_code == 503
