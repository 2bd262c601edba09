"""FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from newsrelay.agent import agent_lifespan
from newsrelay.api import api_router
from newsrelay.config import get_settings
from newsrelay.core.dependencies import AgentStateDep
from newsrelay.core.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan, starts the news agent alongside the HTTP server."""
    settings = get_settings()
    setup_logging(settings)

    async with agent_lifespan(settings) as state:
        app.state.agent = state
        logger.info("NewsRelay ready", env=settings.env)
        yield


app = FastAPI(
    title="NewsRelay",
    description="Daily tech news digest: dedup, AI curation and Discord delivery",
    version="0.1.0",
    lifespan=lifespan,
)

# Infrastructure (no prefix, not versioned)


@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness check, always ok if process is running."""
    return {"status": "ok"}


@app.get("/ready")
async def ready(state: AgentStateDep) -> dict[str, str]:
    """Readiness check, verifies the database and scheduler."""
    checks: dict[str, str] = {}
    try:
        await state.db.fetchval("SELECT 1")
        checks["db"] = "ok"
    except Exception:
        checks["db"] = "error"
    if state.scheduler is None:
        checks["scheduler"] = "disabled"
    else:
        checks["scheduler"] = "ok" if state.scheduler.running else "error"
    status = "ready" if all(v != "error" for v in checks.values()) else "not_ready"
    return {"status": status, **checks}


# Domain API
app.include_router(api_router, prefix="/api/v1")
