"""News pipeline API endpoints."""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from newsrelay.core.dependencies import PipelineDep
from newsrelay.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


class ExecuteResponse(BaseModel):
    """Outcome of a manually triggered run."""

    success: bool
    message: str
    articles_processed: int


@router.post("/execute")
async def execute_news_run(pipeline: PipelineDep) -> ExecuteResponse:
    """Trigger one pipeline run and wait for it to finish.

    ``articles_processed`` is the number of selected items, or -1 when the
    run failed outright.
    """
    logger.info("Manual news run requested")
    result = await pipeline.run_once()
    return ExecuteResponse(
        success=result.success,
        message=result.status,
        articles_processed=result.count,
    )
