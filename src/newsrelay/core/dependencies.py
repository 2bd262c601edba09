"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from newsrelay.agent import AgentState
from newsrelay.config import Settings, get_settings
from newsrelay.core.processor import NewsPipeline

SettingsDep = Annotated[Settings, Depends(get_settings)]


async def get_agent_state(request: Request) -> AgentState:
    """Get AgentState from app.state (set during lifespan)."""
    state: AgentState | None = getattr(request.app.state, "agent", None)
    if state is None:
        raise HTTPException(status_code=503, detail="News pipeline not initialized")
    return state


async def get_pipeline(state: Annotated[AgentState, Depends(get_agent_state)]) -> NewsPipeline:
    return state.pipeline


AgentStateDep = Annotated[AgentState, Depends(get_agent_state)]
PipelineDep = Annotated[NewsPipeline, Depends(get_pipeline)]
