"""Agent module: scheduled and on-demand news runs.

Usage:
    uv run -m newsrelay.agent

Or in code:
    from newsrelay.agent import agent_lifespan
    async with agent_lifespan(settings) as state:
        await state.pipeline.run_once()
"""

from newsrelay.agent.__main__ import AgentState, agent_lifespan, run_once

__all__ = ["AgentState", "agent_lifespan", "run_once"]
