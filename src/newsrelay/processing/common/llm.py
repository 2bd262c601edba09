"""LLM model factory and text-completion oracle for PydanticAI.

Supports:
- Anthropic (Claude) - default
- OpenAI-compatible APIs
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic_ai import Agent
from pydantic_ai.models import Model
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider

from newsrelay.config import Settings, get_settings
from newsrelay.core.exceptions import (
    ErrorKind,
    OracleError,
    ResponseParseError,
    classify_error,
)
from newsrelay.core.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class Oracle(Protocol):
    """Untrusted text-in/text-out completion service."""

    async def complete(self, user_prompt: str, system_prompt: str | None = None) -> str:
        """Return the raw completion text. May raise on transport errors."""
        ...


def create_model(settings: Settings | None = None) -> str | Model:
    """Create a PydanticAI model based on configuration.

    Returns:
        Model string for Anthropic (e.g., "anthropic:claude-3-5-haiku-20241022")
        or OpenAIChatModel instance for OpenAI-compatible APIs.
    """
    settings = settings or get_settings()
    model_name = settings.llm_model

    if settings.llm_provider == "anthropic":
        model_str = f"anthropic:{model_name}"
        logger.debug("Using Anthropic model", model=model_str)
        return model_str

    api_key = settings.openai_api_key.get_secret_value() if settings.openai_api_key else None

    if settings.openai_base_url:
        provider = OpenAIProvider(base_url=settings.openai_base_url, api_key=api_key)
        logger.debug(
            "Using OpenAI-compatible model",
            model=model_name,
            base_url=settings.openai_base_url,
        )
    else:
        provider = OpenAIProvider(api_key=api_key)
        logger.debug("Using OpenAI model", model=model_name)

    return OpenAIChatModel(model_name, provider=provider)


class PydanticAIOracle:
    """Oracle backed by a plain-text PydanticAI agent.

    One agent is built lazily per distinct system prompt. Errors are
    re-raised as OracleError tagged with their ErrorKind.
    """

    def __init__(self, model: str | Model | None = None) -> None:
        self._model = model
        self._agents: dict[str | None, Agent[None, str]] = {}

    def _agent(self, system_prompt: str | None) -> Agent[None, str]:
        agent = self._agents.get(system_prompt)
        if agent is None:
            model = self._model if self._model is not None else create_model()
            if system_prompt:
                agent = Agent(model, output_type=str, system_prompt=system_prompt)
            else:
                agent = Agent(model, output_type=str)
            self._agents[system_prompt] = agent
        return agent

    async def complete(self, user_prompt: str, system_prompt: str | None = None) -> str:
        logger.debug("Sending prompt to LLM", prompt_chars=len(user_prompt))
        try:
            result = await self._agent(system_prompt).run(user_prompt)
        except Exception as e:
            kind = classify_error(e)
            logger.warning(
                "LLM call failed",
                error_type=type(e).__name__,
                error=str(e),
                kind=kind.value,
            )
            if kind is ErrorKind.malformed:
                raise ResponseParseError(f"LLM response unusable: {e}") from e
            raise OracleError(f"LLM call failed: {e}", kind=kind) from e

        output = result.output
        logger.debug("LLM response received", response_chars=len(output))
        return output
