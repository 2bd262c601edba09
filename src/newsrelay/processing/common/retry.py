"""Retry/timeout envelope for external calls.

Wraps a coroutine factory in tenacity's AsyncRetrying with:
- exponential backoff (``base * 2**n`` seconds, capped)
- a per-attempt ``asyncio.wait_for`` timeout
- a retry filter that only retries errors tagged ``ErrorKind.transient``
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from newsrelay.core.exceptions import ErrorKind, classify_error
from newsrelay.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def is_retryable(error: BaseException) -> bool:
    """Only transient errors (timeouts, transport, 5xx, 429) are retried."""
    return classify_error(error) is ErrorKind.transient


def _log_retry(operation: str) -> Callable[[RetryCallState], None]:
    def before_sleep(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        logger.warning(
            "Retrying after error",
            operation=operation,
            attempt=state.attempt_number,
            sleep_seconds=state.next_action.sleep if state.next_action else 0,
            error_type=type(error).__name__ if error else None,
            error=str(error) if error else None,
        )

    return before_sleep


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    name: str,
    max_retries: int,
    backoff_base: float,
    backoff_max: float,
    attempt_timeout: float | None = None,
) -> T:
    """Run ``operation`` with bounded retries and backoff.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        name: Operation name used in retry logs
        max_retries: Retries after the first attempt
        backoff_base: First backoff delay in seconds
        backoff_max: Backoff cap in seconds
        attempt_timeout: Optional timeout applied to each attempt

    Returns:
        The first successful result

    Raises:
        The last error once retries are exhausted, or the first
        non-retryable error.
    """
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=backoff_base, max=backoff_max),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_retry(name),
        reraise=True,
    ):
        with attempt:
            if attempt_timeout is None:
                return await operation()
            return await asyncio.wait_for(operation(), timeout=attempt_timeout)
    raise AssertionError("unreachable: AsyncRetrying reraises on exhaustion")
