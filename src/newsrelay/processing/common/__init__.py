"""Shared utilities for processing stages.

- LLM oracle (PydanticAI model creation and plain-text completion)
- Retry policy driven by ErrorKind
- Text truncation and HTML cleanup
"""

from newsrelay.processing.common.llm import Oracle, PydanticAIOracle, create_model
from newsrelay.processing.common.retry import call_with_retry, is_retryable
from newsrelay.processing.common.text import clean_html, truncate

__all__ = [
    "Oracle",
    "PydanticAIOracle",
    "call_with_retry",
    "clean_html",
    "create_model",
    "is_retryable",
    "truncate",
]
