"""Pytest fixtures and configuration."""

import pytest

from newsrelay.config import PipelineConfig


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests by default unless -m integration is specified."""
    # Check if user explicitly requested integration tests
    markexpr = config.getoption("-m", default="")
    if "integration" in markexpr:
        # User wants integration tests, don't skip
        return

    # Skip integration tests by default
    skip_integration = pytest.mark.skip(reason="Integration test - run with: pytest -m integration")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio for async tests."""
    return "asyncio"


@pytest.fixture
def fast_config() -> PipelineConfig:
    """Pipeline config with no backoff or pacing delays."""
    return PipelineConfig(
        selector_backoff_base=0,
        selector_backoff_max=0,
        enrich_backoff_base=0,
        enrich_backoff_max=0,
        send_backoff_base=0,
        send_backoff_max=0,
        batch_pacing_delay=0,
    )
