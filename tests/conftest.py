"""Root conftest.py for the Plinth test suite.

This file contains project-wide fixtures and pytest configuration.
"""

import contextlib
import os
from collections.abc import Generator
from typing import Any

import pytest
from loguru import logger

from plinth.core.config import get_settings
from plinth.core.context import RequestContext
from plinth.core.logging import reset_logging

# Environment variables read by Settings or a configuration slice
CONFIG_ENV_PREFIXES = (
    "APP_",
    "API_",
    "ENVIRONMENT",
    "DEBUG",
    "USE_",
    "LOG_",
    "JWT_",
    "DB_",
    "REDIS_",
    "VAULT_",
    "SECRET_PATH",
    "MOUNT_PATH",
)


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components in isolation"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that test multiple components"
    )


@pytest.fixture(autouse=True)
def clean_lru_cache() -> Generator[None]:
    """Clear the settings cache before and after each test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove configuration variables inherited from the developer's shell.

    Args:
        monkeypatch: Pytest monkeypatch fixture.

    Returns:
        pytest.MonkeyPatch: The monkeypatch instance for env manipulation.
    """
    for key in list(os.environ):
        if key.upper().startswith(CONFIG_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture(autouse=True)
def clean_context() -> Generator[None]:
    """Ensure no correlation ID leaks between tests."""
    RequestContext.clear()
    yield
    RequestContext.clear()


@pytest.fixture(autouse=True)
def clean_logging() -> Generator[None]:
    """Let every test configure logging from scratch."""
    reset_logging()
    yield
    reset_logging()
    logger.remove()


@pytest.fixture
def log_records() -> Generator[list[dict[str, Any]]]:
    """Capture Loguru records emitted during the test.

    Request this fixture after anything that calls ``setup_logging``, which
    replaces all sinks.

    Yields:
        list[dict[str, Any]]: Loguru record dicts in emission order.
    """
    records: list[dict[str, Any]] = []
    handler_id = logger.add(
        lambda message: records.append(message.record),
        level="TRACE",
        format="{message}",
    )
    yield records
    with contextlib.suppress(ValueError):
        logger.remove(handler_id)

