"""Project-level fixtures for condition_poller tests."""

import sys
from collections.abc import Iterator

import pytest
from loguru import logger

from imbue.condition_poller.config import POLL_DELAY_ENV_VAR
from imbue.condition_poller.config import POLL_INTERVAL_ENV_VAR
from imbue.condition_poller.config import TIMEOUT_ENV_VAR


@pytest.fixture(autouse=True)
def isolated_poll_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make sure default overrides from the developer's environment do not leak into tests."""
    for env_var in (TIMEOUT_ENV_VAR, POLL_INTERVAL_ENV_VAR, POLL_DELAY_ENV_VAR):
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture(autouse=True)
def stderr_debug_sink() -> Iterator[None]:
    """Route loguru to stderr at debug level, so poll decisions show up in failing test output."""
    logger.remove()
    handler_id = logger.add(sys.stderr, level="DEBUG")
    yield
    logger.remove(handler_id)
