"""Root conftest enforcing a time limit on the whole test suite.

The poll loop tests run against the real clock, so a suite that suddenly takes
much longer usually means a poll run is no longer stopping when it should.
"""

import os
import time
from collections.abc import Mapping
from typing import Final

import pytest

# Limit applied to the whole suite when run locally
_LOCAL_MAX_DURATION_SECONDS: Final[float] = 60.0

# CI machines are slower and noisier
_CI_MAX_DURATION_SECONDS: Final[float] = 120.0


def get_max_suite_duration(environ: Mapping[str, str]) -> float:
    """Return the maximum allowed test suite duration in seconds.

    PYTEST_MAX_DURATION overrides the defaults (useful when generating test timings).
    """
    if "PYTEST_MAX_DURATION" in environ:
        return float(environ["PYTEST_MAX_DURATION"])
    if "CI" in environ:
        return _CI_MAX_DURATION_SECONDS
    return _LOCAL_MAX_DURATION_SECONDS


@pytest.hookimpl(tryfirst=True)
def pytest_sessionstart(session: pytest.Session) -> None:
    setattr(session, "start_time", time.time())


@pytest.hookimpl(trylast=True)
def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    """Check that the total test session time is under the configured limit."""
    if hasattr(session, "start_time"):
        duration = time.time() - session.start_time
        max_duration = get_max_suite_duration(os.environ)
        if duration > max_duration:
            pytest.exit(
                f"Test suite took {duration:.2f}s, exceeding the {max_duration}s limit",
                returncode=1,
            )
