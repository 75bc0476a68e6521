import time
from collections.abc import Iterator
from contextlib import contextmanager

from loguru import logger

from imbue.condition_poller.constraints import DurationConstraints


@contextmanager
def log_poll_run(alias: str, constraints: DurationConstraints) -> Iterator[None]:
    """Bracket one poll run in the log: its constraints on entry, its duration and outcome on exit.

    The alias is bound as the poll_alias extra, so every message logged during the run
    (including the loop's stop decision) can be filtered by it.
    """
    with logger.contextualize(poll_alias=alias):
        logger.debug(
            "Polling condition {!r} (at_least={}, at_most={}, hold_for={})",
            alias,
            constraints.at_least,
            constraints.at_most,
            constraints.hold_for,
        )
        start_time = time.monotonic()
        try:
            yield
        except BaseException as e:
            logger.trace(
                "Poll run {!r} ended with {} after {:.5f} sec", alias, type(e).__name__, time.monotonic() - start_time
            )
            raise
        logger.trace("Poll run {!r} succeeded after {:.5f} sec", alias, time.monotonic() - start_time)
