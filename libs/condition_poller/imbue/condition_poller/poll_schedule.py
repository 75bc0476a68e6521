"""Poll interval strategies and the per-run schedule that draws waits from them.

A schedule yields the wait before the first evaluation (the poll delay) and then
one interval per subsequent evaluation. It is logically infinite: only the poll
loop decides when to stop drawing from it.
"""

import math
from abc import ABC
from abc import abstractmethod
from collections.abc import Callable
from typing import Final

from pydantic import ConfigDict
from pydantic import Field
from pydantic import model_validator

from imbue.condition_poller.durations import ONE_MILLISECOND
from imbue.condition_poller.errors import InvalidPollScheduleError
from imbue.condition_poller.primitives import FrozenModel

# Number of leading intervals sampled from a strategy when a schedule is configured
_INTERVAL_SAMPLE_SIZE: Final[int] = 32


class PollInterval(FrozenModel, ABC):
    """Strategy computing the wait between two consecutive evaluations."""

    @abstractmethod
    def next_interval(self, poll_count: int, previous_interval: float) -> float:
        """Return the seconds to wait before evaluation number poll_count + 1.

        poll_count starts at 1 (the interval following the first evaluation).
        previous_interval is the previous wait, which is the poll delay for the first interval.
        """
        ...


class FixedPollInterval(PollInterval):
    """The same wait between every evaluation."""

    interval: float = Field(allow_inf_nan=False, description="Seconds between evaluations")

    @model_validator(mode="after")
    def _validate_interval(self) -> "FixedPollInterval":
        if self.interval <= 0:
            raise InvalidPollScheduleError(f"Poll interval must be > 0, got {self.interval}")
        return self

    def next_interval(self, poll_count: int, previous_interval: float) -> float:
        return self.interval


class IncrementingPollInterval(PollInterval):
    """A wait that grows linearly: start, start + increment, start + 2 * increment, ..."""

    start: float = Field(allow_inf_nan=False, description="Seconds before the second evaluation")
    increment: float = Field(allow_inf_nan=False, description="Seconds added to the wait after every evaluation")

    @model_validator(mode="after")
    def _validate_parameters(self) -> "IncrementingPollInterval":
        if self.start <= 0:
            raise InvalidPollScheduleError(f"Incrementing poll interval must start > 0, got {self.start}")
        if self.increment < 0:
            raise InvalidPollScheduleError(f"Poll interval increment must be >= 0, got {self.increment}")
        return self

    def next_interval(self, poll_count: int, previous_interval: float) -> float:
        return self.start + (poll_count - 1) * self.increment


class FibonacciPollInterval(PollInterval):
    """A wait following the fibonacci sequence, scaled by unit: unit * fib(offset + poll_count)."""

    unit: float = Field(default=ONE_MILLISECOND, allow_inf_nan=False, description="Seconds per fibonacci step")
    offset: int = Field(default=0, description="How many fibonacci numbers to skip")

    @model_validator(mode="after")
    def _validate_parameters(self) -> "FibonacciPollInterval":
        if self.unit <= 0:
            raise InvalidPollScheduleError(f"Fibonacci poll interval unit must be > 0, got {self.unit}")
        if self.offset < 0:
            raise InvalidPollScheduleError(f"Fibonacci poll interval offset must be >= 0, got {self.offset}")
        return self

    def next_interval(self, poll_count: int, previous_interval: float) -> float:
        return self.unit * _fibonacci(self.offset + poll_count)


def _fibonacci(n: int) -> int:
    previous, current = 0, 1
    for _ in range(n - 1):
        previous, current = current, previous + current
    return current


class CustomPollInterval(PollInterval):
    """A wait computed by a caller-supplied function of (poll_count, previous_interval).

    The function must be pure: its leading intervals are sampled, seeded with the run's
    poll delay, when the schedule is configured.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    func: Callable[[int, float], float] = Field(description="Computes the next interval in seconds")

    def next_interval(self, poll_count: int, previous_interval: float) -> float:
        return self.func(poll_count, previous_interval)


def _check_interval(interval: float, poll_count: int) -> float:
    if not math.isfinite(interval) or interval <= 0:
        raise InvalidPollScheduleError(
            f"Poll interval strategy produced a non-positive or non-finite interval ({interval}) for poll {poll_count}"
        )
    return interval


def validate_poll_schedule(poll_delay: float, poll_interval: PollInterval) -> None:
    """Reject a poll delay, or leading strategy intervals, that a run could not use.

    The strategy is sampled exactly the way PollSchedule will draw from it, starting
    from poll_delay, so a configuration that passes here does not fail in its first ticks.
    """
    if not math.isfinite(poll_delay) or poll_delay < 0:
        raise InvalidPollScheduleError(f"Poll delay must be a finite number >= 0, got {poll_delay}")
    previous_interval = poll_delay
    for poll_count in range(1, _INTERVAL_SAMPLE_SIZE + 1):
        previous_interval = _check_interval(poll_interval.next_interval(poll_count, previous_interval), poll_count)


class PollSchedule:
    """The lazily generated sequence of waits for one poll run.

    Not restartable: create a fresh schedule for every run.
    """

    def __init__(self, poll_delay: float, poll_interval: PollInterval) -> None:
        validate_poll_schedule(poll_delay, poll_interval)
        self._poll_delay = poll_delay
        self._poll_interval = poll_interval
        self._poll_count = 0
        self._previous_wait = poll_delay

    @property
    def poll_count(self) -> int:
        """How many waits have been drawn so far."""
        return self._poll_count

    def next_wait(self) -> float:
        """Return the seconds to wait before the next evaluation."""
        if self._poll_count == 0:
            wait = self._poll_delay
        else:
            wait = _check_interval(
                self._poll_interval.next_interval(self._poll_count, self._previous_wait),
                self._poll_count,
            )
        self._poll_count += 1
        self._previous_wait = wait
        return wait
