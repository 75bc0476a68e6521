"""The poll loop: evaluate a condition on a schedule until it is fulfilled or a duration constraint is violated."""

import time
from collections.abc import Callable
from threading import Event
from typing import Any
from typing import NoReturn
from typing import TypeVar

from loguru import logger
from pydantic import ConfigDict
from pydantic import Field
from pydantic import model_validator

from imbue.condition_poller.classifier import HoldWindowState
from imbue.condition_poller.classifier import build_timeout_message
from imbue.condition_poller.classifier import classify_timeout
from imbue.condition_poller.classifier import is_hold_window_complete
from imbue.condition_poller.classifier import observe_tick
from imbue.condition_poller.config import DEFAULT_POLL_DELAY_SECONDS
from imbue.condition_poller.config import DEFAULT_POLL_INTERVAL_SECONDS
from imbue.condition_poller.config import DEFAULT_TIMEOUT_SECONDS
from imbue.condition_poller.config import load_poll_defaults
from imbue.condition_poller.constraints import DurationConstraints
from imbue.condition_poller.constraints import is_before_minimum
from imbue.condition_poller.constraints import remaining_seconds
from imbue.condition_poller.errors import ConditionTimeoutError
from imbue.condition_poller.errors import InvalidPollScheduleError
from imbue.condition_poller.evaluator import ConditionEvaluator
from imbue.condition_poller.evaluator import IgnorePolicy
from imbue.condition_poller.evaluator import assertion_condition
from imbue.condition_poller.evaluator import boolean_condition
from imbue.condition_poller.evaluator import value_condition
from imbue.condition_poller.logging import log_poll_run
from imbue.condition_poller.poll_schedule import FixedPollInterval
from imbue.condition_poller.poll_schedule import PollInterval
from imbue.condition_poller.poll_schedule import PollSchedule
from imbue.condition_poller.poll_schedule import validate_poll_schedule
from imbue.condition_poller.primitives import EarlyConditionPolicy
from imbue.condition_poller.primitives import FrozenModel
from imbue.condition_poller.report import TimeoutReport

T = TypeVar("T")

TimeoutCallback = Callable[[TimeoutReport], None]


class PollSettings(FrozenModel):
    """Everything the poll loop needs to know about one run, apart from the condition itself."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    alias: str = Field(default="", description="Label used in timeout messages and logs")
    constraints: DurationConstraints = Field(
        default_factory=lambda: DurationConstraints(at_most=DEFAULT_TIMEOUT_SECONDS),
        description="Bounds the condition must respect",
    )
    poll_delay: float = Field(
        default=DEFAULT_POLL_DELAY_SECONDS, allow_inf_nan=False, description="Seconds before the first evaluation"
    )
    poll_interval: PollInterval = Field(
        default_factory=lambda: FixedPollInterval(interval=DEFAULT_POLL_INTERVAL_SECONDS),
        description="Strategy for the waits between evaluations",
    )
    ignore_policy: IgnorePolicy = Field(
        default_factory=IgnorePolicy, description="Which condition errors count as 'not yet'"
    )
    early_policy: EarlyConditionPolicy = Field(
        default=EarlyConditionPolicy.FAIL_IMMEDIATELY,
        description="Whether a too-early result fails at once or once at_least has elapsed",
    )
    on_timeout: TimeoutCallback | None = Field(
        default=None, description="Called once with the report before a timeout is raised"
    )

    @model_validator(mode="after")
    def _validate_poll_schedule(self) -> "PollSettings":
        validate_poll_schedule(self.poll_delay, self.poll_interval)
        return self


class PollOutcome(FrozenModel):
    """The result of a successful poll run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    elapsed: float = Field(description="Seconds between the start of polling and the success decision")
    poll_count: int = Field(description="How many times the condition was evaluated")
    value: Any = Field(default=None, description="The value of the last, successful evaluation")


def _suspend(seconds: float) -> None:
    if seconds > 0:
        Event().wait(timeout=seconds)


def _clip_to_deadline(wait: float, constraints: DurationConstraints, elapsed: float) -> float:
    remaining = remaining_seconds(constraints, elapsed)
    if remaining is None:
        return wait
    return min(wait, remaining)


def poll_until_condition(evaluator: ConditionEvaluator, settings: PollSettings) -> PollOutcome:
    """Evaluate the condition until it is fulfilled, or raise ConditionTimeoutError.

    The condition counts as fulfilled once it is true (and, with a hold window, has
    stayed true for the whole window). A fulfilled result before at_least is a
    failure. Reaching at_most without a fulfilled result is a failure, but only
    after one last evaluation at (or past) the deadline.

    Errors raised by the condition and not tolerated by the ignore policy propagate
    unchanged, without any report or callback.
    """
    constraints = settings.constraints
    schedule = PollSchedule(settings.poll_delay, settings.poll_interval)
    state = HoldWindowState()

    with log_poll_run(settings.alias, constraints):
        start_time = time.monotonic()
        while True:
            _suspend(_clip_to_deadline(schedule.next_wait(), constraints, time.monotonic() - start_time))

            result = evaluator.evaluate()
            elapsed = time.monotonic() - start_time
            state = observe_tick(state, result.is_satisfied, elapsed)

            if is_hold_window_complete(constraints, state, elapsed):
                if is_before_minimum(constraints, elapsed):
                    if settings.early_policy == EarlyConditionPolicy.FAIL_AT_MINIMUM:
                        assert constraints.at_least is not None
                        _suspend(constraints.at_least - elapsed)
                    _fail(settings, state, satisfied_at=elapsed, elapsed=time.monotonic() - start_time)
                logger.debug(
                    "Condition {!r} fulfilled after {:.3f} sec ({} polls)", settings.alias, elapsed, schedule.poll_count
                )
                return PollOutcome(elapsed=elapsed, poll_count=schedule.poll_count, value=result.value)

            if constraints.at_most is not None and elapsed >= constraints.at_most:
                _fail(settings, state, satisfied_at=None, elapsed=elapsed)


def _fail(settings: PollSettings, state: HoldWindowState, satisfied_at: float | None, elapsed: float) -> NoReturn:
    """Build the timeout report, hand it to the callback, and raise."""
    reason = classify_timeout(settings.constraints, state, satisfied_at)
    report = TimeoutReport(
        alias=settings.alias,
        timeout_message=build_timeout_message(settings.alias, reason, settings.constraints, satisfied_at),
        evaluation_duration=elapsed,
        timeout_reason=reason,
    )
    logger.debug(
        "Condition {!r} timed out after {:.3f} sec: {} (hold window broken {} times)",
        settings.alias,
        elapsed,
        reason,
        state.break_count,
    )
    if settings.on_timeout is not None:
        settings.on_timeout(report)
    raise ConditionTimeoutError(report)


def build_poll_settings(
    alias: str = "",
    at_least: float | None = None,
    at_most: float | None = None,
    is_forever: bool = False,
    hold_for: float | None = None,
    poll_delay: float | None = None,
    poll_interval: float | PollInterval | None = None,
    ignore: IgnorePolicy | tuple[type[Exception], ...] | None = None,
    on_timeout: TimeoutCallback | None = None,
    early_policy: EarlyConditionPolicy = EarlyConditionPolicy.FAIL_IMMEDIATELY,
) -> PollSettings:
    """Combine explicit arguments with the (environment-derived) defaults.

    at_most falls back to the default timeout unless is_forever is set, in which
    case it must not be given at all.
    """
    defaults = load_poll_defaults()

    if is_forever:
        if at_most is not None:
            raise InvalidPollScheduleError("at_most cannot be combined with is_forever")
        resolved_at_most = None
    else:
        resolved_at_most = at_most if at_most is not None else defaults.at_most

    if poll_interval is None:
        resolved_poll_interval: PollInterval = FixedPollInterval(interval=defaults.poll_interval)
    elif isinstance(poll_interval, PollInterval):
        resolved_poll_interval = poll_interval
    else:
        resolved_poll_interval = FixedPollInterval(interval=poll_interval)

    if ignore is None:
        ignore_policy = IgnorePolicy.ignore_nothing()
    elif isinstance(ignore, IgnorePolicy):
        ignore_policy = ignore
    else:
        ignore_policy = IgnorePolicy.ignore_instances_of(*ignore)

    return PollSettings(
        alias=alias,
        constraints=DurationConstraints(at_least=at_least, at_most=resolved_at_most, hold_for=hold_for),
        poll_delay=poll_delay if poll_delay is not None else defaults.poll_delay,
        poll_interval=resolved_poll_interval,
        ignore_policy=ignore_policy,
        early_policy=early_policy,
        on_timeout=on_timeout,
    )


def await_condition(condition: Callable[[], bool], **options: Any) -> float:
    """Block until condition() is truthy, returning the seconds it took.

    Keyword arguments are those of build_poll_settings. Raises ConditionTimeoutError
    when a duration constraint is violated.

    A condition fulfilled before at_least fails at the tick that observed it. Pass
    early_policy=EarlyConditionPolicy.FAIL_AT_MINIMUM to keep waiting until at_least
    has elapsed and fail then, so the report's evaluation_duration is about at_least.
    """
    settings = build_poll_settings(**options)
    evaluator = ConditionEvaluator(boolean_condition(condition), settings.ignore_policy)
    return poll_until_condition(evaluator, settings).elapsed


def await_value(supplier: Callable[[], T], matcher: Callable[[T], bool], **options: Any) -> T:
    """Block until matcher(supplier()) is truthy, returning the matching value."""
    settings = build_poll_settings(**options)
    evaluator = ConditionEvaluator(value_condition(supplier, matcher), settings.ignore_policy)
    return poll_until_condition(evaluator, settings).value


def await_assertion(assertion: Callable[[], object], **options: Any) -> None:
    """Block until assertion() runs without raising AssertionError."""
    settings = build_poll_settings(**options)
    evaluator = ConditionEvaluator(assertion_condition(assertion), settings.ignore_policy)
    poll_until_condition(evaluator, settings)
