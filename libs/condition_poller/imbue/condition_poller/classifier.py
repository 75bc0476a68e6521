"""Deciding why a poll run failed, and describing it.

Everything here is pure: the poll loop feeds in what it observed and gets back a
reason and a message.
"""

from typing import assert_never

from pydantic import Field

from imbue.condition_poller.constraints import DurationConstraints
from imbue.condition_poller.primitives import FrozenModel
from imbue.condition_poller.primitives import TimeoutReason
from imbue.condition_poller.primitives import pure


class HoldWindowState(FrozenModel):
    """What the poll loop has seen of the condition so far, as needed for hold windows."""

    was_ever_satisfied: bool = Field(default=False, description="Whether any tick observed the condition as true")
    window_started_at: float | None = Field(
        default=None, description="Elapsed seconds at which the current unbroken run of true ticks began"
    )
    break_count: int = Field(default=0, description="How many times a run of true ticks was interrupted")

    @property
    def is_holding(self) -> bool:
        return self.window_started_at is not None

    def held_for(self, elapsed: float) -> float:
        """Seconds the condition has been continuously true as of elapsed."""
        if self.window_started_at is None:
            return 0.0
        return elapsed - self.window_started_at


@pure
def observe_tick(state: HoldWindowState, is_satisfied: bool, elapsed: float) -> HoldWindowState:
    """Fold one tick's result into the hold window state."""
    if is_satisfied:
        if state.is_holding:
            return state
        return state.model_copy(update={"was_ever_satisfied": True, "window_started_at": elapsed})
    if state.is_holding:
        return state.model_copy(update={"window_started_at": None, "break_count": state.break_count + 1})
    return state


@pure
def is_hold_window_complete(constraints: DurationConstraints, state: HoldWindowState, elapsed: float) -> bool:
    """Whether the condition counts as fulfilled, taking the hold window into account."""
    if not state.is_holding:
        return False
    if constraints.hold_for is None:
        return True
    return state.held_for(elapsed) >= constraints.hold_for


@pure
def classify_timeout(
    constraints: DurationConstraints,
    state: HoldWindowState,
    satisfied_at: float | None,
) -> TimeoutReason:
    """Map the stop of an unsuccessful run to its reason.

    satisfied_at is the elapsed time at which the condition counted as fulfilled
    (hold window included), or None if it never did. The order of checks matters:
    a fulfilled-too-soon result wins, and a hold window that was ever engaged is
    reported as not held rather than not met.
    """
    if satisfied_at is not None and constraints.at_least is not None and satisfied_at < constraints.at_least:
        return TimeoutReason.CONDITION_MET_TOO_EARLY
    if constraints.hold_for is not None and state.was_ever_satisfied:
        return TimeoutReason.CONDITION_NOT_HELD
    return TimeoutReason.CONDITION_NOT_MET


@pure
def _format_seconds(seconds: float | None) -> str:
    if seconds is None:
        return "forever"
    return f"{seconds:.3f} seconds"


@pure
def build_timeout_message(
    alias: str,
    reason: TimeoutReason,
    constraints: DurationConstraints,
    satisfied_at: float | None,
) -> str:
    """Describe a timeout the way it should read in a failing test."""
    subject = f"Condition with alias '{alias}'" if alias else "Condition"
    match reason:
        case TimeoutReason.CONDITION_MET_TOO_EARLY:
            return (
                f"{subject} was fulfilled after {_format_seconds(satisfied_at)}, "
                f"which is earlier than the expected minimum of {_format_seconds(constraints.at_least)}."
            )
        case TimeoutReason.CONDITION_NOT_HELD:
            return (
                f"{subject} was not held for {_format_seconds(constraints.hold_for)} "
                f"within {_format_seconds(constraints.at_most)}."
            )
        case TimeoutReason.CONDITION_NOT_MET:
            return f"{subject} was not fulfilled within {_format_seconds(constraints.at_most)}."
        case _ as unreachable:
            assert_never(unreachable)
