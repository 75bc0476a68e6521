from collections.abc import Callable
from enum import StrEnum
from enum import auto
from typing import Final
from typing import TypeVar

from pydantic import BaseModel
from pydantic import ConfigDict

_F = TypeVar("_F", bound=Callable[..., object])


def pure(func: _F) -> _F:
    """Mark a function as pure: no side effects, same output for the same inputs.

    Advisory only, not enforced at runtime.
    """
    return func


class FrozenModel(BaseModel):
    """Base class for immutable pydantic models that prevent attribute mutation after construction."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=False,
    )


class UpperCaseStrEnum(StrEnum):
    """A StrEnum whose auto() values are the upper-cased member names."""

    @staticmethod
    def _generate_next_value_(
        name: str,
        start: int,
        count: int,
        last_values: list[str],
    ) -> str:
        return name.upper()


class TimeoutReason(UpperCaseStrEnum):
    """Why a poll run stopped without success."""

    # The condition was fulfilled before the minimum wait had elapsed
    CONDITION_MET_TOO_EARLY = auto()
    # The condition was never (or not currently) fulfilled when the maximum wait elapsed
    CONDITION_NOT_MET = auto()
    # The condition was fulfilled, but did not stay fulfilled for the whole hold window
    CONDITION_NOT_HELD = auto()

    @property
    def is_late(self) -> bool:
        return self in _LATE_TIMEOUT_REASONS


_LATE_TIMEOUT_REASONS: Final[frozenset[TimeoutReason]] = frozenset(
    {TimeoutReason.CONDITION_NOT_MET, TimeoutReason.CONDITION_NOT_HELD}
)


class EarlyConditionPolicy(UpperCaseStrEnum):
    """What the poll loop does when the condition is fulfilled before the minimum wait."""

    # Stop at the tick that observed the early result
    FAIL_IMMEDIATELY = auto()
    # Keep waiting until the minimum wait has elapsed, then fail
    FAIL_AT_MINIMUM = auto()
