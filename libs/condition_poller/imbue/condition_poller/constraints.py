from pydantic import Field
from pydantic import FiniteFloat
from pydantic import model_validator

from imbue.condition_poller.errors import ConstraintViolationError
from imbue.condition_poller.primitives import FrozenModel
from imbue.condition_poller.primitives import pure


class DurationConstraints(FrozenModel):
    """Time bounds a condition must respect for a poll run to succeed.

    A missing at_most means the run may poll forever. Violations are raised as
    ConstraintViolationError at construction, so nothing invalid ever reaches the poll loop.
    """

    at_least: FiniteFloat | None = Field(
        default=None, description="Minimum seconds that must elapse before a fulfilled condition counts as success"
    )
    at_most: FiniteFloat | None = Field(
        default=None, description="Maximum seconds to poll before giving up (None polls forever)"
    )
    hold_for: FiniteFloat | None = Field(
        default=None, description="Seconds the condition must stay fulfilled, continuously, to count as success"
    )

    @model_validator(mode="after")
    def _validate_bounds(self) -> "DurationConstraints":
        if self.at_least is not None and self.at_least < 0:
            raise ConstraintViolationError(f"at_least must be >= 0, got {self.at_least}")
        if self.at_most is not None and self.at_most <= 0:
            raise ConstraintViolationError(f"at_most must be > 0, got {self.at_most}")
        if self.hold_for is not None and self.hold_for < 0:
            raise ConstraintViolationError(f"hold_for must be >= 0, got {self.hold_for}")
        if self.at_least is not None and self.at_most is not None and self.at_least > self.at_most:
            raise ConstraintViolationError(
                f"at_least ({self.at_least} seconds) must be less than or equal to at_most ({self.at_most} seconds)"
            )
        if self.hold_for is not None and self.at_most is not None and self.hold_for >= self.at_most:
            raise ConstraintViolationError(
                f"at_most ({self.at_most} seconds) must be greater than hold_for ({self.hold_for} seconds)"
            )
        return self


@pure
def remaining_seconds(constraints: DurationConstraints, elapsed: float) -> float | None:
    """Seconds left until at_most expires, clamped at zero. None when polling forever."""
    if constraints.at_most is None:
        return None
    return max(constraints.at_most - elapsed, 0.0)


@pure
def is_before_minimum(constraints: DurationConstraints, elapsed: float) -> bool:
    """Whether elapsed is still short of the at_least bound."""
    return constraints.at_least is not None and elapsed < constraints.at_least
