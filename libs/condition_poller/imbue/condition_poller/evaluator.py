from collections.abc import Callable
from typing import Any
from typing import TypeVar

from pydantic import ConfigDict
from pydantic import Field

from imbue.condition_poller.primitives import FrozenModel

T = TypeVar("T")


class ConditionCheck(FrozenModel):
    """The outcome of a single, non-failing evaluation of a condition."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    is_satisfied: bool = Field(description="Whether the condition held at this tick")
    value: Any = Field(default=None, description="The value the condition was computed from, if any")


# A condition is any zero-argument callable producing a ConditionCheck
Condition = Callable[[], ConditionCheck]


def boolean_condition(predicate: Callable[[], bool]) -> Condition:
    """Adapt a plain predicate; its truthiness is the result."""

    def check() -> ConditionCheck:
        result = predicate()
        return ConditionCheck(is_satisfied=bool(result), value=result)

    return check


def value_condition(supplier: Callable[[], T], matcher: Callable[[T], bool]) -> Condition:
    """Adapt a value supplier plus a matcher; the supplied value is kept on the check."""

    def check() -> ConditionCheck:
        value = supplier()
        return ConditionCheck(is_satisfied=bool(matcher(value)), value=value)

    return check


def assertion_condition(assertion: Callable[[], object]) -> Condition:
    """Adapt a callable that asserts; a failing assertion means "not yet", never an error."""

    def check() -> ConditionCheck:
        try:
            assertion()
        except AssertionError:
            return ConditionCheck(is_satisfied=False)
        return ConditionCheck(is_satisfied=True)

    return check


class IgnorePolicy(FrozenModel):
    """Which errors raised by a condition are tolerated as "condition currently false"."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    exception_types: tuple[type[Exception], ...] = Field(
        default=(), description="Errors of these types (or subclasses) are tolerated"
    )
    matcher: Callable[[Exception], bool] | None = Field(
        default=None, description="Errors for which this returns True are tolerated"
    )
    is_ignoring_all: bool = Field(default=False, description="Tolerate every error")

    @classmethod
    def ignore_nothing(cls) -> "IgnorePolicy":
        return cls()

    @classmethod
    def ignore_all(cls) -> "IgnorePolicy":
        return cls(is_ignoring_all=True)

    @classmethod
    def ignore_instances_of(cls, *exception_types: type[Exception]) -> "IgnorePolicy":
        return cls(exception_types=exception_types)

    @classmethod
    def ignore_matching(cls, matcher: Callable[[Exception], bool]) -> "IgnorePolicy":
        return cls(matcher=matcher)

    def is_tolerated(self, error: Exception) -> bool:
        if self.is_ignoring_all:
            return True
        if isinstance(error, self.exception_types):
            return True
        return self.matcher is not None and self.matcher(error)


class EvaluationResult(FrozenModel):
    """What the poll loop learns from one tick."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    is_satisfied: bool = Field(description="Whether the condition held at this tick")
    value: Any = Field(default=None, description="The value the condition was computed from, if any")


class ConditionEvaluator:
    """Invokes a condition once per tick, applying the ignore policy to any error it raises.

    Errors the policy does not tolerate propagate unchanged out of evaluate().
    """

    def __init__(self, condition: Condition, ignore_policy: IgnorePolicy | None = None) -> None:
        self._condition = condition
        self._ignore_policy = ignore_policy if ignore_policy is not None else IgnorePolicy.ignore_nothing()

    def evaluate(self) -> EvaluationResult:
        try:
            check = self._condition()
        except Exception as e:
            if not self._ignore_policy.is_tolerated(e):
                raise
            return EvaluationResult(is_satisfied=False)
        return EvaluationResult(is_satisfied=check.is_satisfied, value=check.value)
