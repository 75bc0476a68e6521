"""Default poll settings, overridable through environment variables.

Explicit arguments always win over these defaults. Values use the format accepted
by parse_duration_to_seconds ('250ms', '2s', '1m30s', or a plain number of seconds).
"""

import os
from collections.abc import Mapping
from typing import Final

from pydantic import Field
from pydantic import FiniteFloat
from pydantic import model_validator

from imbue.condition_poller.durations import ONE_HUNDRED_MILLISECONDS
from imbue.condition_poller.durations import TEN_SECONDS
from imbue.condition_poller.durations import parse_duration_to_seconds
from imbue.condition_poller.errors import ConstraintViolationError
from imbue.condition_poller.errors import InvalidPollScheduleError
from imbue.condition_poller.primitives import FrozenModel

DEFAULT_TIMEOUT_SECONDS: Final[float] = TEN_SECONDS
DEFAULT_POLL_INTERVAL_SECONDS: Final[float] = ONE_HUNDRED_MILLISECONDS
DEFAULT_POLL_DELAY_SECONDS: Final[float] = 0.0

TIMEOUT_ENV_VAR: Final[str] = "CONDITION_POLLER_DEFAULT_TIMEOUT"
POLL_INTERVAL_ENV_VAR: Final[str] = "CONDITION_POLLER_DEFAULT_POLL_INTERVAL"
POLL_DELAY_ENV_VAR: Final[str] = "CONDITION_POLLER_DEFAULT_POLL_DELAY"

# Timeout value that disables the at_most bound entirely
FOREVER: Final[str] = "forever"


class PollDefaults(FrozenModel):
    """Settings used when a caller does not pass them explicitly."""

    at_most: FiniteFloat | None = Field(
        default=DEFAULT_TIMEOUT_SECONDS, description="Default maximum wait in seconds (None polls forever)"
    )
    poll_interval: float = Field(
        default=DEFAULT_POLL_INTERVAL_SECONDS, allow_inf_nan=False, description="Default fixed poll interval"
    )
    poll_delay: float = Field(
        default=DEFAULT_POLL_DELAY_SECONDS, allow_inf_nan=False, description="Default wait before the first poll"
    )

    @model_validator(mode="after")
    def _validate_defaults(self) -> "PollDefaults":
        if self.at_most is not None and self.at_most <= 0:
            raise ConstraintViolationError(f"Default timeout must be > 0, got {self.at_most}")
        if self.poll_interval <= 0:
            raise InvalidPollScheduleError(f"Default poll interval must be > 0, got {self.poll_interval}")
        if self.poll_delay < 0:
            raise InvalidPollScheduleError(f"Default poll delay must be >= 0, got {self.poll_delay}")
        return self


def load_poll_defaults(environ: Mapping[str, str] | None = None) -> PollDefaults:
    """Read the poll defaults, applying any environment variable overrides."""
    if environ is None:
        environ = os.environ

    overrides: dict[str, float | None] = {}

    timeout_value = environ.get(TIMEOUT_ENV_VAR)
    if timeout_value is not None:
        if timeout_value.strip().lower() == FOREVER:
            overrides["at_most"] = None
        else:
            overrides["at_most"] = parse_duration_to_seconds(timeout_value)

    poll_interval_value = environ.get(POLL_INTERVAL_ENV_VAR)
    if poll_interval_value is not None:
        overrides["poll_interval"] = parse_duration_to_seconds(poll_interval_value)

    poll_delay_value = environ.get(POLL_DELAY_ENV_VAR)
    if poll_delay_value is not None:
        overrides["poll_delay"] = parse_duration_to_seconds(poll_delay_value)

    return PollDefaults(**overrides)
