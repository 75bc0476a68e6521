"""Named durations and parsing of human-readable duration strings.

All durations inside this library are float seconds. Strings are only accepted at
the edges (environment variables, test parametrization) and converted here.
"""

import math
import re
from typing import Final

from imbue.condition_poller.errors import InvalidDurationError
from imbue.condition_poller.primitives import pure

ONE_MILLISECOND: Final[float] = 0.001
ONE_HUNDRED_MILLISECONDS: Final[float] = 0.1
TWO_HUNDRED_MILLISECONDS: Final[float] = 0.2
FIVE_HUNDRED_MILLISECONDS: Final[float] = 0.5
ONE_SECOND: Final[float] = 1.0
TEN_SECONDS: Final[float] = 10.0

_UNIT_SECONDS: Final[dict[str, float]] = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

# Ordered so that "ms" is tried before "m"
_DURATION_PART_PATTERN = re.compile(r"\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)", re.IGNORECASE)


@pure
def parse_duration_to_seconds(duration_str: str) -> float:
    """Parse a human-readable duration string into seconds.

    Supports plain numbers (treated as seconds) and combinations of hours (h),
    minutes (m), seconds (s) and milliseconds (ms).
    Examples: '0.5', '250ms', '2s', '1m30s', '1h', '1s500ms'.
    """
    stripped = duration_str.strip()
    if not stripped:
        raise InvalidDurationError(duration_str, "Duration must not be empty.")

    # Plain number is treated as seconds
    try:
        plain_seconds = float(stripped)
    except ValueError:
        pass
    else:
        if not math.isfinite(plain_seconds):
            raise InvalidDurationError(duration_str, "Duration must be finite.")
        if plain_seconds < 0:
            raise InvalidDurationError(duration_str, "Duration must not be negative.")
        return plain_seconds

    total_seconds = 0.0
    position = 0
    while position < len(stripped):
        match = _DURATION_PART_PATTERN.match(stripped, position)
        if match is None:
            raise InvalidDurationError(
                duration_str, "Expected format like '0.5', '250ms', '2s', '1m30s', '1h'."
            )
        total_seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2).lower()]
        position = match.end()

    return total_seconds
