from pydantic import Field

from imbue.condition_poller.primitives import FrozenModel
from imbue.condition_poller.primitives import TimeoutReason


class TimeoutReport(FrozenModel):
    """Diagnostic record describing why a poll run gave up.

    Built exactly once, at the moment the poll loop decides to stop unsuccessfully,
    and handed to the on_timeout callback (if any) before the failure is raised.
    """

    alias: str = Field(default="", description="Caller-supplied label for the poll run (may be empty)")
    timeout_message: str = Field(description="Human-readable explanation of the timeout")
    evaluation_duration: float = Field(
        ge=0.0, description="Seconds between the start of polling and the stop decision"
    )
    timeout_reason: TimeoutReason = Field(description="Which constraint the run violated")

    @property
    def is_early_timeout(self) -> bool:
        """Whether the run gave up because the condition was fulfilled too soon."""
        return not self.timeout_reason.is_late

    @property
    def is_late_timeout(self) -> bool:
        """Whether the run gave up because the condition took too long (or did not hold)."""
        return self.timeout_reason.is_late
