from imbue.condition_poller.report import TimeoutReport


class BaseConditionPollerError(Exception):
    """Base exception for all condition poller errors."""


class ConstraintViolationError(BaseConditionPollerError):
    """Raised when a poll configuration is invalid. Always detected before polling starts."""


class InvalidPollScheduleError(ConstraintViolationError):
    """Raised when a poll delay or poll interval strategy would produce an unusable wait."""


class InvalidDurationError(ConstraintViolationError):
    """Raised when a human-readable duration string cannot be parsed."""

    def __init__(self, duration_str: str, detail: str) -> None:
        self.duration_str = duration_str
        self.detail = detail
        super().__init__(f"Invalid duration: '{duration_str}'. {detail}")


class ConditionTimeoutError(BaseConditionPollerError, TimeoutError):
    """Raised when a condition did not converge as required within its duration constraints.

    The message is always the report's timeout message, so callers that only look
    at str(error) see the same diagnostic as an on_timeout callback.
    """

    def __init__(self, report: TimeoutReport) -> None:
        self.report = report
        super().__init__(report.timeout_message)
