# pulse_analytics/core/errors.py
from __future__ import annotations

# Sentinel shown instead of a benchmark/percentile that cannot be compared.
NOT_AVAILABLE = "N/A"


class ReportError(Exception):
    """Base class for errors raised by the report layer."""

    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


class InvalidPeriod(ReportError):
    pass


class InvalidCustomRange(ReportError):
    pass


class UnresolvableQuestionReference(ReportError):
    pass


class DuplicateTracker(ReportError):
    def __init__(self, message: str = "You already have this question tracked."):
        super().__init__(message, field="question")


class CacheUnavailable(ReportError):
    """The cache backing store could not be reached."""
