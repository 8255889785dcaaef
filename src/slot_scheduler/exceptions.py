"""Base exceptions shared by every slot-scheduler component."""


class SchedulerError(Exception):
    """Base exception for slot-scheduler errors.

    Every subclass carries a ``kind`` so callers can tell failures apart
    without matching on message text.
    """

    kind = "error"


class ConfigurationError(SchedulerError):
    """Raised when required configuration or request input is missing."""

    kind = "configuration"


class InvalidRangeError(SchedulerError):
    """Raised when request dates or times cannot form a valid range."""

    kind = "invalid_range"
