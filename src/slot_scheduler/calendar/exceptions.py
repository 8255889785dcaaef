"""Google Calendar API exceptions."""

from slot_scheduler.exceptions import SchedulerError


class CalendarAPIError(SchedulerError):
    """Base exception for Calendar API failures."""

    kind = "calendar_api"

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class AvailabilityQueryError(CalendarAPIError):
    """Raised when a free/busy query fails."""

    kind = "availability_query"


class EventCreationError(CalendarAPIError):
    """Raised when inserting an event fails."""

    kind = "event_creation"
