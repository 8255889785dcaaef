"""Google Calendar gateway for the scheduler.

Usage:
    from slot_scheduler.calendar import CalendarGateway

    async with CalendarGateway() as gateway:
        busy = await gateway.query_busy(token, "primary", day, start, end, tz)
        receipt = await gateway.create_event(token, "primary", "Deep work", slot, tz)
"""

from __future__ import annotations

from slot_scheduler.calendar.client import BusyPeriod, CalendarGateway, EventReceipt
from slot_scheduler.calendar.exceptions import (
    AvailabilityQueryError,
    CalendarAPIError,
    EventCreationError,
)

__all__ = [
    "CalendarGateway",
    "BusyPeriod",
    "EventReceipt",
    "CalendarAPIError",
    "AvailabilityQueryError",
    "EventCreationError",
]
