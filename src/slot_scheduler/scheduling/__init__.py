"""Slot planning primitives.

The orchestrator lives in ``slot_scheduler.scheduling.orchestrator`` and is
imported from there directly, since it depends on the calendar gateway.
"""

from slot_scheduler.scheduling.availability import filter_free, overlaps
from slot_scheduler.scheduling.models import (
    DayRole,
    RunResult,
    SchedulingRequest,
    TimeOfDay,
    TimeSlot,
)
from slot_scheduler.scheduling.planner import (
    classify_day,
    generate_slots,
    iter_days,
    max_time,
    min_time,
    resolve_day_range,
)

__all__ = [
    "DayRole",
    "RunResult",
    "SchedulingRequest",
    "TimeOfDay",
    "TimeSlot",
    "classify_day",
    "filter_free",
    "generate_slots",
    "iter_days",
    "max_time",
    "min_time",
    "overlaps",
    "resolve_day_range",
]
