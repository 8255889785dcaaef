"""Per-day range resolution and fixed-length slot generation."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import TypeVar

from slot_scheduler.scheduling.models import DayRole, TimeOfDay, TimeSlot

T = TypeVar("T", str, TimeOfDay)


def to_minutes(value: str | TimeOfDay) -> int:
    """Convert "HH:MM" (or a TimeOfDay) to minutes since midnight."""
    return TimeOfDay.parse(value).minutes


def max_time(t1: T, t2: T) -> T:
    """Return the later of two times; ``t1`` on a tie."""
    return t1 if to_minutes(t1) >= to_minutes(t2) else t2


def min_time(t1: T, t2: T) -> T:
    """Return the earlier of two times; ``t1`` on a tie."""
    return t1 if to_minutes(t1) <= to_minutes(t2) else t2


def classify_day(day: date, date_start: date, date_end: date) -> DayRole:
    """Work out where ``day`` sits inside ``[date_start, date_end]``."""
    if date_start == date_end:
        return DayRole.SINGLE
    if day == date_start:
        return DayRole.FIRST
    if day == date_end:
        return DayRole.LAST
    return DayRole.INTERIOR


def iter_days(date_start: date, date_end: date) -> Iterator[tuple[date, DayRole]]:
    """Yield every day of the inclusive span with its role."""
    day = date_start
    while day <= date_end:
        yield day, classify_day(day, date_start, date_end)
        day += timedelta(days=1)


def resolve_day_range(
    role: DayRole,
    workday_start: TimeOfDay,
    workday_end: TimeOfDay,
    task_start: TimeOfDay,
    task_end: TimeOfDay,
) -> tuple[TimeOfDay, TimeOfDay]:
    """Intersect working hours with the task window for one day.

    The task start only constrains the first day and the task end only
    the last; a single-day run applies both, interior days neither.
    The result may be empty (end <= start), in which case the day is skipped.
    """
    if role is DayRole.SINGLE:
        return max_time(workday_start, task_start), min_time(workday_end, task_end)
    if role is DayRole.FIRST:
        return max_time(workday_start, task_start), workday_end
    if role is DayRole.LAST:
        return workday_start, min_time(workday_end, task_end)
    return workday_start, workday_end


def _at(day: date, moment: TimeOfDay, tz: tzinfo) -> datetime:
    return datetime.combine(day, time(moment.hour, moment.minute), tzinfo=tz)


def day_bounds(
    day: date, range_start: TimeOfDay, range_end: TimeOfDay, tz: tzinfo
) -> tuple[datetime, datetime]:
    """Anchor a resolved time range to ``day`` in the given zone."""
    return _at(day, range_start, tz), _at(day, range_end, tz)


def generate_slots(
    day: date,
    range_start: TimeOfDay,
    range_end: TimeOfDay,
    duration_minutes: int,
    tz: tzinfo,
) -> list[TimeSlot]:
    """Split a day's range into back-to-back slots of ``duration_minutes``.

    A trailing remainder shorter than one slot is dropped. Empty or
    inverted ranges yield no slots.

    Stepping happens in UTC so every slot lasts exactly ``duration_minutes``
    of elapsed time, including on days with a DST transition.
    """
    if duration_minutes <= 0:
        raise ValueError(f"Slot duration must be positive, got {duration_minutes}")

    if range_end <= range_start:
        return []

    start, end = day_bounds(day, range_start, range_end, tz)
    end = end.astimezone(timezone.utc)
    step = timedelta(minutes=duration_minutes)

    slots = []
    current = start.astimezone(timezone.utc)
    while current + step <= end:
        slots.append(TimeSlot(start=current.astimezone(tz), end=(current + step).astimezone(tz)))
        current += step
    return slots
