"""Drop candidate slots that collide with busy periods."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Protocol

from slot_scheduler.scheduling.models import TimeSlot


class Interval(Protocol):
    start: datetime
    end: datetime


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap test; shared endpoints do not count."""
    return a_start < b_end and b_start < a_end


def filter_free(slots: Iterable[TimeSlot], busy_periods: Sequence[Interval]) -> list[TimeSlot]:
    """Keep the slots that overlap none of ``busy_periods``, in input order."""
    return [
        slot
        for slot in slots
        if not any(overlaps(slot.start, slot.end, b.start, b.end) for b in busy_periods)
    ]
