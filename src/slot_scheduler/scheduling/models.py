"""Value types for slot scheduling."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from slot_scheduler.exceptions import ConfigurationError, InvalidRangeError

if TYPE_CHECKING:
    from slot_scheduler.calendar.client import EventReceipt

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """A wall-clock time parsed from "HH:MM", ordered by minutes since midnight."""

    minutes: int

    def __post_init__(self) -> None:
        if not 0 <= self.minutes <= 24 * 60:
            raise InvalidRangeError(f"Time of day out of range: {self.minutes} minutes")

    @classmethod
    def parse(cls, value: str | TimeOfDay) -> TimeOfDay:
        if isinstance(value, TimeOfDay):
            return value

        match = _TIME_RE.match(str(value).strip())
        if not match:
            raise InvalidRangeError(f"Invalid time {value!r}; expected HH:MM")

        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours > 23 or minutes > 59:
            raise InvalidRangeError(f"Invalid time {value!r}; expected HH:MM")
        return cls(hours * 60 + minutes)

    @property
    def hour(self) -> int:
        return self.minutes // 60

    @property
    def minute(self) -> int:
        return self.minutes % 60

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


class DayRole(Enum):
    """Position of a day within the requested date span."""

    SINGLE = "single"
    FIRST = "first"
    LAST = "last"
    INTERIOR = "interior"


@dataclass(frozen=True)
class TimeSlot:
    """A half-open interval ``[start, end)`` considered for one event."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.duration_minutes <= 0:
            raise ValueError(f"Slot end {self.end} must be after start {self.start}")

    @property
    def duration_minutes(self) -> float:
        # Same-zone aware datetimes subtract as wall-clock times
        elapsed = self.end.astimezone(timezone.utc) - self.start.astimezone(timezone.utc)
        return elapsed.total_seconds() / 60


# Payload keys accepted from the invocation envelope, mapped to field names
_REQUEST_FIELDS = {
    "event_name": ("eventName", "event_name"),
    "event_color": ("eventColor", "event_color"),
    "date_start": ("dateStart", "date_start"),
    "date_end": ("dateEnd", "date_end"),
    "workday_start": ("workdayStart", "workday_start"),
    "workday_end": ("workdayEnd", "workday_end"),
    "task_start": ("taskStart", "task_start"),
    "task_end": ("taskEnd", "task_end"),
}


@dataclass(frozen=True)
class SchedulingRequest:
    """What to schedule, between which dates, inside which hours."""

    event_name: str
    date_start: date
    date_end: date
    workday_start: TimeOfDay
    workday_end: TimeOfDay
    task_start: TimeOfDay
    task_end: TimeOfDay
    event_color: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.event_name, str) or not self.event_name.strip():
            raise ConfigurationError("Missing required field: event_name")
        if self.date_end < self.date_start:
            raise InvalidRangeError(
                f"date_end {self.date_end} is before date_start {self.date_start}"
            )

    @property
    def day_count(self) -> int:
        return (self.date_end - self.date_start).days + 1

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> SchedulingRequest:
        """Validate a raw request payload.

        Accepts camelCase (``eventName``) or snake_case (``event_name``) keys.

        Raises:
            ConfigurationError: If a required field is missing or blank.
            InvalidRangeError: If a date or time cannot be parsed, or dates are reversed.
        """
        values: dict[str, Any] = {}
        for name, keys in _REQUEST_FIELDS.items():
            value = next((payload[k] for k in keys if payload.get(k) not in (None, "")), None)
            if isinstance(value, str):
                value = value.strip() or None
            values[name] = value

        missing = [name for name, value in values.items() if value is None and name != "event_color"]
        if missing:
            raise ConfigurationError(f"Missing required field(s): {', '.join(missing)}")

        return cls(
            event_name=str(values["event_name"]),
            event_color=str(values["event_color"]) if values["event_color"] is not None else None,
            date_start=_parse_date(values["date_start"]),
            date_end=_parse_date(values["date_end"]),
            workday_start=TimeOfDay.parse(values["workday_start"]),
            workday_end=TimeOfDay.parse(values["workday_end"]),
            task_start=TimeOfDay.parse(values["task_start"]),
            task_end=TimeOfDay.parse(values["task_end"]),
        )


def _parse_date(value: str | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise InvalidRangeError(f"Invalid date {value!r}; expected YYYY-MM-DD") from e


@dataclass
class RunResult:
    """Summary of one scheduler run."""

    total_slots: int
    total_created: int
    message: str
    days_skipped: int = 0
    events: list[EventReceipt] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalSlots": self.total_slots,
            "totalCreated": self.total_created,
            "message": self.message,
            "daysSkipped": self.days_skipped,
            "events": [
                {
                    "id": e.id,
                    "summary": e.summary,
                    "start": e.start.isoformat() if e.start else None,
                    "end": e.end.isoformat() if e.end else None,
                    "htmlLink": e.html_link,
                }
                for e in self.events
            ],
        }
