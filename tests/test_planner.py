"""Tests for slot planning and availability filtering."""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from slot_scheduler.calendar import BusyPeriod
from slot_scheduler.exceptions import ConfigurationError, InvalidRangeError
from slot_scheduler.scheduling import (
    DayRole,
    SchedulingRequest,
    TimeOfDay,
    TimeSlot,
    classify_day,
    filter_free,
    generate_slots,
    iter_days,
    max_time,
    min_time,
    resolve_day_range,
)

TZ = ZoneInfo("America/Bogota")
DAY = date(2026, 11, 2)


def t(value: str) -> TimeOfDay:
    return TimeOfDay.parse(value)


def at(hhmm: str, day: date = DAY) -> datetime:
    hour, minute = map(int, hhmm.split(":"))
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=TZ)


class TestTimeOfDay:
    """Test HH:MM parsing."""

    def test_parse_and_format(self):
        """Should parse to minutes and format back zero-padded."""
        value = t("9:05")
        assert value.minutes == 545
        assert str(value) == "09:05"

    @pytest.mark.parametrize("bad", ["", "25:00", "10:60", "10", "ab:cd", "10:5"])
    def test_rejects_invalid(self, bad):
        """Should reject malformed times."""
        with pytest.raises(InvalidRangeError):
            TimeOfDay.parse(bad)

    def test_ordering_uses_minutes(self):
        """Should order by minutes since midnight."""
        assert t("09:30") < t("10:00") < t("17:00")


class TestMinMax:
    """Test time min/max comparison."""

    @pytest.mark.parametrize(
        "a,b",
        [("09:00", "10:00"), ("10:00", "09:00"), ("9:30", "09:05"), ("00:00", "23:59")],
    )
    def test_agree_with_minutes(self, a, b):
        """Should agree with integer minute comparison."""
        minutes = {a: t(a).minutes, b: t(b).minutes}
        assert minutes[max_time(a, b)] == max(minutes.values())
        assert minutes[min_time(a, b)] == min(minutes.values())

    def test_string_comparison_is_not_lexical(self):
        """Should compare "9:30" and "10:00" numerically."""
        assert max_time("9:30", "10:00") == "10:00"
        assert min_time("9:30", "10:00") == "9:30"

    def test_equal_inputs(self):
        """Should return an equal value when both inputs are the same time."""
        assert max_time("10:00", "10:00") == "10:00"
        assert min_time(t("10:00"), t("10:00")) == t("10:00")


class TestDayRoles:
    """Test day classification."""

    def test_single_day(self):
        """Should classify a one-day span as single."""
        assert classify_day(DAY, DAY, DAY) is DayRole.SINGLE

    def test_three_days(self):
        """Should classify first, interior and last days."""
        roles = [role for _, role in iter_days(DAY, DAY + timedelta(days=2))]
        assert roles == [DayRole.FIRST, DayRole.INTERIOR, DayRole.LAST]

    def test_iter_days_inclusive(self):
        """Should include both endpoints."""
        days = [d for d, _ in iter_days(DAY, DAY + timedelta(days=1))]
        assert days == [DAY, DAY + timedelta(days=1)]


class TestResolveDayRange:
    """Test per-day effective range resolution."""

    BOUNDS = (t("09:00"), t("17:00"), t("10:00"), t("15:00"))

    def test_single_day_intersects(self):
        """Should intersect working hours with the task window."""
        assert resolve_day_range(DayRole.SINGLE, *self.BOUNDS) == (t("10:00"), t("15:00"))

    def test_first_day(self):
        """Should start at the task start and end at the workday end."""
        assert resolve_day_range(DayRole.FIRST, *self.BOUNDS) == (t("10:00"), t("17:00"))

    def test_last_day(self):
        """Should start at the workday start and end at the task end."""
        assert resolve_day_range(DayRole.LAST, *self.BOUNDS) == (t("09:00"), t("15:00"))

    def test_interior_day(self):
        """Should use the working hours unmodified."""
        assert resolve_day_range(DayRole.INTERIOR, *self.BOUNDS) == (t("09:00"), t("17:00"))

    def test_task_outside_workday_is_clamped(self):
        """Should never extend past working hours."""
        start, end = resolve_day_range(DayRole.SINGLE, t("09:00"), t("17:00"), t("07:00"), t("19:00"))
        assert (start, end) == (t("09:00"), t("17:00"))

    def test_disjoint_windows_give_empty_range(self):
        """Should produce an empty range when task and workday do not meet."""
        start, end = resolve_day_range(DayRole.SINGLE, t("09:00"), t("12:00"), t("13:00"), t("15:00"))
        assert end <= start


class TestGenerateSlots:
    """Test fixed-length slot generation."""

    def test_exact_fit(self):
        """Should cut 09:00-12:00 into six 30 minute slots."""
        slots = generate_slots(DAY, t("09:00"), t("12:00"), 30, TZ)
        assert len(slots) == 6
        assert slots[0] == TimeSlot(at("09:00"), at("09:30"))
        assert slots[-1] == TimeSlot(at("11:30"), at("12:00"))

    def test_contiguous_and_fixed_length(self):
        """Should produce back-to-back slots of exactly the configured length."""
        slots = generate_slots(DAY, t("08:15"), t("16:40"), 45, TZ)
        for slot in slots:
            assert slot.end - slot.start == timedelta(minutes=45)
            assert slot.end <= at("16:40")
        for prev, nxt in zip(slots, slots[1:]):
            assert prev.end == nxt.start

    def test_partial_tail_dropped(self):
        """Should drop a final slot that would overrun the range."""
        slots = generate_slots(DAY, t("09:00"), t("10:45"), 30, TZ)
        assert len(slots) == 3
        assert slots[-1].end == at("10:30")

    @pytest.mark.parametrize("start,end", [("10:00", "10:00"), ("12:00", "09:00")])
    def test_empty_or_inverted_range(self, start, end):
        """Should return no slots for empty or inverted ranges."""
        assert generate_slots(DAY, t(start), t(end), 30, TZ) == []

    def test_range_shorter_than_slot(self):
        """Should return no slots when the range cannot hold one."""
        assert generate_slots(DAY, t("09:00"), t("09:20"), 30, TZ) == []

    def test_slots_carry_time_zone(self):
        """Should anchor slots in the configured zone."""
        slot = generate_slots(DAY, t("09:00"), t("09:30"), 30, TZ)[0]
        assert slot.start.utcoffset() == timedelta(hours=-5)

    def test_rejects_non_positive_duration(self):
        """Should reject zero-length slots."""
        with pytest.raises(ValueError):
            generate_slots(DAY, t("09:00"), t("10:00"), 0, TZ)

    def test_fall_back_keeps_real_duration(self):
        """Should keep every slot at 30 elapsed minutes across the repeated hour."""
        tz = ZoneInfo("America/New_York")
        slots = generate_slots(date(2026, 11, 1), t("00:00"), t("04:00"), 30, tz)

        assert len(slots) == 10
        assert {slot.duration_minutes for slot in slots} == {30}
        assert slots[0].start.astimezone(timezone.utc) == datetime(2026, 11, 1, 4, 0, tzinfo=timezone.utc)
        assert slots[-1].end.astimezone(timezone.utc) == datetime(2026, 11, 1, 9, 0, tzinfo=timezone.utc)
        for prev, nxt in zip(slots, slots[1:]):
            assert prev.end.astimezone(timezone.utc) == nxt.start.astimezone(timezone.utc)

    def test_spring_forward_skips_missing_hour(self):
        """Should not emit slots inside the skipped hour or with negative length."""
        tz = ZoneInfo("America/New_York")
        slots = generate_slots(date(2026, 3, 8), t("01:00"), t("04:00"), 30, tz)

        assert [f"{slot.start:%H:%M}" for slot in slots] == ["01:00", "01:30", "03:00", "03:30"]
        assert {slot.duration_minutes for slot in slots} == {30}


class TestFilterFree:
    """Test busy-period overlap filtering."""

    def setup_method(self):
        self.slots = generate_slots(DAY, t("09:00"), t("12:00"), 30, TZ)

    def test_no_busy_keeps_all(self):
        """Should keep every slot when nothing is busy."""
        assert filter_free(self.slots, []) == self.slots

    def test_exact_overlap_removed(self):
        """Should remove a slot fully covered by a busy period."""
        free = filter_free(self.slots, [BusyPeriod(at("10:00"), at("10:30"))])
        assert len(free) == 5
        assert TimeSlot(at("10:00"), at("10:30")) not in free

    def test_adjacent_busy_periods_do_not_conflict(self):
        """Should keep slots that only touch a busy period's boundary."""
        busy = [BusyPeriod(at("08:00"), at("09:00")), BusyPeriod(at("12:00"), at("13:00"))]
        assert filter_free(self.slots, busy) == self.slots

    def test_partial_overlap_removed(self):
        """Should remove every slot a busy period reaches into."""
        free = filter_free(self.slots, [BusyPeriod(at("10:15"), at("11:05"))])
        starts = [s.start for s in free]
        assert starts == [at("09:00"), at("09:30"), at("11:30")]

    def test_busy_in_other_zone(self):
        """Should compare instants, not wall-clock values."""
        busy_utc = BusyPeriod(
            datetime(2026, 11, 2, 15, 0, tzinfo=timezone.utc),
            datetime(2026, 11, 2, 15, 30, tzinfo=timezone.utc),
        )
        free = filter_free(self.slots, [busy_utc])
        assert TimeSlot(at("10:00"), at("10:30")) not in free
        assert len(free) == 5

    def test_preserves_order(self):
        """Should keep input order."""
        reversed_slots = list(reversed(self.slots))
        assert filter_free(reversed_slots, [BusyPeriod(at("10:00"), at("10:30"))]) == [
            s for s in reversed_slots if s.start != at("10:00")
        ]


class TestSchedulingRequest:
    """Test request validation."""

    PAYLOAD = {
        "eventName": "Thesis",
        "eventColor": "5",
        "dateStart": "2026-11-02",
        "dateEnd": "2026-11-04",
        "workdayStart": "09:00",
        "workdayEnd": "17:00",
        "taskStart": "10:00",
        "taskEnd": "15:00",
    }

    def test_from_camel_case_payload(self):
        """Should parse the invocation payload."""
        request = SchedulingRequest.from_mapping(self.PAYLOAD)
        assert request.event_name == "Thesis"
        assert request.event_color == "5"
        assert request.date_start == date(2026, 11, 2)
        assert request.task_end == t("15:00")
        assert request.day_count == 3

    def test_from_snake_case_payload(self):
        """Should accept snake_case keys."""
        payload = {
            "event_name": "Thesis",
            "date_start": "2026-11-02",
            "date_end": "2026-11-02",
            "workday_start": "09:00",
            "workday_end": "17:00",
            "task_start": "10:00",
            "task_end": "15:00",
        }
        request = SchedulingRequest.from_mapping(payload)
        assert request.event_color is None

    @pytest.mark.parametrize("field", ["eventName", "dateStart", "taskStart", "workdayEnd"])
    def test_missing_field(self, field):
        """Should raise a configuration error naming the missing field."""
        payload = {**self.PAYLOAD, field: ""}
        with pytest.raises(ConfigurationError, match="Missing required field"):
            SchedulingRequest.from_mapping(payload)

    def test_reversed_dates(self):
        """Should reject an end date before the start date."""
        payload = {**self.PAYLOAD, "dateStart": "2026-11-05"}
        with pytest.raises(InvalidRangeError):
            SchedulingRequest.from_mapping(payload)

    def test_bad_date(self):
        """Should reject unparsable dates."""
        with pytest.raises(InvalidRangeError):
            SchedulingRequest.from_mapping({**self.PAYLOAD, "dateEnd": "11/04/2026"})

    def test_numeric_event_name_is_coerced(self):
        """Should accept a non-string event name from a raw payload as text."""
        request = SchedulingRequest.from_mapping({**self.PAYLOAD, "eventName": 123})
        assert request.event_name == "123"

    def test_non_string_event_name_rejected(self):
        """Should raise a configuration error for a non-text event name."""
        with pytest.raises(ConfigurationError):
            SchedulingRequest(
                event_name=123,
                date_start=DAY,
                date_end=DAY,
                workday_start=t("09:00"),
                workday_end=t("17:00"),
                task_start=t("09:00"),
                task_end=t("12:00"),
            )
