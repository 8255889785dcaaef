"""Google Calendar REST gateway: free/busy queries and event creation."""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any
from urllib.parse import quote
from zoneinfo import ZoneInfo

import httpx

from slot_scheduler.calendar.exceptions import (
    AvailabilityQueryError,
    CalendarAPIError,
    EventCreationError,
)
from slot_scheduler.scheduling.models import TimeOfDay, TimeSlot
from slot_scheduler.scheduling.planner import day_bounds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BusyPeriod:
    """An occupied interval reported by the calendar."""

    start: datetime
    end: datetime


@dataclass
class EventReceipt:
    """Represents a created Google Calendar event."""

    id: str
    summary: str
    start: datetime | None = None
    end: datetime | None = None
    html_link: str | None = None
    color_id: str | None = None


class CalendarGateway:
    """Stateless access to the two Calendar endpoints the scheduler needs.

    Every call takes the bearer token explicitly and makes exactly one
    request; there is no retry.

    Usage:
        async with CalendarGateway() as gateway:
            busy = await gateway.query_busy(token, "primary", day, start, end, tz)
            receipt = await gateway.create_event(token, "primary", "Focus", slot, tz)
    """

    BASE_URL = "https://www.googleapis.com/calendar/v3"

    def __init__(self, http_client: httpx.AsyncClient | None = None, base_url: str | None = None):
        """Initialize the gateway.

        Args:
            http_client: Client to send requests with. Created on demand if None.
            base_url: API root. Defaults to the public Calendar v3 endpoint.
        """
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self._http = http_client
        self._owns_http = http_client is None

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=30.0)
        return self._http

    async def aclose(self) -> None:
        """Close the HTTP client if this gateway created it."""
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> CalendarGateway:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    async def _post(
        self,
        token: str,
        url: str,
        body: dict[str, Any],
        error_class: type[CalendarAPIError],
        action: str,
    ) -> dict[str, Any]:
        """POST JSON with a bearer token and return the decoded response."""
        headers = {"Authorization": f"Bearer {token}"}
        try:
            response = await self.http.post(url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise error_class(f"Failed to {action}: {e}") from e

        if not response.is_success:
            logger.error(f"Failed to {action}: {response.status_code} {response.text}")
            raise error_class(
                f"Failed to {action}: HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            raise error_class(
                f"Failed to {action}: invalid JSON response",
                status_code=response.status_code,
                body=response.text,
            ) from e

    # =========================================================================
    # Free/busy
    # =========================================================================

    async def query_busy(
        self,
        token: str,
        calendar_id: str,
        day: date,
        range_start: TimeOfDay,
        range_end: TimeOfDay,
        time_zone: ZoneInfo,
    ) -> list[BusyPeriod]:
        """Get busy intervals for one calendar within one day's range.

        The window is anchored in ``time_zone``, so the UTC offset follows
        the configured zone (including DST).

        Returns:
            Busy periods in the order the API reported them.

        Raises:
            AvailabilityQueryError: On transport failure or non-2xx status.
        """
        time_min, time_max = day_bounds(day, range_start, range_end, time_zone)
        body = {
            "timeMin": time_min.isoformat(),
            "timeMax": time_max.isoformat(),
            "timeZone": time_zone.key,
            "items": [{"id": calendar_id}],
        }

        data = await self._post(
            token,
            f"{self.base_url}/freeBusy",
            body,
            AvailabilityQueryError,
            "query availability",
        )

        calendar = data.get("calendars", {}).get(calendar_id, {})
        if calendar.get("errors"):
            logger.warning(f"Free/busy errors for {calendar_id}: {calendar['errors']}")

        busy = []
        for item in calendar.get("busy", []):
            try:
                busy.append(
                    BusyPeriod(start=_parse_datetime(item["start"]), end=_parse_datetime(item["end"]))
                )
            except (KeyError, ValueError) as e:
                raise AvailabilityQueryError(f"Malformed busy period {item!r}: {e}") from e
        return busy

    # =========================================================================
    # Events
    # =========================================================================

    async def create_event(
        self,
        token: str,
        calendar_id: str,
        title: str,
        slot: TimeSlot,
        time_zone: ZoneInfo,
        color_id: str | None = None,
    ) -> EventReceipt:
        """Create one event covering exactly ``slot``.

        Args:
            token: Bearer token.
            calendar_id: Calendar ID or "primary".
            title: Event summary.
            slot: Time block to occupy.
            time_zone: Zone the event is displayed in.
            color_id: Calendar color id, passed through unvalidated.

        Raises:
            EventCreationError: On transport failure or non-2xx status.
        """
        body: dict[str, Any] = {
            "summary": title,
            "start": {"dateTime": slot.start.isoformat(), "timeZone": time_zone.key},
            "end": {"dateTime": slot.end.isoformat(), "timeZone": time_zone.key},
        }
        if color_id:
            body["colorId"] = str(color_id)

        url = f"{self.base_url}/calendars/{quote(calendar_id, safe='')}/events"
        data = await self._post(token, url, body, EventCreationError, "create event")

        receipt = self._parse_event(data)
        logger.info(f"Event created {slot.start.isoformat()} - {slot.end.isoformat()}: {receipt.html_link}")
        return receipt

    def _parse_event(self, data: dict) -> EventReceipt:
        """Parse event from API response."""
        start = None
        start_data = data.get("start", {})
        if "dateTime" in start_data:
            with contextlib.suppress(ValueError):
                start = _parse_datetime(start_data["dateTime"])

        end = None
        end_data = data.get("end", {})
        if "dateTime" in end_data:
            with contextlib.suppress(ValueError):
                end = _parse_datetime(end_data["dateTime"])

        return EventReceipt(
            id=data.get("id", ""),
            summary=data.get("summary", ""),
            start=start,
            end=end,
            html_link=data.get("htmlLink"),
            color_id=data.get("colorId"),
        )


def _parse_datetime(value: str) -> datetime:
    """Parse an RFC 3339 timestamp from the API."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
