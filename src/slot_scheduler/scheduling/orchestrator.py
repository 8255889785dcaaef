"""Day-by-day scheduling loop.

For every day in the request: resolve the effective range, cut it into
slots, ask the calendar which of them are busy, and create one event per
free slot. Days and events are processed strictly in order, one request
at a time, and the first failure aborts the run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from slot_scheduler.calendar.client import CalendarGateway, EventReceipt
from slot_scheduler.config import SchedulerConfig, load_config
from slot_scheduler.google.oauth import CredentialManager
from slot_scheduler.scheduling.availability import filter_free
from slot_scheduler.scheduling.models import RunResult, SchedulingRequest
from slot_scheduler.scheduling.planner import generate_slots, iter_days, resolve_day_range

logger = logging.getLogger(__name__)


class SchedulerOrchestrator:
    """Turn a SchedulingRequest into calendar events.

    Example:
        >>> async with CalendarGateway() as gateway:
        ...     scheduler = SchedulerOrchestrator(CredentialManager(), gateway)
        ...     result = await scheduler.run({"eventName": "Thesis", ...})
        >>> result.total_created
        12
    """

    def __init__(
        self,
        credentials: CredentialManager,
        gateway: CalendarGateway,
        config_loader: Callable[[], SchedulerConfig] = load_config,
    ):
        self.credentials = credentials
        self.gateway = gateway
        self._config_loader = config_loader

    async def run(self, request: SchedulingRequest | Mapping[str, Any]) -> RunResult:
        """Schedule every free slot in the requested window.

        Args:
            request: A SchedulingRequest, or a raw payload to validate.

        Returns:
            Totals for the whole run.

        Raises:
            ConfigurationError: Missing request field or bad configuration.
            InvalidRangeError: Unparsable or reversed dates/times.
            AuthorizationError, TokenExchangeError: Interactive authorization failed.
            AvailabilityQueryError, EventCreationError: A Calendar call failed.
        """
        if not isinstance(request, SchedulingRequest):
            request = SchedulingRequest.from_mapping(request)

        config = self._config_loader()
        calendar_id = config.effective_calendar_id()
        slot_minutes = config.effective_slot_minutes()
        tz = config.effective_timezone()

        token = await self.credentials.get_access_token()

        total_slots = 0
        days_skipped = 0
        created: list[EventReceipt] = []

        for day, role in iter_days(request.date_start, request.date_end):
            range_start, range_end = resolve_day_range(
                role,
                request.workday_start,
                request.workday_end,
                request.task_start,
                request.task_end,
            )

            slots = generate_slots(day, range_start, range_end, slot_minutes, tz)
            if not slots:
                logger.info(f"Skipping {day} ({role.value}): no room between {range_start} and {range_end}")
                days_skipped += 1
                continue

            total_slots += len(slots)

            # Long runs can outlive the token; valid tokens return without a network call
            token = await self.credentials.get_access_token()
            busy = await self.gateway.query_busy(token, calendar_id, day, range_start, range_end, tz)
            free = filter_free(slots, busy)
            logger.info(f"{day} ({role.value}): {len(slots)} slots, {len(free)} free")

            for slot in free:
                token = await self.credentials.get_access_token()
                receipt = await self.gateway.create_event(
                    token,
                    calendar_id,
                    request.event_name,
                    slot,
                    tz,
                    color_id=request.event_color,
                )
                created.append(receipt)

        message = (
            f"Created {len(created)} of {total_slots} slots across "
            f"{request.day_count} day(s) in calendar '{calendar_id}'"
        )
        if days_skipped:
            message += f"; {days_skipped} day(s) had no available range"
        logger.info(message)

        return RunResult(
            total_slots=total_slots,
            total_created=len(created),
            message=message,
            days_skipped=days_skipped,
            events=created,
        )
