"""Availability checking against agents' calendars.

A calendar's availability for a day is the set of instants at which it
has an open slot.  Lookups always cover the *UTC* day of the given date,
whatever offset the caller's requested time was expressed in.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, date, datetime, time, timedelta

from appointment_routing.models import parse_instant
from appointment_routing.services.ghl_client import GHLAPIError, GHLClient

logger = logging.getLogger(__name__)

DAY = timedelta(hours=24)


def day_window(day: date) -> tuple[datetime, datetime]:
    """Return the half-open UTC window ``[day 00:00Z, day 00:00Z + 24h)``."""
    start = datetime.combine(day, time.min, tzinfo=UTC)
    return start, start + DAY


def has_slot(slots: Iterable[datetime], instant: datetime) -> bool:
    """True if some slot is the exact same absolute instant.

    No tolerance: a slot one second off is a miss.
    """
    target = instant.astimezone(UTC)
    return any(slot.astimezone(UTC) == target for slot in slots)


def _parse_slots(raw_slots: Iterable[object], calendar_id: str) -> frozenset[datetime]:
    slots: set[datetime] = set()
    for raw in raw_slots:
        try:
            slots.add(parse_instant(str(raw)).astimezone(UTC))
        except ValueError:
            logger.warning("Ignoring unparseable slot %r on calendar %s", raw, calendar_id)
    return frozenset(slots)


class AvailabilityChecker:
    """Reads free slots from the calendar service."""

    def __init__(self, ghl_client: GHLClient) -> None:
        self._ghl = ghl_client

    async def free_slots(self, calendar_id: str, day: date) -> frozenset[datetime]:
        """Return the UTC instants at which ``calendar_id`` is free on ``day``.

        Never raises: any upstream failure is logged and reported as an
        empty set, which callers treat as "no availability".
        """
        start, end = day_window(day)
        try:
            data = await self._ghl.get_free_slots(calendar_id, start, end)
        except GHLAPIError as exc:
            logger.warning(
                "Availability lookup failed for calendar %s on %s: %s",
                calendar_id, day.isoformat(), exc,
            )
            return frozenset()

        # Slots are bucketed under the requested date, e.g. {"2025-03-10": {"slots": [...]}}
        bucket = data.get(day.isoformat())
        if not isinstance(bucket, dict):
            logger.debug("No slot bucket for calendar %s on %s", calendar_id, day.isoformat())
            return frozenset()
        raw_slots = bucket.get("slots")
        if not isinstance(raw_slots, list):
            return frozenset()

        slots = _parse_slots(raw_slots, calendar_id)
        logger.debug(
            "Calendar %s has %d free slots on %s", calendar_id, len(slots), day.isoformat(),
        )
        return slots
