"""Appointment creation on the selected agent's calendar."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from appointment_routing.config import APPOINTMENT_DURATION
from appointment_routing.models import Appointment, to_utc_iso
from appointment_routing.routing.errors import BookingFailedError
from appointment_routing.services.ghl_client import GHLAPIError, GHLClient

logger = logging.getLogger(__name__)


class AppointmentBooker:
    """Books fixed-length appointments.  Bookings are never retried."""

    def __init__(
        self,
        ghl_client: GHLClient,
        duration: timedelta = APPOINTMENT_DURATION,
    ) -> None:
        self._ghl = ghl_client
        self._duration = duration

    async def book(
        self,
        *,
        calendar_id: str,
        location_id: str,
        start: datetime,
        contact_id: str,
    ) -> Appointment:
        start_utc = start.astimezone(UTC)
        end_utc = start_utc + self._duration
        try:
            data = await self._ghl.create_appointment(
                calendar_id=calendar_id,
                location_id=location_id,
                contact_id=contact_id,
                start_time=to_utc_iso(start_utc),
                end_time=to_utc_iso(end_utc),
            )
        except GHLAPIError as exc:
            logger.error(
                "Booking on calendar %s at %s failed for contact %s: %s",
                calendar_id, to_utc_iso(start_utc), contact_id, exc,
            )
            raise BookingFailedError(
                "Failed to create appointment", contact_id=contact_id,
            ) from exc

        appointment_id = data.get("id") or (data.get("appointment") or {}).get("id")
        logger.info("Booked appointment %s on calendar %s", appointment_id, calendar_id)
        return Appointment(
            appointment_id=appointment_id,
            calendar_id=calendar_id,
            location_id=location_id,
            contact_id=contact_id,
            start=start_utc,
            end=end_utc,
            raw=data,
        )
