"""Async HTTP client for the GoHighLevel (LeadConnector) API v2.

Covers the two GHL surfaces the routing workflow needs: calendars
(free slots, appointment creation) and contacts (search, creation).

API docs: https://highlevel.stoplight.io/docs/integrations/
All requests carry a Private Integration Token as a Bearer token and a
per-surface ``Version`` header.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from appointment_routing.config import (
    GHL_API_TOKEN,
    GHL_BASE_URL,
    GHL_CALENDARS_API_VERSION,
    GHL_CONTACTS_API_VERSION,
    HTTP_TIMEOUT_SECONDS,
)
from appointment_routing.services.metrics import metrics

logger = logging.getLogger(__name__)

CONTACT_SEARCH_PAGE_LIMIT = 20


class GHLAPIError(Exception):
    """Raised when a GoHighLevel API call fails or times out."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class GHLClient:
    """Thin async wrapper around the GoHighLevel REST API.

    Every call is attempted exactly once.  Writes in particular must never
    be replayed: availability is only checked, not locked, so a retried
    booking could double-book a slot.  Callers decide how to degrade.
    """

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        *,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ):
        self._token = token or GHL_API_TOKEN
        self._base_url = base_url or GHL_BASE_URL
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "Accept": "application/json",
                "Authorization": f"Bearer {self._token}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── Internal helpers ─────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        version: str,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Execute a single HTTP request and return the decoded JSON body.

        Transport errors, timeouts, non-2xx statuses and undecodable bodies
        are all raised as ``GHLAPIError``.
        """
        started = time.perf_counter()
        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json_body,
                headers={"Version": version},
            )
        except httpx.TimeoutException as exc:
            metrics.record_failure(
                "ghl", operation, error_type="timeout",
                latency_ms=(time.perf_counter() - started) * 1000,
            )
            raise GHLAPIError(f"GHL {operation} timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            metrics.record_failure("ghl", operation, error_type=type(exc).__name__)
            raise GHLAPIError(f"GHL {operation} transport error: {exc}") from exc

        elapsed = (time.perf_counter() - started) * 1000
        if response.status_code >= 500:
            metrics.record_failure("ghl", operation, error_type="5xx", latency_ms=elapsed)
            raise GHLAPIError(
                f"Server error {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            metrics.record_failure("ghl", operation, error_type="4xx", latency_ms=elapsed)
            raise GHLAPIError(
                f"Client error {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            metrics.record_failure("ghl", operation, error_type="invalid_json", latency_ms=elapsed)
            raise GHLAPIError(
                f"GHL {operation} returned a non-JSON body",
                status_code=response.status_code,
            ) from exc

        metrics.record_success("ghl", operation, latency_ms=elapsed)
        return data if isinstance(data, dict) else {}

    # ── Contacts ─────────────────────────────────────────────────────

    async def search_contacts_by_phone(
        self, phone: str, location_id: str,
    ) -> list[dict[str, Any]]:
        """Return contacts whose phone field *contains* ``phone``.

        This is a substring match, so short numbers can over-match.
        """
        data = await self._request(
            "POST",
            "/contacts/search",
            operation="POST /contacts/search",
            version=GHL_CONTACTS_API_VERSION,
            json_body={
                "locationId": location_id,
                "page": 1,
                "pageLimit": CONTACT_SEARCH_PAGE_LIMIT,
                "filters": [
                    {"field": "phone", "operator": "contains", "value": phone},
                ],
            },
        )
        return data.get("contacts") or []

    async def create_contact(self, phone: str, location_id: str) -> dict[str, Any]:
        """Create a contact carrying only a phone number and location."""
        data = await self._request(
            "POST",
            "/contacts/",
            operation="POST /contacts",
            version=GHL_CONTACTS_API_VERSION,
            json_body={"phone": phone, "locationId": location_id},
        )
        contact = data.get("contact")
        if not contact or not contact.get("id"):
            raise GHLAPIError("GHL create contact response has no contact id")
        return contact

    # ── Calendars ────────────────────────────────────────────────────

    async def get_free_slots(
        self,
        calendar_id: str,
        start: datetime,
        end: datetime,
    ) -> dict[str, Any]:
        """Fetch free slots of ``calendar_id`` within ``[start, end)``.

        GHL expects epoch milliseconds and answers with date-keyed buckets,
        e.g. ``{"2025-03-10": {"slots": ["2025-03-10T14:00:00-05:00", ...]}}``.
        **Not cached**: availability must always be fetched fresh.
        """
        return await self._request(
            "GET",
            f"/calendars/{quote(calendar_id, safe='')}/free-slots",
            operation="GET /calendars/free-slots",
            version=GHL_CALENDARS_API_VERSION,
            params={
                "startDate": int(start.timestamp() * 1000),
                "endDate": int(end.timestamp() * 1000),
            },
        )

    async def create_appointment(
        self,
        *,
        calendar_id: str,
        location_id: str,
        contact_id: str,
        start_time: str,
        end_time: str,
    ) -> dict[str, Any]:
        """Create a calendar appointment.

        Args:
            calendar_id: The GHL calendar to book on.
            location_id: The GHL sub-account (location) id.
            contact_id: The contact the appointment belongs to.
            start_time: UTC ISO-8601 start (e.g. "2025-03-10T19:00:00.000Z").
            end_time: UTC ISO-8601 end.
        """
        return await self._request(
            "POST",
            "/calendars/events/appointments",
            operation="POST /calendars/events/appointments",
            version=GHL_CALENDARS_API_VERSION,
            json_body={
                "calendarId": calendar_id,
                "locationId": location_id,
                "contactId": contact_id,
                "startTime": start_time,
                "endTime": end_time,
            },
        )
