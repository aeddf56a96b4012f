"""Shared test fixtures for the appointment routing test suite."""

from __future__ import annotations

import os
from datetime import datetime
from unittest.mock import MagicMock

import pytest


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    This runs before any imports, so config.py won't fail on module load.
    """
    os.environ.setdefault("GHL_API_TOKEN", "test-ghl-token-123")
    os.environ.setdefault("GOOGLE_MAPS_API_KEY", "test-maps-key-456")
    os.environ.setdefault("AWS_REGION", "us-east-1")
    os.environ["METRICS_ENABLED"] = "false"


# ── Fakes for the external collaborators ─────────────────────────────


class FakeGHL:
    """In-memory stand-in for ``GHLClient`` that records every call."""

    def __init__(self) -> None:
        # calendar_id -> ISO slot strings returned for any day
        self.slots: dict[str, list[str]] = {}
        self.failing_calendars: set[str] = set()
        self.contacts: list[dict] = []
        self.fail_booking = False
        self.appointments: list[dict] = []
        self.calls: list[tuple] = []

    def calls_named(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    async def get_free_slots(self, calendar_id: str, start: datetime, end: datetime) -> dict:
        from appointment_routing.services.ghl_client import GHLAPIError

        self.calls.append(("get_free_slots", calendar_id, start, end))
        if calendar_id in self.failing_calendars:
            raise GHLAPIError("Server error 502: bad gateway", status_code=502)
        return {start.date().isoformat(): {"slots": list(self.slots.get(calendar_id, []))}}

    async def search_contacts_by_phone(self, phone: str, location_id: str) -> list[dict]:
        self.calls.append(("search_contacts_by_phone", phone, location_id))
        return [
            c for c in self.contacts
            if phone in c["phone"] and c["locationId"] == location_id
        ]

    async def create_contact(self, phone: str, location_id: str) -> dict:
        self.calls.append(("create_contact", phone, location_id))
        contact = {
            "id": f"contact-{len(self.contacts) + 1}",
            "phone": phone,
            "locationId": location_id,
        }
        self.contacts.append(contact)
        return contact

    async def create_appointment(
        self, *, calendar_id, location_id, contact_id, start_time, end_time,
    ) -> dict:
        from appointment_routing.services.ghl_client import GHLAPIError

        self.calls.append(
            ("create_appointment", calendar_id, location_id, contact_id, start_time, end_time),
        )
        if self.fail_booking:
            raise GHLAPIError("Client error 422: slot no longer available", status_code=422)
        appointment = {
            "id": f"appt-{len(self.appointments) + 1}",
            "calendarId": calendar_id,
            "locationId": location_id,
            "contactId": contact_id,
            "startTime": start_time,
            "endTime": end_time,
        }
        self.appointments.append(appointment)
        return appointment


class FakeMaps:
    """Stand-in for ``MapsClient``: distances keyed by destination zip code."""

    def __init__(self) -> None:
        self.distances: dict[str, int | None] = {}
        self.failing_destinations: set[str] = set()
        self.calls: list[tuple[str, str]] = []

    async def driving_distance(self, origin: str, destination: str) -> int | None:
        from appointment_routing.services.maps_client import MapsAPIError

        self.calls.append((origin, destination))
        if destination in self.failing_destinations:
            raise MapsAPIError("Distance Matrix request timed out")
        return self.distances.get(destination)


@pytest.fixture
def fake_ghl() -> FakeGHL:
    return FakeGHL()


@pytest.fixture
def fake_maps() -> FakeMaps:
    return FakeMaps()


@pytest.fixture
def mock_response():
    """Factory fixture for creating mock httpx responses."""

    def _make(data, status_code: int = 200):
        mock = MagicMock()
        mock.status_code = status_code
        mock.json.return_value = data
        mock.text = str(data)
        return mock

    return _make


# ── Workspace + workflow fixtures ────────────────────────────────────


@pytest.fixture
def workspace():
    from appointment_routing.models import RoutingAgent, WorkspaceConfig

    return WorkspaceConfig(
        user_id="user-1",
        workspace_id="ws-1",
        location_id="loc-1",
        routing_agents=(
            RoutingAgent("agent-1", "cal-1", "10002", "1 First St"),
            RoutingAgent("agent-2", "cal-2", "10003", "2 Second Ave"),
        ),
    )


@pytest.fixture
def make_workflow(fake_ghl, fake_maps):
    """Build a real ``RoutingWorkflow`` around the fakes and given workspaces."""
    from appointment_routing.server import build_workflow
    from appointment_routing.services.workspace_store import InMemoryWorkspaceStore

    def _make(*workspaces):
        return build_workflow(InMemoryWorkspaceStore(list(workspaces)), fake_ghl, fake_maps)

    return _make
