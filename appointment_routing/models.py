"""Domain types shared by the routing components.

All of these are plain frozen dataclasses: the workflow builds them once
per webhook and never mutates them afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import Any, Literal

CallDirection = Literal["inbound", "outbound"]


@dataclass(frozen=True)
class RoutingAgent:
    """A field agent with a calendar and a service location."""

    agent_id: str
    calendar_id: str
    zipcode: str
    address: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoutingAgent:
        """Build an agent from a stored workspace record.

        Stored records only need ``calendar_id`` and ``zipcode``; the
        calendar id doubles as the agent id when none is stored.
        """
        calendar_id = str(data["calendar_id"])
        return cls(
            agent_id=str(data.get("id") or data.get("agent_id") or calendar_id),
            calendar_id=calendar_id,
            zipcode=str(data["zipcode"]),
            address=str(data.get("address", "")),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.agent_id,
            "calendar_id": self.calendar_id,
            "zipcode": self.zipcode,
            "address": self.address,
        }


@dataclass(frozen=True)
class WorkspaceConfig:
    """Routing configuration of one tenant workspace."""

    user_id: str
    workspace_id: str
    location_id: str | None
    routing_agents: tuple[RoutingAgent, ...] = ()


@dataclass(frozen=True)
class CallRequest:
    """A validated routing request extracted from a call webhook."""

    direction: CallDirection
    phone_number: str
    requested_at: datetime
    location: str

    @property
    def call_date(self) -> date:
        """The calendar day of the request, in the caller's own offset."""
        return self.requested_at.date()

    def buffer_at(self, buffer: timedelta) -> datetime:
        """The instant that must also be free before the appointment."""
        return self.requested_at - buffer


@dataclass(frozen=True)
class CandidateAgent:
    """An eligible agent annotated with its travel distance."""

    agent: RoutingAgent
    distance_meters: int


@dataclass(frozen=True)
class Contact:
    contact_id: str
    phone: str
    location_id: str


@dataclass(frozen=True)
class Appointment:
    """A booked calendar event; ``end`` is always ``start`` + duration."""

    appointment_id: str | None
    calendar_id: str
    location_id: str
    contact_id: str
    start: datetime
    end: datetime
    raw: dict[str, Any] = field(default_factory=dict, compare=False)


def to_utc_iso(instant: datetime) -> str:
    """Serialize an aware datetime as UTC ISO-8601 with millisecond precision.

    >>> to_utc_iso(datetime(2025, 3, 10, 14, 0, tzinfo=UTC))
    '2025-03-10T14:00:00.000Z'
    """
    utc = instant.astimezone(UTC)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 instant that carries an offset (or ``Z``).

    Raises ``ValueError`` for malformed strings and for naive timestamps,
    since a naive time cannot be placed on the absolute timeline.
    """
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None or parsed.utcoffset() is None:
        raise ValueError(f"Timestamp {value!r} has no UTC offset")
    return parsed
