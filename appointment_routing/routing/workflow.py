"""The routing workflow: one webhook in, at most one booked appointment out.

State machine::

    received_request → validating_input → selecting_agent
        → resolving_contact → booking → succeeded
    (any state) → failed

Ordering guarantees:

* no contact is looked up or created unless an agent was selected;
* booking only happens after the contact is resolved;
* a booking failure after contact creation is a partial commit: the
  contact is left in the CRM and the failure is logged with its id.

No step is retried here.  Webhooks are delivered at-least-once, so a
redelivered call runs the whole workflow again; contact find-before-create
limits the duplication, but a concurrent redelivery can still
double-book (there is no idempotency key).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from enum import StrEnum
from typing import Any

from appointment_routing.api.schemas import (
    AgentSummary,
    RoutedAppointment,
    RoutingErrorResponse,
    RoutingSuccessResponse,
    RoutingWebhookRequest,
)
from appointment_routing.config import TRAVEL_BUFFER
from appointment_routing.models import (
    Appointment,
    CallRequest,
    CandidateAgent,
    Contact,
    WorkspaceConfig,
    parse_instant,
)
from appointment_routing.routing.booking import AppointmentBooker
from appointment_routing.routing.contacts import ContactResolver
from appointment_routing.routing.errors import (
    BookingFailedError,
    InvalidCallRequestError,
    NoRoutingAgentsError,
    RoutingError,
    WorkspaceNotFoundError,
)
from appointment_routing.routing.selector import AgentSelector
from appointment_routing.services.metrics import metrics
from appointment_routing.services.workspace_store import WorkspaceStore

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal server error"


class RoutingState(StrEnum):
    RECEIVED_REQUEST = "received_request"
    VALIDATING_INPUT = "validating_input"
    SELECTING_AGENT = "selecting_agent"
    RESOLVING_CONTACT = "resolving_contact"
    BOOKING = "booking"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_STATES = frozenset({RoutingState.SUCCEEDED, RoutingState.FAILED})


@dataclass
class RoutingOutcome:
    """Result of one workflow run, including every state it went through."""

    request_id: str = "-"
    state: RoutingState = RoutingState.RECEIVED_REQUEST
    transitions: list[RoutingState] = field(
        default_factory=lambda: [RoutingState.RECEIVED_REQUEST],
    )
    status_code: int = 200
    error: str | None = None
    phone_number: str | None = None
    selected: CandidateAgent | None = None
    contact: Contact | None = None
    appointment: Appointment | None = None

    @property
    def success(self) -> bool:
        return self.state is RoutingState.SUCCEEDED

    def advance(self, state: RoutingState) -> None:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"Routing already finished in state {self.state}")
        logger.debug("[%s] %s -> %s", self.request_id, self.state, state)
        self.state = state
        self.transitions.append(state)

    def fail(self, message: str, status_code: int) -> RoutingOutcome:
        failed_in = self.state
        self.advance(RoutingState.FAILED)
        self.error = message
        self.status_code = status_code
        logger.info(
            "[%s] Routing failed in %s (%d): %s", self.request_id, failed_in, status_code, message,
        )
        metrics.record_routing_outcome(self.state.value, status_code)
        return self

    def succeed(self) -> RoutingOutcome:
        self.advance(RoutingState.SUCCEEDED)
        self.status_code = 200
        metrics.record_routing_outcome(self.state.value, self.status_code)
        return self

    def to_response(self) -> dict[str, Any]:
        """Render the caller-facing JSON body."""
        if not self.success:
            return RoutingErrorResponse(error=self.error or INTERNAL_ERROR).model_dump()
        body = RoutingSuccessResponse(
            appointment=RoutedAppointment(
                agent=AgentSummary(
                    address=self.selected.agent.address,
                    distance=self.selected.distance_meters,
                ),
                phone_number_used=self.phone_number,
                appointment_details=self.appointment.raw,
            ),
        )
        return body.model_dump(by_alias=True)


def extract_call_request(payload: RoutingWebhookRequest) -> CallRequest:
    """Pull the direction-appropriate phone number, time and location out of
    the webhook.

    Raises:
        InvalidCallRequestError: on any missing or malformed field.
    """
    call = payload.call
    direction = (call.direction or "").strip().lower() if call else ""
    phone_number: str | None = None
    if direction == "inbound":
        phone_number = call.from_number
    elif direction == "outbound":
        phone_number = call.to_number
    phone_number = (phone_number or "").strip()
    if not phone_number:
        raise InvalidCallRequestError(
            "No valid phone number found. Check 'call.direction' and the "
            "corresponding number fields."
        )

    args = payload.args
    time_str = (args.time or "").strip() if args else ""
    location = (args.location or "").strip() if args else ""
    if not time_str or not location:
        raise InvalidCallRequestError("Missing required fields in 'args': time or location.")

    try:
        requested_at = parse_instant(time_str)
    except ValueError as exc:
        raise InvalidCallRequestError(
            "Invalid 'time': expected an ISO 8601 timestamp with a UTC offset."
        ) from exc

    return CallRequest(
        direction=direction,
        phone_number=phone_number,
        requested_at=requested_at,
        location=location,
    )


class RoutingWorkflow:
    """Sequences selection, contact resolution and booking for one call."""

    def __init__(
        self,
        store: WorkspaceStore,
        selector: AgentSelector,
        contacts: ContactResolver,
        booker: AppointmentBooker,
        *,
        buffer: timedelta = TRAVEL_BUFFER,
    ) -> None:
        self._store = store
        self._selector = selector
        self._contacts = contacts
        self._booker = booker
        self._buffer = buffer

    async def _load_workspace(self, user_id: str, workspace_id: str) -> WorkspaceConfig:
        workspace = await self._store.get_workspace(user_id, workspace_id)
        if workspace is None:
            raise WorkspaceNotFoundError("User or workspace not found")
        if not workspace.routing_agents:
            raise NoRoutingAgentsError("No routing agents found")
        if not workspace.location_id:
            raise WorkspaceNotFoundError("Workspace has no CRM location configured")
        return workspace

    async def run(
        self,
        payload: RoutingWebhookRequest,
        user_id: str,
        workspace_id: str,
        *,
        request_id: str = "-",
    ) -> RoutingOutcome:
        """Route one call.  Never raises: every failure becomes a failed outcome."""
        outcome = RoutingOutcome(request_id=request_id)
        try:
            outcome.advance(RoutingState.VALIDATING_INPUT)
            call = extract_call_request(payload)
            outcome.phone_number = call.phone_number
            workspace = await self._load_workspace(user_id, workspace_id)

            outcome.advance(RoutingState.SELECTING_AGENT)
            outcome.selected = await self._selector.select(
                workspace.routing_agents,
                requested_at=call.requested_at,
                buffer=self._buffer,
                caller_location=call.location,
                call_date=call.call_date,
            )

            outcome.advance(RoutingState.RESOLVING_CONTACT)
            outcome.contact = await self._contacts.resolve(
                call.phone_number, workspace.location_id,
            )

            outcome.advance(RoutingState.BOOKING)
            outcome.appointment = await self._booker.book(
                calendar_id=outcome.selected.agent.calendar_id,
                location_id=workspace.location_id,
                start=call.requested_at,
                contact_id=outcome.contact.contact_id,
            )
        except BookingFailedError as exc:
            logger.error(
                "[%s] Partial commit: contact %s kept without an appointment",
                request_id, exc.contact_id,
            )
            return outcome.fail(exc.message, exc.status_code)
        except RoutingError as exc:
            return outcome.fail(exc.message, exc.status_code)
        except Exception:
            logger.exception("[%s] Unexpected error in routing workflow", request_id)
            return outcome.fail(INTERNAL_ERROR, 500)

        logger.info(
            "[%s] Routed %s to agent %s, appointment %s",
            request_id, call.phone_number,
            outcome.selected.agent.agent_id, outcome.appointment.appointment_id,
        )
        return outcome.succeed()
