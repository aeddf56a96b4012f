"""Pydantic schemas for the FastAPI endpoints.

The webhook models are deliberately permissive: every field is optional
so that missing data reaches the routing workflow, which answers with
its own ``400`` payload instead of FastAPI's ``422``.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class CallInfo(BaseModel):
    """The ``call`` object sent by the voice-agent platform."""

    model_config = ConfigDict(extra="allow")

    direction: str | None = Field(None, description="'inbound' or 'outbound'")
    from_number: str | None = None
    to_number: str | None = None


class RoutingArgs(BaseModel):
    """Function-call arguments collected by the voice agent."""

    model_config = ConfigDict(extra="allow")

    time: str | None = Field(
        None, description="Requested appointment start, ISO 8601 with offset",
    )
    location: str | None = Field(
        None,
        validation_alias=AliasChoices("location", "zipcode"),
        description="Caller location (zip code)",
    )

    @field_validator("time", "location", mode="before")
    @classmethod
    def _coerce_to_str(cls, value: Any) -> Any:
        # Zip codes often arrive as JSON numbers
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class RoutingWebhookRequest(BaseModel):
    """Inbound/outbound call webhook asking for an appointment to be routed."""

    model_config = ConfigDict(extra="allow")

    call: CallInfo | None = None
    args: RoutingArgs | None = None


class AgentSummary(BaseModel):
    address: str
    distance: int = Field(..., description="Driving distance from the caller, meters")


class RoutedAppointment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    agent: AgentSummary
    phone_number_used: str = Field(..., serialization_alias="phoneNumberUsed")
    appointment_details: dict[str, Any] = Field(
        default_factory=dict, serialization_alias="appointmentDetails",
    )


class RoutingSuccessResponse(BaseModel):
    success: bool = True
    appointment: RoutedAppointment


class RoutingErrorResponse(BaseModel):
    success: bool = False
    error: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "appointment-routing"
