"""Workflow-level failures, each mapped to the HTTP status it surfaces as."""

from __future__ import annotations


class RoutingError(Exception):
    """Base class for failures that end a routing workflow."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        if status_code is not None:
            self.status_code = status_code
        self.message = message
        super().__init__(message)


class InvalidCallRequestError(RoutingError):
    """The webhook lacks a phone number, time or location, or they are malformed."""

    status_code = 400


class WorkspaceNotFoundError(RoutingError):
    status_code = 404


class NoRoutingAgentsError(RoutingError):
    status_code = 404


class NoAgentAvailableError(RoutingError):
    """No agent is free at the requested time and buffer with a known distance."""

    status_code = 404


class BookingFailedError(RoutingError):
    """The calendar rejected the appointment after the contact was resolved.

    The contact is *not* rolled back; ``contact_id`` is kept so the
    inconsistency can be traced from the logs.
    """

    status_code = 500

    def __init__(self, message: str, *, contact_id: str | None = None):
        self.contact_id = contact_id
        super().__init__(message)
