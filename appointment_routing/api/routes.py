"""FastAPI route definitions for the appointment routing webhook."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from appointment_routing.api.schemas import (
    HealthResponse,
    RoutingErrorResponse,
    RoutingSuccessResponse,
    RoutingWebhookRequest,
)
from appointment_routing.routing.workflow import INTERNAL_ERROR, RoutingWorkflow

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_workflow(request: Request) -> RoutingWorkflow:
    """Retrieve the routing workflow wired up during the FastAPI lifespan."""
    workflow = getattr(request.app.state, "workflow", None)
    if workflow is None:
        raise HTTPException(
            status_code=503,
            detail="The routing service is still starting up. Please try again in a moment.",
        )
    return workflow


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=RoutingErrorResponse(error=message).model_dump(),
    )


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


@router.post(
    "/routing/{user_id}/{workspace_id}",
    response_model=RoutingSuccessResponse,
    responses={
        400: {"model": RoutingErrorResponse},
        404: {"model": RoutingErrorResponse},
        500: {"model": RoutingErrorResponse},
    },
)
async def route_call(user_id: str, workspace_id: str, http_request: Request):
    """Route a call to the nearest free agent and book the appointment.

    The body is parsed by hand rather than declared as a parameter so
    that malformed payloads get the same ``{"success": false, "error"}``
    shape (and a 400) as every other routing failure.
    """
    workflow = _get_workflow(http_request)
    request_id = getattr(http_request.state, "request_id", "?")

    try:
        body = await http_request.json()
        payload = RoutingWebhookRequest.model_validate(body)
    except (ValueError, ValidationError):
        logger.info("[%s] Rejected malformed routing webhook body", request_id)
        return _error(400, "Request body must be a JSON object with 'call' and 'args'.")

    try:
        outcome = await workflow.run(payload, user_id, workspace_id, request_id=request_id)
    except Exception:
        # The workflow converts its own failures; this only guards the boundary
        logger.exception("[%s] Routing workflow raised", request_id)
        return _error(500, INTERNAL_ERROR)

    return JSONResponse(status_code=outcome.status_code, content=outcome.to_response())
