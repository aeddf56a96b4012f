"""FastAPI server for the appointment routing webhook.

Run with:
    uv run uvicorn appointment_routing.server:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from appointment_routing.api.routes import router
from appointment_routing.config import CORS_ORIGINS, SERVER_HOST, SERVER_PORT
from appointment_routing.routing.availability import AvailabilityChecker
from appointment_routing.routing.booking import AppointmentBooker
from appointment_routing.routing.contacts import ContactResolver
from appointment_routing.routing.distance import DistanceEstimator
from appointment_routing.routing.selector import AgentSelector
from appointment_routing.routing.workflow import RoutingWorkflow
from appointment_routing.services.ghl_client import GHLClient
from appointment_routing.services.maps_client import MapsClient
from appointment_routing.services.workspace_store import DynamoWorkspaceStore, WorkspaceStore

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


def build_workflow(
    store: WorkspaceStore,
    ghl_client: GHLClient,
    maps_client: MapsClient,
) -> RoutingWorkflow:
    """Wire the routing components around shared, long-lived clients."""
    selector = AgentSelector(
        AvailabilityChecker(ghl_client),
        DistanceEstimator(maps_client),
    )
    return RoutingWorkflow(
        store,
        selector,
        ContactResolver(ghl_client),
        AppointmentBooker(ghl_client),
    )


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Start-up: build the HTTP clients and the workflow once per process
    and keep them on app state; close the HTTP clients on shutdown."""
    logger.info("Wiring routing workflow…")
    ghl_client = GHLClient()
    maps_client = MapsClient()
    application.state.workflow = build_workflow(
        DynamoWorkspaceStore(), ghl_client, maps_client,
    )
    logger.info("Routing workflow ready.")
    try:
        yield
    finally:
        application.state.workflow = None
        await ghl_client.aclose()
        await maps_client.aclose()


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="Appointment Routing Service",
    description=(
        "Call webhook that books the caller with the nearest field agent "
        "free at the requested time (plus a 30-minute travel buffer)."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Attach a unique request ID to every request for log correlation.

    The ID is echoed in the ``X-Request-ID`` response header and passed
    to the routing workflow, which prefixes its log lines with it.
    """
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info(
        "[%s] %s %s", request_id, request.method, request.url.path,
    )
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


app.include_router(router)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Appointment Routing Service",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "webhook": "/routing/{user_id}/{workspace_id}",
    }


if __name__ == "__main__":
    logger.info("Starting appointment routing server on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run(
        "appointment_routing.server:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=True,
    )
