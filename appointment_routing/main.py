"""CLI entry point for the appointment routing service.

Runs one routing workflow from the terminal, against the live calendar,
CRM and mapping APIs, for development and support.  For production, use
the FastAPI server (appointment_routing/server.py).

Usage:
    uv run python -m appointment_routing.main --workspace-file ws.json \\
        --user U1 --workspace W1 --phone +15551234 \\
        --time 2025-03-10T14:00:00-05:00 --location 10001
    uv run python -m appointment_routing.main --create-table   # DynamoDB table
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import uuid

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    root_level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=root_level,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )

    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
        logging.getLogger("botocore").setLevel(logging.WARNING)

    logging.getLogger("appointment_routing").setLevel(logging.DEBUG if debug else logging.INFO)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Appointment routing CLI")
    parser.add_argument("--create-table", action="store_true",
                        help="Create the DynamoDB workspaces table and exit")
    parser.add_argument("--workspace-file",
                        help="JSON file with workspace items (default: read DynamoDB)")
    parser.add_argument("--user", help="Tenant user id")
    parser.add_argument("--workspace", help="Workspace id")
    parser.add_argument("--phone", help="Counterpart phone number")
    parser.add_argument("--time", help="Requested start, ISO 8601 with offset")
    parser.add_argument("--location", help="Caller zip code")
    parser.add_argument("--outbound", action="store_true",
                        help="Treat the call as outbound (phone is the callee)")
    parser.add_argument("--debug", action="store_true",
                        help="Show all log messages including HTTP requests")
    return parser


async def _route_once(args: argparse.Namespace) -> int:
    # Imported lazily so --help works without API secrets configured
    from appointment_routing.api.schemas import RoutingWebhookRequest
    from appointment_routing.server import build_workflow
    from appointment_routing.services.ghl_client import GHLClient
    from appointment_routing.services.maps_client import MapsClient
    from appointment_routing.services.workspace_store import (
        DynamoWorkspaceStore,
        InMemoryWorkspaceStore,
    )

    if args.workspace_file:
        store = InMemoryWorkspaceStore.from_json_file(args.workspace_file)
    else:
        store = DynamoWorkspaceStore()

    direction = "outbound" if args.outbound else "inbound"
    number_field = "to_number" if args.outbound else "from_number"
    payload = RoutingWebhookRequest.model_validate(
        {
            "call": {"direction": direction, number_field: args.phone},
            "args": {"time": args.time, "location": args.location},
        }
    )

    ghl_client = GHLClient()
    maps_client = MapsClient()
    try:
        workflow = build_workflow(store, ghl_client, maps_client)
        request_id = f"cli-{uuid.uuid4().hex[:8]}"
        outcome = await workflow.run(payload, args.user, args.workspace, request_id=request_id)
    finally:
        await ghl_client.aclose()
        await maps_client.aclose()

    print(json.dumps(outcome.to_response(), indent=2, default=str))
    print(f"\n[{outcome.status_code}] {' -> '.join(outcome.transitions)}")
    return 0 if outcome.success else 1


def main() -> int:
    """Parse arguments and run one routing attempt (or create the table)."""
    parser = _build_parser()
    args = parser.parse_args()

    load_dotenv()
    _configure_logging(debug=args.debug)

    if args.create_table:
        from appointment_routing.services.dynamo_setup import create_table

        created = create_table()
        print("Table created." if created else "Table already exists.")
        return 0

    missing = [
        flag for flag, value in (
            ("--user", args.user), ("--workspace", args.workspace),
            ("--phone", args.phone), ("--time", args.time), ("--location", args.location),
        )
        if not value
    ]
    if missing:
        parser.error(f"missing required arguments: {', '.join(missing)}")

    try:
        return asyncio.run(_route_once(args))
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
