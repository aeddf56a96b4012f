"""Centralized configuration for the appointment routing service.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/appointment-routing/<VARIABLE_NAME>``.
"""

from __future__ import annotations

import logging
import os
from datetime import timedelta

from dotenv import load_dotenv

from appointment_routing.services.dynamo_setup import DEFAULT_AWS_REGION, DEFAULT_WORKSPACES_TABLE

load_dotenv()

logger = logging.getLogger(__name__)

# ── Feature flag: running on AWS? ────────────────────────────────────
_ON_AWS = bool(os.getenv("AWS_EXECUTION_ENV"))


# ── Secret resolution ────────────────────────────────────────────────

def _get_ssm_parameter(name: str) -> str | None:
    """Fetch a SecureString from SSM Parameter Store.

    Returns ``None`` if the parameter does not exist or boto3 is
    unavailable.  Errors are logged but never raised so that local-dev
    fallback still works.
    """
    try:
        import boto3  # noqa: PLC0415 — lazy import, only needed on AWS

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"/appointment-routing/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _require_env(name: str) -> str:
    """Return a config value from env-var or SSM, or raise a clear error."""
    value = os.getenv(name)
    if value and not value.startswith("your_"):
        return value

    if _ON_AWS:
        ssm_value = _get_ssm_parameter(name)
        if ssm_value:
            return ssm_value

    raise OSError(
        f"Missing required configuration: {name}. "
        f"Set it in .env (local) or SSM Parameter Store /appointment-routing/{name} (AWS)."
    )


# ── GoHighLevel (calendar + CRM) ────────────────────────────────────
GHL_API_TOKEN: str = _require_env("GHL_API_TOKEN")
GHL_BASE_URL: str = os.getenv("GHL_BASE_URL", "https://services.leadconnectorhq.com")
GHL_CONTACTS_API_VERSION = "2021-07-28"
GHL_CALENDARS_API_VERSION = "2021-04-15"

# ── Google Maps (distance) ──────────────────────────────────────────
GOOGLE_MAPS_API_KEY: str = _require_env("GOOGLE_MAPS_API_KEY")
GOOGLE_MAPS_BASE_URL: str = os.getenv("GOOGLE_MAPS_BASE_URL", "https://maps.googleapis.com")

# ── Outbound HTTP ───────────────────────────────────────────────────
HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))

# ── Routing rules ───────────────────────────────────────────────────
APPOINTMENT_DURATION = timedelta(minutes=30)
TRAVEL_BUFFER = timedelta(minutes=30)

# ── Workspace store (DynamoDB) ──────────────────────────────────────
WORKSPACES_TABLE: str = os.getenv("WORKSPACES_TABLE", DEFAULT_WORKSPACES_TABLE)
AWS_REGION: str = os.getenv("AWS_REGION", DEFAULT_AWS_REGION)
# Set to e.g. http://localhost:8000 to use DynamoDB Local
DYNAMODB_ENDPOINT: str | None = os.getenv("DYNAMODB_ENDPOINT") or None

# ── Server ──────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8000"))
CORS_ORIGINS: list[str] = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")
