"""Async client for the Google Maps Distance Matrix API.

Docs: https://developers.google.com/maps/documentation/distance-matrix
Only single-origin / single-destination driving queries are issued.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from appointment_routing.config import (
    GOOGLE_MAPS_API_KEY,
    GOOGLE_MAPS_BASE_URL,
    HTTP_TIMEOUT_SECONDS,
)
from appointment_routing.services.metrics import metrics

logger = logging.getLogger(__name__)

DISTANCE_MATRIX_PATH = "/maps/api/distancematrix/json"
_OPERATION = "GET /distancematrix"


class MapsAPIError(Exception):
    """Raised when the Distance Matrix API cannot be reached or errors out."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class MapsClient:
    """Driving-distance lookups between two free-form locations (zip codes)."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        *,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ):
        self._api_key = api_key or GOOGLE_MAPS_API_KEY
        self._client = httpx.AsyncClient(
            base_url=base_url or GOOGLE_MAPS_BASE_URL,
            timeout=timeout,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_matrix(self, origin: str, destination: str) -> dict[str, Any]:
        started = time.perf_counter()
        try:
            response = await self._client.get(
                DISTANCE_MATRIX_PATH,
                params={
                    "origins": origin,
                    "destinations": destination,
                    "mode": "driving",
                    "key": self._api_key,
                },
            )
        except httpx.TimeoutException as exc:
            metrics.record_failure(
                "google_maps", _OPERATION, error_type="timeout",
                latency_ms=(time.perf_counter() - started) * 1000,
            )
            raise MapsAPIError(f"Distance Matrix request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            metrics.record_failure("google_maps", _OPERATION, error_type=type(exc).__name__)
            raise MapsAPIError(f"Distance Matrix transport error: {exc}") from exc

        elapsed = (time.perf_counter() - started) * 1000
        if response.status_code >= 400:
            metrics.record_failure(
                "google_maps", _OPERATION,
                error_type=f"{response.status_code // 100}xx", latency_ms=elapsed,
            )
            raise MapsAPIError(
                f"Distance Matrix error {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as exc:
            metrics.record_failure(
                "google_maps", _OPERATION, error_type="invalid_json", latency_ms=elapsed,
            )
            raise MapsAPIError("Distance Matrix returned a non-JSON body") from exc
        if not isinstance(data, dict):
            metrics.record_failure(
                "google_maps", _OPERATION, error_type="invalid_json", latency_ms=elapsed,
            )
            raise MapsAPIError("Distance Matrix returned a non-object JSON body")

        metrics.record_success("google_maps", _OPERATION, latency_ms=elapsed)
        return data

    async def driving_distance(self, origin: str, destination: str) -> int | None:
        """Return the driving distance in meters, or ``None`` if Google could
        not route between the two locations.

        Raises ``MapsAPIError`` when the service itself fails.
        """
        data = await self._get_matrix(origin, destination)
        if data.get("status") != "OK":
            logger.info(
                "Distance Matrix status %s for %s -> %s (%s)",
                data.get("status"), origin, destination, data.get("error_message", ""),
            )
            return None

        try:
            element = data["rows"][0]["elements"][0]
        except (KeyError, IndexError, TypeError):
            element = None
        if not isinstance(element, dict):
            logger.warning("Distance Matrix response has no element for %s -> %s", origin, destination)
            return None

        if element.get("status") != "OK":
            logger.info(
                "Distance Matrix element status %s for %s -> %s",
                element.get("status"), origin, destination,
            )
            return None

        distance = element.get("distance")
        value = distance.get("value") if isinstance(distance, dict) else None
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning(
                "Distance Matrix returned a non-numeric distance %r for %s -> %s",
                value, origin, destination,
            )
            return None
