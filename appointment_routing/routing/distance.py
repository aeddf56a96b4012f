"""Travel distance between a caller and an agent."""

from __future__ import annotations

import logging

from appointment_routing.services.maps_client import MapsAPIError, MapsClient

logger = logging.getLogger(__name__)


class DistanceEstimator:
    """Driving distance in meters via the mapping service.

    ``None`` means "unknown" and must exclude the agent; it is never
    treated as zero.
    """

    def __init__(self, maps_client: MapsClient) -> None:
        self._maps = maps_client

    async def distance(self, origin: str, destination: str) -> int | None:
        try:
            return await self._maps.driving_distance(origin, destination)
        except MapsAPIError as exc:
            logger.warning("Distance lookup %s -> %s failed: %s", origin, destination, exc)
            return None
