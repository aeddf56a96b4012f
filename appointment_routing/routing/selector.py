"""Agent selection: the nearest agent free at the requested time and buffer.

Selection runs in two concurrent rounds, one task per agent each:

1. availability: fetch every agent's free slots for the call date; an
   agent is eligible only if both the requested instant and the instant
   ``buffer`` earlier are free slots;
2. distance: only eligible agents get a distance lookup, and agents whose
   distance is unknown drop out.

The closest remaining agent wins.  Ties go to the agent listed first in
the workspace configuration.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import date, datetime, timedelta

from appointment_routing.models import CandidateAgent, RoutingAgent
from appointment_routing.routing.availability import AvailabilityChecker, has_slot
from appointment_routing.routing.distance import DistanceEstimator
from appointment_routing.routing.errors import NoAgentAvailableError

logger = logging.getLogger(__name__)

NO_AGENT_AVAILABLE = "No agents available at the specified time (including 30-min buffer)"


class AgentSelector:
    def __init__(
        self,
        availability: AvailabilityChecker,
        distances: DistanceEstimator,
    ) -> None:
        self._availability = availability
        self._distances = distances

    async def _is_eligible(
        self,
        agent: RoutingAgent,
        call_date: date,
        requested_at: datetime,
        buffer_at: datetime,
    ) -> bool:
        slots = await self._availability.free_slots(agent.calendar_id, call_date)
        main_free = has_slot(slots, requested_at)
        buffer_free = has_slot(slots, buffer_at)
        logger.debug(
            "Agent %s: requested slot free=%s, buffer slot free=%s",
            agent.agent_id, main_free, buffer_free,
        )
        return main_free and buffer_free

    async def eligible_agents(
        self,
        agents: Sequence[RoutingAgent],
        *,
        requested_at: datetime,
        buffer: timedelta,
        call_date: date,
    ) -> list[RoutingAgent]:
        """Agents free at both ``requested_at`` and ``requested_at - buffer``,
        in input order."""
        buffer_at = requested_at - buffer
        async with asyncio.TaskGroup() as tg:
            tasks = [
                tg.create_task(self._is_eligible(agent, call_date, requested_at, buffer_at))
                for agent in agents
            ]
        return [agent for agent, task in zip(agents, tasks) if task.result()]

    async def candidates(
        self,
        agents: Sequence[RoutingAgent],
        caller_location: str,
    ) -> list[CandidateAgent]:
        """Annotate agents with their distance from the caller, dropping
        agents whose distance is unknown.  Input order is preserved."""
        async with asyncio.TaskGroup() as tg:
            tasks = [
                tg.create_task(self._distances.distance(caller_location, agent.zipcode))
                for agent in agents
            ]

        result: list[CandidateAgent] = []
        for agent, task in zip(agents, tasks):
            distance = task.result()
            if distance is None:
                logger.info("Agent %s excluded: distance unknown", agent.agent_id)
                continue
            result.append(CandidateAgent(agent=agent, distance_meters=distance))
        return result

    async def select(
        self,
        agents: Sequence[RoutingAgent],
        *,
        requested_at: datetime,
        buffer: timedelta,
        caller_location: str,
        call_date: date,
    ) -> CandidateAgent:
        """Pick the closest agent free at the requested time and buffer.

        Raises:
            NoAgentAvailableError: when no agent is both time-eligible and
                at a known distance.
        """
        eligible = await self.eligible_agents(
            agents, requested_at=requested_at, buffer=buffer, call_date=call_date,
        )
        logger.info("%d of %d agents are free at %s", len(eligible), len(agents), requested_at.isoformat())
        if not eligible:
            raise NoAgentAvailableError(NO_AGENT_AVAILABLE)

        candidates = await self.candidates(eligible, caller_location)
        if not candidates:
            raise NoAgentAvailableError(NO_AGENT_AVAILABLE)

        # min() keeps the first of equal elements, so ties follow input order
        chosen = min(candidates, key=lambda c: c.distance_meters)
        logger.info(
            "Selected agent %s (calendar %s) at %dm",
            chosen.agent.agent_id, chosen.agent.calendar_id, chosen.distance_meters,
        )
        return chosen
