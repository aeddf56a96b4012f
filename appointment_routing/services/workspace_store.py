"""Workspace configuration store.

A workspace (``user_id`` + ``workspace_id``) owns the CRM location id and
the list of routing agents.  The routing workflow only ever reads it; the
admin flows that write it live outside this service.

Two backends:

* ``DynamoWorkspaceStore`` — production, one DynamoDB item per workspace.
* ``InMemoryWorkspaceStore`` — tests and the developer CLI.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from appointment_routing.config import AWS_REGION, DYNAMODB_ENDPOINT, WORKSPACES_TABLE
from appointment_routing.models import RoutingAgent, WorkspaceConfig
from appointment_routing.services.metrics import metrics

logger = logging.getLogger(__name__)


def workspace_from_item(item: dict[str, Any]) -> WorkspaceConfig:
    """Convert a stored workspace document into a ``WorkspaceConfig``.

    Agent records missing ``calendar_id`` or ``zipcode`` are skipped with a
    warning rather than failing the whole workspace.
    """
    agents: list[RoutingAgent] = []
    for raw in item.get("routing_agents") or []:
        try:
            agents.append(RoutingAgent.from_dict(raw))
        except (KeyError, TypeError):
            logger.warning(
                "Skipping malformed routing agent in workspace %s/%s: %r",
                item.get("user_id"), item.get("workspace_id"), raw,
            )
    return WorkspaceConfig(
        user_id=str(item["user_id"]),
        workspace_id=str(item["workspace_id"]),
        location_id=item.get("location_id") or None,
        routing_agents=tuple(agents),
    )


class WorkspaceStore(ABC):
    """Read access to workspace routing configuration."""

    @abstractmethod
    async def get_workspace(self, user_id: str, workspace_id: str) -> WorkspaceConfig | None:
        """Return the workspace, or ``None`` if it does not exist."""

    async def get_routing_agents(self, user_id: str, workspace_id: str) -> list[RoutingAgent]:
        workspace = await self.get_workspace(user_id, workspace_id)
        return list(workspace.routing_agents) if workspace else []


class InMemoryWorkspaceStore(WorkspaceStore):
    """Dict-backed store keyed by ``(user_id, workspace_id)``."""

    def __init__(self, workspaces: list[WorkspaceConfig] | None = None) -> None:
        self._workspaces: dict[tuple[str, str], WorkspaceConfig] = {}
        for workspace in workspaces or []:
            self.add(workspace)

    def add(self, workspace: WorkspaceConfig) -> None:
        self._workspaces[(workspace.user_id, workspace.workspace_id)] = workspace

    async def get_workspace(self, user_id: str, workspace_id: str) -> WorkspaceConfig | None:
        return self._workspaces.get((user_id, workspace_id))

    @classmethod
    def from_json_file(cls, path: str | Path) -> InMemoryWorkspaceStore:
        """Load workspaces from a JSON file holding a list of workspace items
        (the same shape as the DynamoDB items)."""
        items = json.loads(Path(path).read_text(encoding="utf-8"))
        if isinstance(items, dict):
            items = [items]
        return cls([workspace_from_item(item) for item in items])


class DynamoWorkspaceStore(WorkspaceStore):
    """DynamoDB-backed store.

    Table layout: partition key ``user_id`` (S), sort key ``workspace_id``
    (S).  Items carry ``location_id`` and a ``routing_agents`` list of maps.
    boto3 is blocking, so reads run in a worker thread.
    """

    def __init__(
        self,
        table_name: str = WORKSPACES_TABLE,
        *,
        region_name: str = AWS_REGION,
        endpoint_url: str | None = DYNAMODB_ENDPOINT,
        table: Any | None = None,
    ) -> None:
        self._table_name = table_name
        if table is None:
            import boto3

            dynamodb = boto3.resource(
                "dynamodb", region_name=region_name, endpoint_url=endpoint_url,
            )
            table = dynamodb.Table(table_name)
        self._table = table

    def _get_item(self, user_id: str, workspace_id: str) -> dict[str, Any] | None:
        started = time.perf_counter()
        try:
            resp = self._table.get_item(
                Key={"user_id": user_id, "workspace_id": workspace_id},
            )
        except Exception as exc:
            metrics.record_failure("dynamodb", "GetItem", error_type=type(exc).__name__)
            raise
        metrics.record_success(
            "dynamodb", "GetItem", latency_ms=(time.perf_counter() - started) * 1000,
        )
        return resp.get("Item")

    async def get_workspace(self, user_id: str, workspace_id: str) -> WorkspaceConfig | None:
        item = await asyncio.to_thread(self._get_item, user_id, workspace_id)
        if item is None:
            logger.info("Workspace %s/%s not found in %s", user_id, workspace_id, self._table_name)
            return None
        return workspace_from_item(item)

    def put_workspace(self, workspace: WorkspaceConfig) -> None:
        """Write a workspace item (used by the CLI to seed DynamoDB Local)."""
        self._table.put_item(
            Item={
                "user_id": workspace.user_id,
                "workspace_id": workspace.workspace_id,
                "location_id": workspace.location_id,
                "routing_agents": [agent.to_dict() for agent in workspace.routing_agents],
            }
        )
