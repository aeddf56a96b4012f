"""One-off DynamoDB setup for the workspaces table.

Kept free of ``appointment_routing.config`` so that seeding DynamoDB Local
does not require the GHL and Google Maps secrets.
"""

from __future__ import annotations

import logging
import os

import boto3

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACES_TABLE = "routing-workspaces"
DEFAULT_AWS_REGION = "us-east-1"


def create_table(
    table_name: str | None = None,
    *,
    region_name: str | None = None,
    endpoint_url: str | None = None,
) -> bool:
    """Create the workspaces table if missing.  Returns ``True`` if created.

    Unset arguments fall back to ``WORKSPACES_TABLE``, ``AWS_REGION`` and
    ``DYNAMODB_ENDPOINT`` from the environment.
    """
    table_name = table_name or os.getenv("WORKSPACES_TABLE", DEFAULT_WORKSPACES_TABLE)
    region_name = region_name or os.getenv("AWS_REGION", DEFAULT_AWS_REGION)
    endpoint_url = endpoint_url or os.getenv("DYNAMODB_ENDPOINT") or None

    dynamodb = boto3.resource("dynamodb", region_name=region_name, endpoint_url=endpoint_url)
    existing = [t.name for t in dynamodb.tables.all()]
    if table_name in existing:
        logger.info("Table %s already exists", table_name)
        return False

    logger.info("Creating table %s…", table_name)
    table = dynamodb.create_table(
        TableName=table_name,
        KeySchema=[
            {"AttributeName": "user_id", "KeyType": "HASH"},
            {"AttributeName": "workspace_id", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "user_id", "AttributeType": "S"},
            {"AttributeName": "workspace_id", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    table.wait_until_exists()
    logger.info("Table %s created", table_name)
    return True
