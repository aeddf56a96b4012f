"""Tests for workspaces table creation and the CLI --create-table path."""

from __future__ import annotations

import sys
from unittest.mock import MagicMock, patch

from appointment_routing import main as cli
from appointment_routing.services import dynamo_setup


def _resource(existing: list[str]) -> MagicMock:
    resource = MagicMock()
    tables = []
    for name in existing:
        table = MagicMock()
        table.name = name
        tables.append(table)
    resource.tables.all.return_value = tables
    return resource


class TestCreateTable:
    def test_creates_composite_key_table(self):
        resource = _resource([])
        with patch.object(dynamo_setup.boto3, "resource", return_value=resource) as mock_res:
            created = dynamo_setup.create_table(
                "ws-table", region_name="eu-west-1", endpoint_url="http://localhost:8001",
            )

        assert created is True
        mock_res.assert_called_once_with(
            "dynamodb", region_name="eu-west-1", endpoint_url="http://localhost:8001",
        )
        kwargs = resource.create_table.call_args.kwargs
        assert kwargs["TableName"] == "ws-table"
        assert kwargs["KeySchema"] == [
            {"AttributeName": "user_id", "KeyType": "HASH"},
            {"AttributeName": "workspace_id", "KeyType": "RANGE"},
        ]
        resource.create_table.return_value.wait_until_exists.assert_called_once()

    def test_existing_table_is_left_alone(self):
        resource = _resource(["ws-table"])
        with patch.object(dynamo_setup.boto3, "resource", return_value=resource):
            assert dynamo_setup.create_table("ws-table", region_name="us-east-1") is False
        resource.create_table.assert_not_called()

    def test_falls_back_to_environment(self, monkeypatch):
        monkeypatch.setenv("WORKSPACES_TABLE", "env-table")
        monkeypatch.setenv("AWS_REGION", "ap-south-1")
        monkeypatch.delenv("DYNAMODB_ENDPOINT", raising=False)
        resource = _resource([])
        with patch.object(dynamo_setup.boto3, "resource", return_value=resource) as mock_res:
            dynamo_setup.create_table()

        mock_res.assert_called_once_with("dynamodb", region_name="ap-south-1", endpoint_url=None)
        assert resource.create_table.call_args.kwargs["TableName"] == "env-table"


class TestCreateTableCommand:
    def test_does_not_need_api_secrets(self, monkeypatch):
        monkeypatch.delenv("GHL_API_TOKEN", raising=False)
        monkeypatch.delenv("GOOGLE_MAPS_API_KEY", raising=False)
        monkeypatch.setattr(sys, "argv", ["appointment-routing", "--create-table"])

        with patch.dict(sys.modules), \
             patch.object(cli, "load_dotenv"), \
             patch.object(dynamo_setup, "create_table", return_value=True) as mock_create:
            sys.modules.pop("appointment_routing.config", None)
            exit_code = cli.main()
            config_loaded = "appointment_routing.config" in sys.modules

        assert exit_code == 0
        mock_create.assert_called_once_with()
        assert not config_loaded
