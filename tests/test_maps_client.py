"""Tests for the Google Distance Matrix client."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from appointment_routing.services.maps_client import (
    DISTANCE_MATRIX_PATH,
    MapsAPIError,
    MapsClient,
)


def _matrix(element: dict, status: str = "OK") -> dict:
    return {"status": status, "rows": [{"elements": [element]}]}


@pytest.fixture
def client():
    return MapsClient(api_key="test-key", base_url="https://maps.test")


class TestDrivingDistance:
    @pytest.mark.asyncio
    async def test_returns_meters(self, client, mock_response):
        data = _matrix({"status": "OK", "distance": {"value": 5123, "text": "5.1 km"}})
        with patch.object(
            client._client, "get", new=AsyncMock(return_value=mock_response(data)),
        ) as mock_get:
            assert await client.driving_distance("10001", "10002") == 5123

        args, kwargs = mock_get.call_args
        assert args == (DISTANCE_MATRIX_PATH,)
        assert kwargs["params"] == {
            "origins": "10001",
            "destinations": "10002",
            "mode": "driving",
            "key": "test-key",
        }

    @pytest.mark.asyncio
    async def test_zero_distance_is_a_real_distance(self, client, mock_response):
        data = _matrix({"status": "OK", "distance": {"value": 0}})
        with patch.object(client._client, "get", new=AsyncMock(return_value=mock_response(data))):
            assert await client.driving_distance("10001", "10001") == 0

    @pytest.mark.asyncio
    async def test_unroutable_element_is_unknown(self, client, mock_response):
        data = _matrix({"status": "ZERO_RESULTS"})
        with patch.object(client._client, "get", new=AsyncMock(return_value=mock_response(data))):
            assert await client.driving_distance("10001", "99999") is None

    @pytest.mark.asyncio
    async def test_top_level_error_status_is_unknown(self, client, mock_response):
        data = {"status": "REQUEST_DENIED", "error_message": "bad key", "rows": []}
        with patch.object(client._client, "get", new=AsyncMock(return_value=mock_response(data))):
            assert await client.driving_distance("10001", "10002") is None

    @pytest.mark.asyncio
    async def test_empty_rows_is_unknown(self, client, mock_response):
        data = {"status": "OK", "rows": []}
        with patch.object(client._client, "get", new=AsyncMock(return_value=mock_response(data))):
            assert await client.driving_distance("10001", "10002") is None


class TestFailures:
    @pytest.mark.asyncio
    async def test_timeout_raises(self, client):
        with patch.object(
            client._client, "get", new=AsyncMock(side_effect=httpx.ConnectTimeout("slow")),
        ):
            with pytest.raises(MapsAPIError):
                await client.driving_distance("10001", "10002")

    @pytest.mark.asyncio
    async def test_http_error_status_raises(self, client, mock_response):
        with patch.object(
            client._client, "get", new=AsyncMock(return_value=mock_response({}, 500)),
        ):
            with pytest.raises(MapsAPIError) as exc_info:
                await client.driving_distance("10001", "10002")
        assert exc_info.value.status_code == 500


class TestMalformedPayloads:
    @pytest.mark.asyncio
    async def test_non_numeric_distance_is_unknown(self, client, mock_response):
        data = _matrix({"status": "OK", "distance": {"value": "n/a"}})
        with patch.object(client._client, "get", new=AsyncMock(return_value=mock_response(data))):
            assert await client.driving_distance("10001", "10002") is None

    @pytest.mark.asyncio
    async def test_distance_not_an_object_is_unknown(self, client, mock_response):
        data = _matrix({"status": "OK", "distance": 4200})
        with patch.object(client._client, "get", new=AsyncMock(return_value=mock_response(data))):
            assert await client.driving_distance("10001", "10002") is None

    @pytest.mark.asyncio
    async def test_element_not_an_object_is_unknown(self, client, mock_response):
        data = {"status": "OK", "rows": [{"elements": ["OK"]}]}
        with patch.object(client._client, "get", new=AsyncMock(return_value=mock_response(data))):
            assert await client.driving_distance("10001", "10002") is None

    @pytest.mark.asyncio
    async def test_json_array_body_raises(self, client, mock_response):
        with patch.object(
            client._client, "get", new=AsyncMock(return_value=mock_response(["OK"])),
        ):
            with pytest.raises(MapsAPIError):
                await client.driving_distance("10001", "10002")
