"""
Unit tests for the weather sample client and the plan generator client.

Tests cover:
- Successful responses
- Dropped samples on failure (never retried)
- Plan generator retry logic and error mapping
"""
import json
import pytest
import respx
import httpx
from datetime import date
from tenacity import wait_none

from geofence.domain.models import Polygon, Territory
from geofence.infrastructure.plan_client import ExternalAPIError, PlanServiceClient
from geofence.infrastructure.weather_client import WeatherAPIClient


WEATHER_BASE_URL = "https://weather.test"


@pytest.fixture
def territory() -> Territory:
    return Territory(
        id="t1",
        polygon=Polygon.from_pairs([[0, 0], [0, 1], [1, 1]]),
        name="North block",
        crop="wheat",
        planting_date=date(2024, 3, 1),
        soil_type="loam",
        area_hectares=6182.0,
    )


@pytest.fixture
def plan_payload() -> dict:
    return {
        "crop": "wheat",
        "territory": "North block",
        "planting_date": "2024-03-01",
        "harvest_date": "2024-07-15",
        "total_weeks": 20,
        "weekly_plans": [
            {"week": 1, "title": "Establishment", "tasks": ["Check emergence"]},
        ],
    }


@pytest.fixture
def no_retry_wait(monkeypatch):
    """Skip the exponential backoff between plan request attempts."""
    monkeypatch.setattr(PlanServiceClient._make_request.retry, "wait", wait_none())


# ============================================================
# Weather Client Tests
# ============================================================

class TestWeatherAPIClient:
    """Tests for single-point temperature fetches."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_sample_success(self):
        """Current temperature becomes a labelled sample."""
        route = respx.get(f"{WEATHER_BASE_URL}/v1/forecast").mock(
            return_value=httpx.Response(
                200,
                json={
                    "latitude": 51.5,
                    "longitude": -0.125,
                    "current": {"time": "2024-06-01T12:00", "temperature_2m": 18.3},
                },
            )
        )

        async with WeatherAPIClient(base_url=WEATHER_BASE_URL) as client:
            sample = await client.fetch_sample(51.51, -0.13, "London")

        assert sample.value == 18.3
        assert sample.location == "London"
        # Sample is placed at the requested point, not the model grid point
        assert sample.point.as_pair() == (51.51, -0.13)
        params = route.calls.last.request.url.params
        assert params["current"] == "temperature_2m"
        assert params["latitude"] == "51.51"

    @pytest.mark.asyncio
    @respx.mock
    async def test_server_error_is_dropped_without_retry(self):
        route = respx.get(f"{WEATHER_BASE_URL}/v1/forecast").mock(
            return_value=httpx.Response(500, json={"error": True})
        )

        async with WeatherAPIClient(base_url=WEATHER_BASE_URL) as client:
            sample = await client.fetch_sample(0.0, 0.0)

        assert sample is None
        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_connection_error_is_dropped(self):
        respx.get(f"{WEATHER_BASE_URL}/v1/forecast").mock(
            side_effect=httpx.ConnectError("unreachable")
        )

        async with WeatherAPIClient(base_url=WEATHER_BASE_URL) as client:
            assert await client.fetch_sample(0.0, 0.0) is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_missing_temperature(self):
        respx.get(f"{WEATHER_BASE_URL}/v1/forecast").mock(
            return_value=httpx.Response(200, json={"latitude": 0.0, "longitude": 0.0})
        )

        async with WeatherAPIClient(base_url=WEATHER_BASE_URL) as client:
            assert await client.fetch_sample(0.0, 0.0) is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_malformed_body(self):
        respx.get(f"{WEATHER_BASE_URL}/v1/forecast").mock(
            return_value=httpx.Response(200, content=b"<html>busy</html>")
        )

        async with WeatherAPIClient(base_url=WEATHER_BASE_URL) as client:
            assert await client.fetch_sample(0.0, 0.0) is None


# ============================================================
# Plan Client Tests
# ============================================================

class TestPlanServiceClient:
    """Tests for the weekly plan generator client."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_generate_plan_success(self, territory, plan_payload):
        client = PlanServiceClient()
        route = respx.post(f"{client.base_url}/v1/plans").mock(
            return_value=httpx.Response(200, json=plan_payload)
        )

        plan = await client.generate_plan(territory)

        assert plan.total_weeks == 20
        assert plan.weekly_plans[0].title == "Establishment"
        sent = json.loads(route.calls.last.request.content)
        assert sent["crop"] == "wheat"
        assert sent["planting_date"] == "2024-03-01"
        assert sent["area_hectares"] == 6182.0

        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_client_error_not_retried(self, territory):
        """4xx responses surface immediately with their status code."""
        client = PlanServiceClient()
        route = respx.post(f"{client.base_url}/v1/plans").mock(
            return_value=httpx.Response(422, json={"detail": "unknown crop"})
        )

        with pytest.raises(ExternalAPIError) as exc_info:
            await client.generate_plan(territory)

        assert exc_info.value.status_code == 422
        assert route.call_count == 1

        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_server_error_retried(self, territory, plan_payload, no_retry_wait):
        """5xx responses are retried and can recover."""
        client = PlanServiceClient()
        route = respx.post(f"{client.base_url}/v1/plans").mock(
            side_effect=[
                httpx.Response(503, json={"error": "busy"}),
                httpx.Response(200, json=plan_payload),
            ]
        )

        plan = await client.generate_plan(territory)

        assert plan.crop == "wheat"
        assert route.call_count == 2

        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_retries_exhausted(self, territory, no_retry_wait):
        client = PlanServiceClient()
        route = respx.post(f"{client.base_url}/v1/plans").mock(
            return_value=httpx.Response(500, json={"error": "down"})
        )

        with pytest.raises(ExternalAPIError) as exc_info:
            await client.generate_plan(territory)

        assert exc_info.value.status_code == 502
        assert route.call_count == 3

        await client.close()

    @pytest.mark.asyncio
    async def test_plan_requires_crop_and_date(self, territory):
        client = PlanServiceClient()

        with pytest.raises(ValueError):
            await client.generate_plan(territory.model_copy(update={"planting_date": None}))

        await client.close()
