"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- Sample outlines (square, bowtie, triangle)
- Sample temperature batches
- Fake sample fetcher
- Territory store and services
- FastAPI test client with fresh services
"""
import pytest
from typing import Optional
from fastapi.testclient import TestClient

from geofence.main import app
from geofence.api.dependencies import get_heat_surface_service, get_territory_service
from geofence.domain.models import GeoPoint, Sample
from geofence.infrastructure.territory_store import InMemoryBackend, TerritoryStore
from geofence.services.application.heat_surface_service import (
    HeatSurfaceService,
    SampleFeed,
)
from geofence.services.application.territory_service import TerritoryService


# ============================================================
# Sample Outline Fixtures
# ============================================================

def points_of(pairs) -> list[GeoPoint]:
    return [GeoPoint(lat=lat, lng=lng) for lat, lng in pairs]


@pytest.fixture
def unit_square() -> list[GeoPoint]:
    """1° x 1° square at the equator, in ring order."""
    return points_of([(0, 0), (0, 1), (1, 1), (1, 0)])


@pytest.fixture
def bowtie() -> list[GeoPoint]:
    """The unit square with its 2nd and 3rd vertices swapped."""
    return points_of([(0, 0), (1, 1), (0, 1), (1, 0)])


@pytest.fixture
def triangle() -> list[GeoPoint]:
    return points_of([(0, 0), (0, 1), (1, 0)])


@pytest.fixture
def field_outline() -> list[GeoPoint]:
    """Small realistic field (~150 m x 110 m)."""
    return points_of([
        (-32.3285, 18.8255),
        (-32.3285, 18.8270),
        (-32.3275, 18.8270),
        (-32.3275, 18.8255),
    ])


# ============================================================
# Sample Data Fixtures
# ============================================================

@pytest.fixture
def sample_batch() -> list[Sample]:
    return [
        Sample(point=GeoPoint(lat=51.51, lng=-0.13), value=12.5, location="London"),
        Sample(point=GeoPoint(lat=1.35, lng=103.82), value=31.0, location="Singapore"),
        Sample(point=GeoPoint(lat=64.13, lng=-21.94), value=-3.0, location="Reykjavik"),
    ]


class FakeFetcher:
    """Sample fetcher returning a fixed value, optionally failing some points."""

    def __init__(self, value: float = 20.0, fail_every: int = 0):
        self.value = value
        self.fail_every = fail_every
        self.calls = 0

    async def fetch_sample(self, lat: float, lng: float, location: Optional[str] = None):
        self.calls += 1
        if self.fail_every and self.calls % self.fail_every == 0:
            return None
        return Sample(point=GeoPoint(lat=lat, lng=lng), value=self.value, location=location)


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()


# ============================================================
# Service Fixtures
# ============================================================

@pytest.fixture
def store() -> TerritoryStore:
    return TerritoryStore(InMemoryBackend())


@pytest.fixture
def territory_service(store) -> TerritoryService:
    return TerritoryService(store=store)


@pytest.fixture
def heat_surface_service(fake_fetcher) -> HeatSurfaceService:
    feed = SampleFeed(
        fetcher=fake_fetcher,
        query_points=[(0.0, 0.0, "origin"), (10.0, 10.0, "ne"), (-10.0, -10.0, "sw")],
        batch_pause=0,
    )
    return HeatSurfaceService(feed=feed, debounce_seconds=0.01)


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def test_client(territory_service, heat_surface_service) -> TestClient:
    """Synchronous test client backed by fresh, isolated services."""
    app.dependency_overrides[get_territory_service] = lambda: territory_service
    app.dependency_overrides[get_heat_surface_service] = lambda: heat_surface_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
