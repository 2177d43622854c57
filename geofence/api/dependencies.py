"""
Dependency injection for FastAPI.
"""
from typing import Annotated, Optional
from fastapi import Depends

from geofence.infrastructure.plan_client import get_plan_client
from geofence.infrastructure.territory_store import get_territory_store
from geofence.infrastructure.weather_client import get_weather_client
from geofence.services.application.heat_surface_service import (
    HeatSurfaceService,
    SampleFeed,
)
from geofence.services.application.territory_service import TerritoryService


# Services hold open edit sessions and the current sample grid,
# so they live for the whole process.
_territory_service: Optional[TerritoryService] = None
_heat_surface_service: Optional[HeatSurfaceService] = None


def get_territory_service() -> TerritoryService:
    """
    Dependency factory for TerritoryService.

    Returns:
        Process-wide TerritoryService instance
    """
    global _territory_service
    if _territory_service is None:
        _territory_service = TerritoryService(
            store=get_territory_store(),
            plan_client=get_plan_client(),
        )
    return _territory_service


def get_heat_surface_service() -> HeatSurfaceService:
    """
    Dependency factory for HeatSurfaceService.

    Returns:
        Process-wide HeatSurfaceService instance
    """
    global _heat_surface_service
    if _heat_surface_service is None:
        _heat_surface_service = HeatSurfaceService(
            feed=SampleFeed(fetcher=get_weather_client()),
        )
    return _heat_surface_service


# Type aliases for cleaner route signatures
TerritoryServiceDep = Annotated[TerritoryService, Depends(get_territory_service)]
HeatSurfaceServiceDep = Annotated[HeatSurfaceService, Depends(get_heat_surface_service)]
