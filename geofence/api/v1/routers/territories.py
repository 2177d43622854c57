"""
API router for saved territories.
"""
from fastapi import APIRouter, Path, status
from typing import Annotated, List

from geofence.api.dependencies import HeatSurfaceServiceDep, TerritoryServiceDep
from geofence.api.v1.models.requests import (
    CreateTerritoryRequest,
    UpdateTerritoryRequest,
    VertexRequest,
)
from geofence.api.v1.models.responses import (
    SessionResponse,
    TerritoryResponse,
    TerritoryTemperatureResponse,
)
from geofence.domain.models import GeoPoint
from geofence.services.application.territory_service import TerritoryDetails


router = APIRouter(
    prefix="/territories",
    tags=["territories"],
)

TerritoryId = Annotated[str, Path(description="Territory identifier")]


@router.get(
    "",
    response_model=List[TerritoryResponse],
    summary="List saved territories",
)
async def list_territories(territory_service: TerritoryServiceDep) -> List[TerritoryResponse]:
    return [
        TerritoryResponse.from_territory(t)
        for t in territory_service.list_territories()
    ]


@router.post(
    "",
    response_model=TerritoryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save a finished outline",
    responses={
        400: {"description": "Malformed points"},
        409: {"description": "Fewer than 3 vertices or crossing edges"},
    },
)
async def create_territory(
    request: CreateTerritoryRequest,
    territory_service: TerritoryServiceDep,
) -> TerritoryResponse:
    points = [GeoPoint.from_pair(pair) for pair in request.points]
    details = TerritoryDetails(**request.model_dump(exclude={"points"}))
    territory = territory_service.create_territory(points, details)
    return TerritoryResponse.from_territory(territory)


@router.get(
    "/{territory_id}",
    response_model=TerritoryResponse,
    summary="Get a territory",
    responses={404: {"description": "Territory not found"}},
)
async def get_territory(
    territory_id: TerritoryId,
    territory_service: TerritoryServiceDep,
) -> TerritoryResponse:
    return TerritoryResponse.from_territory(territory_service.get_territory(territory_id))


@router.patch(
    "/{territory_id}",
    response_model=TerritoryResponse,
    summary="Update territory metadata",
    responses={404: {"description": "Territory not found"}},
)
async def update_territory(
    territory_id: TerritoryId,
    request: UpdateTerritoryRequest,
    territory_service: TerritoryServiceDep,
) -> TerritoryResponse:
    territory = territory_service.update_details(
        territory_id, **request.model_dump(exclude_unset=True)
    )
    return TerritoryResponse.from_territory(territory)


@router.delete(
    "/{territory_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a territory",
    responses={404: {"description": "Territory not found"}},
)
async def delete_territory(
    territory_id: TerritoryId,
    territory_service: TerritoryServiceDep,
) -> None:
    territory_service.delete_territory(territory_id)


@router.put(
    "/{territory_id}/points/{index}",
    response_model=TerritoryResponse,
    summary="Drag one vertex of a saved territory",
    responses={
        400: {"description": "Vertex index out of range"},
        404: {"description": "Territory not found"},
        409: {"description": "The moved outline would cross itself"},
    },
)
async def move_territory_vertex(
    territory_id: TerritoryId,
    index: Annotated[int, Path(ge=0)],
    vertex: VertexRequest,
    territory_service: TerritoryServiceDep,
) -> TerritoryResponse:
    territory = territory_service.move_territory_vertex(
        territory_id, index, vertex.to_point()
    )
    return TerritoryResponse.from_territory(territory)


@router.post(
    "/{territory_id}/edit",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open an editing session on a saved territory",
    responses={404: {"description": "Territory not found"}},
)
async def edit_territory(
    territory_id: TerritoryId,
    territory_service: TerritoryServiceDep,
) -> SessionResponse:
    session_id, session = territory_service.open_editing_session(territory_id)
    return SessionResponse.from_session(session_id, session)


@router.post(
    "/{territory_id}/plan",
    response_model=TerritoryResponse,
    summary="Generate a weekly crop plan",
    description="Returns the stored plan if one exists, otherwise asks the plan generator.",
    responses={
        400: {"description": "Crop or planting date missing"},
        404: {"description": "Territory not found"},
        502: {"description": "Plan generator failure"},
    },
)
async def generate_plan(
    territory_id: TerritoryId,
    territory_service: TerritoryServiceDep,
) -> TerritoryResponse:
    territory = await territory_service.ensure_plan(territory_id)
    return TerritoryResponse.from_territory(territory)


@router.get(
    "/{territory_id}/temperature",
    response_model=TerritoryTemperatureResponse,
    summary="Current temperature near a territory",
    responses={404: {"description": "Territory not found"}},
)
async def territory_temperature(
    territory_id: TerritoryId,
    territory_service: TerritoryServiceDep,
    heat_surface_service: HeatSurfaceServiceDep,
) -> TerritoryTemperatureResponse:
    territory = territory_service.get_territory(territory_id)
    return TerritoryTemperatureResponse(
        territory_id=territory_id,
        temperature=heat_surface_service.temperature_for(territory),
    )
