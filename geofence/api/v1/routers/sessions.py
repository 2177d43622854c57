"""
API router for polygon edit sessions.

A client opens a session, streams vertex edits into it (every response
carries the refreshed validity and area) and finally commits or cancels it.
"""
from fastapi import APIRouter, Path, status
from typing import Annotated

from geofence.api.dependencies import TerritoryServiceDep
from geofence.api.v1.models.requests import TerritoryDetailsRequest, VertexRequest
from geofence.api.v1.models.responses import (
    EditStateResponse,
    SessionResponse,
    TerritoryResponse,
)
from geofence.services.application.territory_service import TerritoryDetails


router = APIRouter(
    prefix="/sessions",
    tags=["sessions"],
)

SessionId = Annotated[str, Path(description="Edit session identifier")]
VertexIndex = Annotated[int, Path(ge=0, description="Zero-based vertex index")]


@router.post(
    "",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start drawing a new territory",
)
async def open_session(territory_service: TerritoryServiceDep) -> SessionResponse:
    session_id, session = territory_service.open_drawing_session()
    return SessionResponse.from_session(session_id, session)


@router.get(
    "/{session_id}",
    response_model=SessionResponse,
    summary="Get session vertices and live validity",
    responses={404: {"description": "Session not found"}},
)
async def get_session(
    session_id: SessionId,
    territory_service: TerritoryServiceDep,
) -> SessionResponse:
    session = territory_service.get_session(session_id)
    return SessionResponse.from_session(session_id, session)


@router.post(
    "/{session_id}/vertices",
    response_model=EditStateResponse,
    summary="Append a vertex (drawing sessions only)",
    responses={
        404: {"description": "Session not found"},
        409: {"description": "Session is not drawing"},
    },
)
async def add_vertex(
    session_id: SessionId,
    vertex: VertexRequest,
    territory_service: TerritoryServiceDep,
) -> EditStateResponse:
    state = territory_service.add_vertex(session_id, vertex.to_point())
    return EditStateResponse.from_state(state)


@router.put(
    "/{session_id}/vertices/{index}",
    response_model=EditStateResponse,
    summary="Move a vertex",
    responses={
        400: {"description": "Vertex index out of range"},
        404: {"description": "Session not found"},
    },
)
async def move_vertex(
    session_id: SessionId,
    index: VertexIndex,
    vertex: VertexRequest,
    territory_service: TerritoryServiceDep,
) -> EditStateResponse:
    state = territory_service.move_vertex(session_id, index, vertex.to_point())
    return EditStateResponse.from_state(state)


@router.delete(
    "/{session_id}/vertices/{index}",
    response_model=EditStateResponse,
    summary="Remove a vertex",
    responses={
        400: {"description": "Vertex index out of range"},
        404: {"description": "Session not found"},
        409: {"description": "Removal would leave fewer than 3 vertices"},
    },
)
async def remove_vertex(
    session_id: SessionId,
    index: VertexIndex,
    territory_service: TerritoryServiceDep,
) -> EditStateResponse:
    state = territory_service.remove_vertex(session_id, index)
    return EditStateResponse.from_state(state)


@router.post(
    "/{session_id}/finalize",
    response_model=TerritoryResponse,
    summary="Finish the outline and save the territory",
    description="""
    Drawing sessions create a new territory and require a name and crop.
    Editing sessions replace the outline of the territory they were opened on;
    the body is ignored for them.
    """,
    responses={
        404: {"description": "Session not found"},
        409: {"description": "Fewer than 3 vertices or crossing edges"},
    },
)
async def finalize_session(
    session_id: SessionId,
    territory_service: TerritoryServiceDep,
    details: TerritoryDetailsRequest | None = None,
) -> TerritoryResponse:
    territory = territory_service.commit_session(
        session_id,
        TerritoryDetails(**details.model_dump()) if details else None,
    )
    return TerritoryResponse.from_territory(territory)


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Cancel a session and discard its vertices",
)
async def cancel_session(
    session_id: SessionId,
    territory_service: TerritoryServiceDep,
) -> None:
    territory_service.cancel_session(session_id)
