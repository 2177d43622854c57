"""
API router for the temperature heat surface overlay.
"""
from fastapi import APIRouter, HTTPException, Query, Request, Response, status
from pydantic import BaseModel, Field, model_validator
from typing import Annotated, Optional

from geofence.api.dependencies import HeatSurfaceServiceDep
from geofence.api.v1.models.responses import RefreshResponse
from geofence.config import settings
from geofence.domain.models import TemperatureStats, ViewportBounds
from geofence.middleware.rate_limit import DEFAULT_LIMIT, limiter
from geofence.services.domain.heat_surface import RasterBuffer


router = APIRouter(
    prefix="/heat-surface",
    tags=["heat-surface"],
)

PNG_MEDIA_TYPE = "image/png"


class ViewportRequest(BaseModel):
    """Visible map extent and canvas size."""
    bounds: ViewportBounds
    width: int = Field(gt=0, description="Raster width in pixels")
    height: int = Field(gt=0, description="Raster height in pixels")

    @model_validator(mode="after")
    def _check_size(self) -> "ViewportRequest":
        if self.width * self.height > settings.heat_surface_max_pixels:
            raise ValueError(
                f"Raster of {self.width}x{self.height} exceeds the limit of "
                f"{settings.heat_surface_max_pixels} pixels"
            )
        return self


def _png_response(surface: RasterBuffer) -> Response:
    b = surface.bounds
    return Response(
        content=surface.to_png(),
        media_type=PNG_MEDIA_TYPE,
        headers={
            # south,west,north,east as expected by image overlays
            "X-Bounds": f"{b.south},{b.west},{b.north},{b.east}",
        },
    )


@router.get(
    "",
    summary="Render the heat surface for a viewport",
    description="""
    Interpolates the current sample batch over every pixel of a raster
    covering the requested bounds and returns it as a PNG. Pixels with no
    nearby sample are fully transparent. The geographic bounds of the image
    are returned in the `X-Bounds` header as `south,west,north,east`.
    """,
    response_class=Response,
    responses={
        200: {"content": {PNG_MEDIA_TYPE: {}}, "description": "RGBA overlay"},
        400: {"description": "Invalid bounds or raster size"},
    },
)
async def render_heat_surface(
    heat_surface_service: HeatSurfaceServiceDep,
    north: Annotated[float, Query(ge=-90, le=90)] = 90.0,
    south: Annotated[float, Query(ge=-90, le=90)] = -90.0,
    east: Annotated[float, Query(ge=-180, le=180)] = 180.0,
    west: Annotated[float, Query(ge=-180, le=180)] = -180.0,
    width: Annotated[int, Query(gt=0)] = settings.heat_surface_default_width,
    height: Annotated[int, Query(gt=0)] = settings.heat_surface_default_height,
) -> Response:
    bounds = ViewportBounds(north=north, south=south, east=east, west=west)
    surface = heat_surface_service.render(bounds, width, height)
    return _png_response(surface)


@router.put(
    "/viewport",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Report a viewport change",
    description="Re-renders once the viewport has stopped changing; fetch the result from /current.",
)
async def update_viewport(
    request: ViewportRequest,
    heat_surface_service: HeatSurfaceServiceDep,
) -> dict:
    heat_surface_service.viewport_changed(request.bounds, request.width, request.height)
    return {"status": "scheduled"}


@router.get(
    "/current",
    summary="Latest debounced heat surface",
    response_class=Response,
    responses={
        200: {"content": {PNG_MEDIA_TYPE: {}}, "description": "RGBA overlay"},
        404: {"description": "No surface rendered yet"},
    },
)
async def current_heat_surface(heat_surface_service: HeatSurfaceServiceDep) -> Response:
    surface = heat_surface_service.current_surface
    if surface is None:
        raise HTTPException(status_code=404, detail="No heat surface rendered yet")
    return _png_response(surface)


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    summary="Fetch a new sample batch",
    responses={429: {"description": "Rate limit exceeded"}},
)
@limiter.limit(DEFAULT_LIMIT)
async def refresh_samples(
    request: Request,
    heat_surface_service: HeatSurfaceServiceDep,
) -> RefreshResponse:
    applied = await heat_surface_service.refresh_samples()
    return RefreshResponse(
        applied=applied is not None,
        sample_count=applied or 0,
    )


@router.get(
    "/stats",
    response_model=Optional[TemperatureStats],
    summary="Min / max / mean of the current sample batch",
)
async def heat_surface_stats(heat_surface_service: HeatSurfaceServiceDep) -> Optional[TemperatureStats]:
    return heat_surface_service.statistics()
