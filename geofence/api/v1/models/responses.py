"""
API response models using Pydantic.
"""
from datetime import date
from typing import List, Optional
from pydantic import BaseModel, Field

from geofence.domain.models import AIPlan, EditState, Territory
from geofence.services.domain.edit_session import PolygonEditSession
from geofence.utils.geo_projection import ellipsoidal_area_hectares
from geofence.utils.spatial_helpers import polygon_bounds


class EditStateResponse(BaseModel):
    """Live validity signal of a polygon being edited."""
    is_valid: bool = Field(description="At least 3 points and no crossing edges")
    area_hectares: float = Field(description="Spherical area of the current outline")
    vertex_count: int = Field(description="Number of vertices")

    @classmethod
    def from_state(cls, state: EditState) -> "EditStateResponse":
        return cls(**state.model_dump())


class SessionResponse(BaseModel):
    """An open edit session."""
    session_id: str
    mode: str
    territory_id: Optional[str] = None
    points: List[List[float]] = Field(description="Vertices as [lat, lng] pairs")
    state: EditStateResponse

    @classmethod
    def from_session(cls, session_id: str, session: PolygonEditSession) -> "SessionResponse":
        return cls(
            session_id=session_id,
            mode=session.mode.value,
            territory_id=session.territory_id,
            points=[[p.lat, p.lng] for p in session.points],
            state=EditStateResponse.from_state(session.state),
        )


class TerritoryResponse(BaseModel):
    """A saved territory."""
    id: str
    name: str
    points: List[List[float]] = Field(description="Vertices as [lat, lng] pairs")
    crop: Optional[str] = None
    planting_date: Optional[date] = None
    soil_type: Optional[str] = None
    area_hectares: float
    ellipsoidal_area_hectares: float = Field(
        description="WGS-84 ellipsoid area, for comparison with the spherical value"
    )
    bounds: List[float] = Field(
        description="[south, west, north, east] box for fitting the map to the territory"
    )
    ai_plan: Optional[AIPlan] = None

    class Config:
        json_schema_extra = {
            "example": {
                "id": "5f1c2a9e0b7d4c31a2e8f6b4d9c0a1e2",
                "name": "North block",
                "points": [[-32.3285, 18.8255], [-32.3285, 18.8270], [-32.3275, 18.8270]],
                "crop": "Wheat",
                "planting_date": "2024-09-01",
                "soil_type": "Loam",
                "area_hectares": 0.69,
                "ellipsoidal_area_hectares": 0.69,
                "bounds": [-32.3285, 18.8255, -32.3275, 18.827],
                "ai_plan": None,
            }
        }

    @classmethod
    def from_territory(cls, territory: Territory) -> "TerritoryResponse":
        return cls(
            id=territory.id,
            name=territory.name,
            points=territory.polygon.to_pairs(),
            crop=territory.crop,
            planting_date=territory.planting_date,
            soil_type=territory.soil_type,
            area_hectares=territory.area_hectares,
            ellipsoidal_area_hectares=ellipsoidal_area_hectares(territory.polygon.points),
            bounds=list(polygon_bounds(territory.polygon.to_pairs())),
            ai_plan=territory.ai_plan,
        )


class TerritoryTemperatureResponse(BaseModel):
    """Temperature near a territory."""
    territory_id: str
    temperature: Optional[float] = Field(
        description="Value of the sample nearest the territory centre, null without samples"
    )


class RefreshResponse(BaseModel):
    """Outcome of a sample refresh."""
    applied: bool = Field(description="False if a newer refresh superseded this one")
    sample_count: int
