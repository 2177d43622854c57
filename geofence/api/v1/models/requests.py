"""
API request models using Pydantic.
"""
from datetime import date
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from geofence.domain.models import GeoPoint


class VertexRequest(BaseModel):
    """A vertex to add or a new position for an existing one."""
    lat: float = Field(ge=-90.0, le=90.0, description="Latitude in degrees")
    lng: float = Field(ge=-180.0, le=180.0, description="Longitude in degrees")

    def to_point(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lng=self.lng)


class TerritoryDetailsRequest(BaseModel):
    """Metadata supplied when a drawing is saved."""
    name: str = Field(min_length=1, description="Territory name")
    crop: str = Field(min_length=1, description="Crop grown on the territory")
    planting_date: Optional[date] = None
    soil_type: Optional[str] = None


class CreateTerritoryRequest(TerritoryDetailsRequest):
    """A finished outline plus its metadata."""
    points: List[List[float]] = Field(
        description="Vertices as [lat, lng] pairs, closing vertex not repeated"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "points": [[-32.3285, 18.8255], [-32.3285, 18.8270], [-32.3275, 18.8270]],
                "name": "North block",
                "crop": "Wheat",
                "planting_date": "2024-09-01",
                "soil_type": "Loam",
            }
        }


class UpdateTerritoryRequest(BaseModel):
    """Metadata changes; omitted fields stay as they are."""
    name: Optional[str] = Field(default=None, min_length=1)
    crop: Optional[str] = None
    planting_date: Optional[date] = None
    soil_type: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_null(cls, value: Optional[str]) -> str:
        # Only runs for a name that was sent; null would clear a required field
        if value is None:
            raise ValueError("name cannot be null")
        return value
