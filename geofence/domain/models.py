"""
Domain models for territories, vertices and temperature samples.

These models represent the core domain entities and should be independent
of any infrastructure concerns (API clients, storage backends, etc.).
"""
from datetime import date
from typing import List, Optional, Sequence, Tuple
from pydantic import BaseModel, Field, model_validator


class GeoPoint(BaseModel):
    """A single vertex or sample location in degrees."""
    lat: float = Field(ge=-90.0, le=90.0, description="Latitude in degrees")
    lng: float = Field(ge=-180.0, le=180.0, description="Longitude in degrees")

    class Config:
        frozen = True

    @classmethod
    def from_pair(cls, pair: Sequence[float]) -> "GeoPoint":
        lat, lng = pair
        return cls(lat=lat, lng=lng)

    def as_pair(self) -> Tuple[float, float]:
        return (self.lat, self.lng)


class Polygon(BaseModel):
    """
    Ordered vertex ring.

    The last vertex implicitly connects back to the first; the closing
    vertex is never stored twice.
    """
    points: Tuple[GeoPoint, ...] = ()

    class Config:
        frozen = True

    @classmethod
    def from_pairs(cls, pairs: Sequence[Sequence[float]]) -> "Polygon":
        return cls(points=tuple(GeoPoint.from_pair(p) for p in pairs))

    def to_pairs(self) -> List[List[float]]:
        return [[p.lat, p.lng] for p in self.points]

    def __len__(self) -> int:
        return len(self.points)


class Sample(BaseModel):
    """Externally sourced measurement at a point (e.g. air temperature in °C)."""
    point: GeoPoint
    value: float
    location: Optional[str] = None

    class Config:
        frozen = True


class WeekPlan(BaseModel):
    """One week of an AI-generated crop plan."""
    week: int
    title: str
    tasks: List[str] = Field(default_factory=list)
    irrigation: str = ""
    fertilizer: str = ""
    monitoring: str = ""


class AIPlan(BaseModel):
    """Structured weekly plan returned by the plan generator (opaque to the core)."""
    crop: str
    territory: str
    planting_date: str
    harvest_date: str
    total_weeks: int
    weekly_plans: List[WeekPlan] = Field(default_factory=list)


class Territory(BaseModel):
    """A saved, named field boundary with its derived area."""
    id: str
    polygon: Polygon
    name: str
    crop: Optional[str] = None
    planting_date: Optional[date] = None
    soil_type: Optional[str] = None
    area_hectares: float = Field(
        default=0.0,
        description="Derived spherical area, recomputed on every polygon edit"
    )
    ai_plan: Optional[AIPlan] = None


class EditState(BaseModel):
    """Live validity signal of an in-progress or edited polygon."""
    is_valid: bool = False
    area_hectares: float = 0.0
    vertex_count: int = 0

    class Config:
        frozen = True


class ViewportBounds(BaseModel):
    """Geographic extent of the visible map, in degrees."""
    north: float = Field(ge=-90.0, le=90.0)
    south: float = Field(ge=-90.0, le=90.0)
    east: float = Field(ge=-180.0, le=180.0)
    west: float = Field(ge=-180.0, le=180.0)

    class Config:
        frozen = True

    @model_validator(mode="after")
    def _check_extent(self) -> "ViewportBounds":
        if self.north <= self.south:
            raise ValueError("north must be greater than south")
        if self.east <= self.west:
            raise ValueError("east must be greater than west (antimeridian spans are not supported)")
        return self

    @classmethod
    def world(cls) -> "ViewportBounds":
        return cls(north=90.0, south=-90.0, east=180.0, west=-180.0)


class TemperatureStats(BaseModel):
    """Summary of the current sample batch."""
    count: int
    min: float
    max: float
    avg: float
