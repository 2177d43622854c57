"""
Ellipsoidal geodesy utilities (WGS-84) for reference measurements.
"""
from typing import Sequence
from pyproj import Geod

from geofence.domain.models import GeoPoint

# Created once and reused
WGS84 = Geod(ellps="WGS84")


def ellipsoidal_area_hectares(points: Sequence[GeoPoint]) -> float:
    """
    Area of a vertex ring on the WGS-84 ellipsoid.

    Reported next to the spherical area as an independent reference.

    Args:
        points: Vertex sequence (closing edge implied)

    Returns:
        Non-negative area in hectares; 0.0 for fewer than 3 vertices
    """
    if len(points) < 3:
        return 0.0

    lons = [p.lng for p in points]
    lats = [p.lat for p in points]
    area_m2, _ = WGS84.polygon_area_perimeter(lons, lats)
    return abs(area_m2) / 10000.0

