"""
Domain service: enclosed area of a vertex ring on a spherical Earth.
"""
import math
from typing import Sequence

from geofence.domain.models import GeoPoint

EARTH_RADIUS_M = 6371000.0
SQUARE_METERS_PER_HECTARE = 10000.0


class GeodesicAreaCalculator:
    """
    Spherical polygon area by the line-integral approximation.

    Each edge contributes (lng2 - lng1) * (2 + sin(lat1) + sin(lat2)) in
    radians; the absolute sum scaled by R² / 2 is the area in m². Valid for
    rings that neither enclose a pole nor cross the antimeridian. The result
    does not depend on winding order or on which vertex comes first.
    """

    def __init__(self, radius_m: float = EARTH_RADIUS_M):
        self.radius_m = radius_m

    def area_square_meters(self, points: Sequence[GeoPoint]) -> float:
        n = len(points)
        if n < 3:
            return 0.0

        total = 0.0
        for i in range(n):
            a = points[i]
            b = points[(i + 1) % n]
            lat1 = math.radians(a.lat)
            lat2 = math.radians(b.lat)
            lng1 = math.radians(a.lng)
            lng2 = math.radians(b.lng)
            total += (lng2 - lng1) * (2 + math.sin(lat1) + math.sin(lat2))

        return abs(total * self.radius_m * self.radius_m / 2)

    def area_hectares(self, points: Sequence[GeoPoint]) -> float:
        """
        Area enclosed by the ring in hectares.

        Args:
            points: Vertex sequence (closing edge implied)

        Returns:
            Non-negative area; 0.0 for fewer than 3 vertices
        """
        return self.area_square_meters(points) / SQUARE_METERS_PER_HECTARE
