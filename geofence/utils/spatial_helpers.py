"""
Spatial analysis helper functions.

Provides utilities for:
- Orientation and segment crossing tests
- KD-Tree spatial indexing over sample locations
- Polygon bounds and centre
"""
from typing import Sequence
import numpy as np
from scipy.spatial import KDTree
from shapely.geometry import Polygon as ShapelyPolygon
import logging

logger = logging.getLogger(__name__)

Coordinate = Sequence[float]


def ccw(a: Coordinate, b: Coordinate, c: Coordinate) -> bool:
    """
    Strict counter-clockwise orientation test.

    Args:
        a: First point (lat, lng)
        b: Second point (lat, lng)
        c: Third point (lat, lng)

    Returns:
        True if a -> b -> c turns counter-clockwise; False for clockwise
        and for collinear points
    """
    return (c[1] - a[1]) * (b[0] - a[0]) > (b[1] - a[1]) * (c[0] - a[0])


def segments_cross(
    p1: Coordinate,
    p2: Coordinate,
    p3: Coordinate,
    p4: Coordinate,
) -> bool:
    """
    Check whether segment p1-p2 properly crosses segment p3-p4.

    The endpoints of each segment must lie on opposite sides of the other
    segment's line. Because the orientation test is strict, touching,
    collinear-overlapping and zero-length segments never count as crossing.

    Args:
        p1: Start of the first segment
        p2: End of the first segment
        p3: Start of the second segment
        p4: End of the second segment

    Returns:
        True if the segments cross
    """
    return (
        ccw(p1, p3, p4) != ccw(p2, p3, p4)
        and ccw(p1, p2, p3) != ccw(p1, p2, p4)
    )


def build_kdtree(coordinates: list[tuple[float, float]]) -> KDTree:
    """
    Build a KD-Tree for efficient nearest-neighbour queries.

    Args:
        coordinates: List of (lat, lng) coordinate tuples

    Returns:
        KDTree instance
    """
    points = np.array(coordinates, dtype=float)
    return KDTree(points)


def nearest_index(kdtree: KDTree, point: tuple[float, float]) -> int:
    """
    Index of the stored coordinate closest to a point.

    Args:
        kdtree: KDTree built from coordinates
        point: (lat, lng) query point

    Returns:
        Index into the coordinates the tree was built from
    """
    _, idx = kdtree.query(point)
    return int(idx)


def vertex_centre(coordinates: list[tuple[float, float]]) -> tuple[float, float]:
    """
    Mean of the vertex coordinates.

    This is not the area centroid; it is the reference point used to look up
    conditions for a whole territory.

    Args:
        coordinates: List of (lat, lng) tuples, must not be empty

    Returns:
        (lat, lng) mean
    """
    if not coordinates:
        raise ValueError("Coordinates list cannot be empty")
    points = np.array(coordinates, dtype=float)
    lat, lng = points.mean(axis=0)
    return (float(lat), float(lng))


def polygon_bounds(coordinates: list[tuple[float, float]]) -> tuple[float, float, float, float]:
    """
    Bounding box of a vertex ring.

    Args:
        coordinates: List of (lat, lng) tuples, at least 3

    Returns:
        (south, west, north, east) in degrees
    """
    # shapely works in (x, y) = (lng, lat)
    ring = ShapelyPolygon([(lng, lat) for lat, lng in coordinates])
    min_x, min_y, max_x, max_y = ring.bounds
    return (min_y, min_x, max_y, max_x)
