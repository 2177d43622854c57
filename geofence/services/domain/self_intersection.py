"""
Domain service: simple-polygon validation.
"""
from typing import Sequence
import logging

from geofence.domain.models import GeoPoint
from geofence.utils.spatial_helpers import segments_cross

logger = logging.getLogger(__name__)


class SelfIntersectionValidator:
    """
    Decides whether a closed vertex ring is self-intersecting.

    Edge i runs from vertex i to vertex (i + 1) mod n. Every pair of
    non-adjacent edges is tested with the orientation-based crossing test,
    so the check is O(n²); territories are drawn by hand and stay small.

    Known limitation: collinear and coincident vertices are not special-cased.
    Since orientation is strict, touching or overlapping collinear edges and
    zero-length edges (repeated consecutive vertices) are reported as
    non-intersecting.
    """

    def is_self_intersecting(self, points: Sequence[GeoPoint]) -> bool:
        """
        Check a vertex ring for crossing edges.

        Args:
            points: Vertex sequence, closing edge implied

        Returns:
            True as soon as any pair of non-adjacent edges crosses
        """
        n = len(points)
        # A triangle can never self-intersect
        if n < 4:
            return False

        coords = [p.as_pair() for p in points]
        for i in range(n):
            for j in range(i + 2, n):
                # Edge 0 and edge n-1 share vertex 0
                if i == 0 and j == n - 1:
                    continue

                if segments_cross(
                    coords[i], coords[(i + 1) % n],
                    coords[j], coords[(j + 1) % n],
                ):
                    logger.debug(f"Edges {i} and {j} cross")
                    return True
        return False
