"""
Domain service: inverse-distance interpolation over a coarse lattice.

Samples are snapped to a fixed grid_size x grid_size lattice spanning the
whole globe, so a query touches at most (2 * radius + 1)² cells no matter
how many samples were loaded.
"""
import math
from typing import Iterable, Optional
import logging
import numpy as np

from geofence.config import settings
from geofence.domain.models import Sample

logger = logging.getLogger(__name__)


class SpatialInterpolator:
    """
    Lattice-snapped inverse-distance weighting.

    Grid space: gx grows with longitude from 0 at -180° to grid_size at
    180°, gy grows southwards from 0 at 90° to grid_size at -90°.
    """

    def __init__(
        self,
        grid_size: Optional[int] = None,
        fallback_radius: Optional[int] = None,
        epsilon: Optional[float] = None,
        fallback_epsilon: Optional[float] = None,
    ):
        self.grid_size = grid_size or settings.interpolation_grid_size
        self.fallback_radius = (
            settings.interpolation_fallback_radius
            if fallback_radius is None else fallback_radius
        )
        self.epsilon = settings.interpolation_epsilon if epsilon is None else epsilon
        self.fallback_epsilon = (
            settings.interpolation_fallback_epsilon
            if fallback_epsilon is None else fallback_epsilon
        )

        self.cells: dict[tuple[int, int], float] = {}
        # Dense copy of cells, padded so neighbourhood lookups never go out of range
        self._pad = self.fallback_radius + 2
        size = self.grid_size + 2 * self._pad
        self._dense = np.full((size, size), np.nan)

    # ------------------------------------------------------------
    # Build
    # ------------------------------------------------------------

    def grid_coordinates(self, lat: float, lng: float) -> tuple[float, float]:
        """Continuous grid coordinates of a geographic point."""
        gx = (lng + 180.0) / 360.0 * self.grid_size
        gy = (90.0 - lat) / 180.0 * self.grid_size
        return (gx, gy)

    def cell_of(self, lat: float, lng: float) -> tuple[int, int]:
        """Lattice cell a geographic point snaps to."""
        gx, gy = self.grid_coordinates(lat, lng)
        return (math.floor(gx), math.floor(gy))

    def build(self, samples: Iterable[Sample]) -> None:
        """
        Replace the lattice with a new sample batch.

        Later samples in the same cell overwrite earlier ones.

        Args:
            samples: Sample batch, possibly empty
        """
        self.cells = {}
        self._dense.fill(np.nan)

        count = 0
        for sample in samples:
            cell = self.cell_of(sample.point.lat, sample.point.lng)
            self.cells[cell] = sample.value
            count += 1

        for (gx, gy), value in self.cells.items():
            self._dense[gy + self._pad, gx + self._pad] = value

        logger.info(f"Built interpolation grid: {count} samples in {len(self.cells)} cells")

    @property
    def is_empty(self) -> bool:
        return not self.cells

    # ------------------------------------------------------------
    # Query
    # ------------------------------------------------------------

    def value_at(self, gx: float, gy: float) -> Optional[float]:
        """
        Interpolated value at continuous grid coordinates.

        The four surrounding lattice cells are weighted by 1 / (d + epsilon).
        If none of them holds data, every cell within fallback_radius of
        (floor(gx), floor(gy)) is weighted by 1 / (d + fallback_epsilon).

        Args:
            gx: Continuous x (longitude axis)
            gy: Continuous y (latitude axis)

        Returns:
            Weighted average, or None when no sample is close enough
        """
        x0, x1 = math.floor(gx), math.ceil(gx)
        y0, y1 = math.floor(gy), math.ceil(gy)

        total_weight = 0.0
        weighted_sum = 0.0
        for cx, cy in ((x0, y0), (x1, y0), (x0, y1), (x1, y1)):
            value = self.cells.get((cx, cy))
            if value is None:
                continue
            weight = 1.0 / (math.hypot(gx - cx, gy - cy) + self.epsilon)
            weighted_sum += value * weight
            total_weight += weight

        if total_weight == 0.0:
            radius = self.fallback_radius
            for dy in range(-radius, radius + 1):
                for dx in range(-radius, radius + 1):
                    value = self.cells.get((x0 + dx, y0 + dy))
                    if value is None:
                        continue
                    weight = 1.0 / (math.hypot(dx, dy) + self.fallback_epsilon)
                    weighted_sum += value * weight
                    total_weight += weight

        if total_weight == 0.0:
            return None
        return weighted_sum / total_weight

    def values_at(self, gx: np.ndarray, gy: np.ndarray) -> np.ndarray:
        """
        Vectorised value_at over arrays of grid coordinates.

        Args:
            gx: Array of continuous x coordinates
            gy: Array of continuous y coordinates, same shape as gx

        Returns:
            Float array of the same shape, NaN where there is no data
        """
        gx = np.asarray(gx, dtype=float)
        gy = np.asarray(gy, dtype=float)
        x0 = np.floor(gx).astype(np.int64)
        y0 = np.floor(gy).astype(np.int64)
        x1 = np.ceil(gx).astype(np.int64)
        y1 = np.ceil(gy).astype(np.int64)

        weighted_sum = np.zeros(gx.shape)
        total_weight = np.zeros(gx.shape)

        for cx, cy in ((x0, y0), (x1, y0), (x0, y1), (x1, y1)):
            values = self._lookup(cx, cy)
            present = ~np.isnan(values)
            weights = np.where(
                present, 1.0 / (np.hypot(gx - cx, gy - cy) + self.epsilon), 0.0
            )
            weighted_sum += np.where(present, values, 0.0) * weights
            total_weight += weights

        missing = total_weight == 0.0
        if missing.any():
            mx0 = x0[missing]
            my0 = y0[missing]
            fb_sum = np.zeros(mx0.shape)
            fb_weight = np.zeros(mx0.shape)
            radius = self.fallback_radius
            for dy in range(-radius, radius + 1):
                for dx in range(-radius, radius + 1):
                    values = self._lookup(mx0 + dx, my0 + dy)
                    present = ~np.isnan(values)
                    weight = 1.0 / (math.hypot(dx, dy) + self.fallback_epsilon)
                    fb_sum += np.where(present, values * weight, 0.0)
                    fb_weight += np.where(present, weight, 0.0)
            weighted_sum[missing] = fb_sum
            total_weight[missing] = fb_weight

        with np.errstate(invalid="ignore", divide="ignore"):
            return np.where(total_weight > 0.0, weighted_sum / total_weight, np.nan)

    def _lookup(self, cx: np.ndarray, cy: np.ndarray) -> np.ndarray:
        """Dense-grid values at integer cells, NaN outside the padded lattice."""
        ix = cx + self._pad
        iy = cy + self._pad
        size = self._dense.shape[0]
        inside = (ix >= 0) & (ix < size) & (iy >= 0) & (iy < size)
        values = np.full(ix.shape, np.nan)
        values[inside] = self._dense[iy[inside], ix[inside]]
        return values
