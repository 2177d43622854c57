"""
Domain service: rasterise an interpolated field into an RGBA overlay.

render() is a pure function of (bounds, size, interpolator); it never
touches a live map object, so the same inputs always give the same pixels.
"""
import io
from dataclasses import dataclass
from typing import Optional, Sequence
import logging
import numpy as np
from PIL import Image

from geofence.config import settings
from geofence.domain.models import ViewportBounds
from geofence.services.domain.spatial_interpolator import SpatialInterpolator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColorStop:
    """Ramp breakpoint: values at or above `value` start using `rgb`."""
    value: float
    rgb: tuple[int, int, int]


def _hex(color: str) -> tuple[int, int, int]:
    color = color.lstrip("#")
    return (int(color[0:2], 16), int(color[2:4], 16), int(color[4:6], 16))


# Air temperature scale in °C
TEMPERATURE_STOPS: tuple[ColorStop, ...] = (
    ColorStop(-30.0, _hex("#000080")),
    ColorStop(-20.0, _hex("#0000CD")),
    ColorStop(-10.0, _hex("#4169E1")),
    ColorStop(0.0, _hex("#1E90FF")),
    ColorStop(5.0, _hex("#00BFFF")),
    ColorStop(10.0, _hex("#87CEEB")),
    ColorStop(15.0, _hex("#98FB98")),
    ColorStop(20.0, _hex("#FFD700")),
    ColorStop(25.0, _hex("#FFA500")),
    ColorStop(30.0, _hex("#FF8C00")),
    ColorStop(35.0, _hex("#FF4500")),
    ColorStop(40.0, _hex("#DC143C")),
)


class ColorRamp:
    """
    Ordered value -> colour mapping.

    In "step" mode a value takes the colour of the highest breakpoint not
    above it (values below the first breakpoint take the first colour).
    In "linear" mode colours are blended between neighbouring breakpoints
    and clamped at both ends.
    """

    def __init__(self, stops: Sequence[ColorStop] = TEMPERATURE_STOPS, mode: str = "step"):
        if not stops:
            raise ValueError("A colour ramp needs at least one stop")
        values = [s.value for s in stops]
        if any(b <= a for a, b in zip(values, values[1:])):
            raise ValueError("Colour stops must be strictly increasing")
        if mode not in ("step", "linear"):
            raise ValueError(f"Unknown colour ramp mode: {mode}")

        self.stops = tuple(stops)
        self.mode = mode
        self._values = np.array(values, dtype=float)
        self._colors = np.array([s.rgb for s in stops], dtype=float)

    def colors_for(self, values: np.ndarray) -> np.ndarray:
        """
        Map an array of values to RGB.

        Args:
            values: Float array of any shape, must not contain NaN

        Returns:
            uint8 array of shape values.shape + (3,)
        """
        values = np.asarray(values, dtype=float)
        if self.mode == "step":
            idx = np.searchsorted(self._values, values, side="right") - 1
            idx = np.clip(idx, 0, len(self._values) - 1)
            rgb = self._colors[idx]
        else:
            rgb = np.stack(
                [np.interp(values, self._values, self._colors[:, c]) for c in range(3)],
                axis=-1,
            )
        return np.rint(rgb).astype(np.uint8)

    def color_for(self, value: float) -> tuple[int, int, int]:
        r, g, b = self.colors_for(np.array([value]))[0]
        return (int(r), int(g), int(b))


@dataclass
class RasterBuffer:
    """RGBA pixels (height x width x 4, uint8) plus the bounds they cover."""
    pixels: np.ndarray
    bounds: ViewportBounds

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def plotted_pixels(self) -> int:
        return int(np.count_nonzero(self.pixels[:, :, 3]))

    def to_png(self) -> bytes:
        """Encode the buffer as a PNG for use as a map image overlay."""
        img = Image.fromarray(self.pixels)
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()


class HeatSurfaceRenderer:
    """
    Drives the interpolator over every pixel of a viewport-sized raster.

    Must be re-run when the sample batch changes or the viewport moves;
    nothing else affects the output.
    """

    def __init__(
        self,
        color_ramp: Optional[ColorRamp] = None,
        alpha: Optional[int] = None,
        max_pixels: Optional[int] = None,
    ):
        self.color_ramp = color_ramp or ColorRamp()
        self.alpha = settings.heat_surface_alpha if alpha is None else alpha
        self.max_pixels = max_pixels or settings.heat_surface_max_pixels
        if not 0 <= self.alpha <= 255:
            raise ValueError(f"Alpha must be within 0-255, got {self.alpha}")

    def grid_coordinates(
        self,
        bounds: ViewportBounds,
        width: int,
        height: int,
        grid_size: int,
    ) -> tuple[np.ndarray, np.ndarray]:
        """
        Continuous grid coordinates of every pixel's top-left corner.

        Returns:
            (gx, gy) arrays of shape (height, width)
        """
        xs = np.arange(width, dtype=float)
        ys = np.arange(height, dtype=float)
        lng = bounds.west + (xs / width) * (bounds.east - bounds.west)
        lat = bounds.north - (ys / height) * (bounds.north - bounds.south)
        gx_row = (lng + 180.0) / 360.0 * grid_size
        gy_col = (90.0 - lat) / 180.0 * grid_size
        gx, gy = np.meshgrid(gx_row, gy_col)
        return gx, gy

    def render(
        self,
        bounds: ViewportBounds,
        width: int,
        height: int,
        interpolator: SpatialInterpolator,
    ) -> RasterBuffer:
        """
        Rasterise the interpolated field for a viewport.

        Args:
            bounds: Geographic extent of the raster
            width: Raster width in pixels
            height: Raster height in pixels
            interpolator: Built interpolator (may be empty)

        Returns:
            RasterBuffer; pixels without an interpolated value are fully
            transparent, all others carry the constant alpha
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Raster size must be positive, got {width}x{height}")
        if width * height > self.max_pixels:
            raise ValueError(
                f"Raster of {width}x{height} exceeds the limit of {self.max_pixels} pixels"
            )

        pixels = np.zeros((height, width, 4), dtype=np.uint8)
        if interpolator.is_empty:
            logger.debug("Empty sample grid, returning transparent surface")
            return RasterBuffer(pixels=pixels, bounds=bounds)

        gx, gy = self.grid_coordinates(bounds, width, height, interpolator.grid_size)
        values = interpolator.values_at(gx, gy)
        plotted = ~np.isnan(values)

        pixels[plotted, :3] = self.color_ramp.colors_for(values[plotted])
        pixels[plotted, 3] = self.alpha

        logger.debug(
            f"Rendered {width}x{height} surface, {int(plotted.sum())} pixels plotted"
        )
        return RasterBuffer(pixels=pixels, bounds=bounds)
