"""
Application service: sample acquisition and heat surface lifecycle.

Sample fetches run in bounded concurrent groups; a refresh that completes
after a newer one has started is discarded. Viewport changes are debounced
so the raster is regenerated once per gesture.
"""
import asyncio
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence, Tuple
import logging

from geofence.config import settings
from geofence.domain.models import (
    Sample,
    TemperatureStats,
    Territory,
    ViewportBounds,
)
from geofence.infrastructure.api_constants import global_query_points
from geofence.services.domain.heat_surface import HeatSurfaceRenderer, RasterBuffer
from geofence.services.domain.spatial_interpolator import SpatialInterpolator
from geofence.utils.spatial_helpers import build_kdtree, nearest_index, vertex_centre

logger = logging.getLogger(__name__)

QueryPoint = Tuple[float, float, str]


class SampleFetcher(Protocol):
    async def fetch_sample(
        self, lat: float, lng: float, location: Optional[str] = None
    ) -> Optional[Sample]:
        ...


class SampleFeed:
    """
    Collects one sample batch per refresh from a fetcher.

    Each refresh is numbered; only the most recently started refresh may
    publish its batch.
    """

    def __init__(
        self,
        fetcher: SampleFetcher,
        query_points: Optional[Sequence[QueryPoint]] = None,
        batch_size: Optional[int] = None,
        batch_pause: Optional[float] = None,
    ):
        self.fetcher = fetcher
        self.query_points = list(query_points) if query_points is not None else global_query_points()
        self.batch_size = batch_size or settings.fetch_batch_size
        self.batch_pause = settings.fetch_batch_pause if batch_pause is None else batch_pause
        self.generation = 0
        self.latest: List[Sample] = []

    async def fetch_batch(self) -> List[Sample]:
        """
        Fetch every query point, batch_size requests at a time.

        Returns:
            Samples that arrived; failed points are simply absent
        """
        samples: List[Sample] = []
        failed = 0
        total = len(self.query_points)

        for start in range(0, total, self.batch_size):
            group = self.query_points[start:start + self.batch_size]
            results = await asyncio.gather(
                *(self.fetcher.fetch_sample(lat, lng, name) for lat, lng, name in group),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, Sample):
                    samples.append(result)
                else:
                    if isinstance(result, Exception):
                        logger.warning(f"Sample fetch raised: {result!r}")
                    failed += 1

            if start + self.batch_size < total and self.batch_pause > 0:
                await asyncio.sleep(self.batch_pause)

        logger.info(f"Fetched {len(samples)}/{total} samples ({failed} dropped)")
        return samples

    async def refresh(self) -> Optional[List[Sample]]:
        """
        Fetch a new batch and publish it unless a newer refresh started meanwhile.

        Returns:
            The published batch, or None if this refresh went stale
        """
        self.generation += 1
        generation = self.generation

        samples = await self.fetch_batch()

        if generation != self.generation:
            logger.info(
                f"Discarding stale sample batch {generation} "
                f"(latest is {self.generation})"
            )
            return None

        self.latest = samples
        return samples


class Debouncer:
    """
    Runs an async callback once calls have stopped for `delay` seconds.

    Every trigger cancels the pending run, so only the arguments of the
    last trigger are used.
    """

    def __init__(self, delay: float, callback: Callable[..., Awaitable[None]]):
        self.delay = delay
        self.callback = callback
        self._pending: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def trigger(self, *args) -> asyncio.Task:
        if self.pending:
            self._pending.cancel()
        self._pending = asyncio.get_running_loop().create_task(self._run(*args))
        return self._pending

    async def _run(self, *args) -> None:
        await asyncio.sleep(self.delay)
        try:
            await self.callback(*args)
        except Exception as e:
            # Nobody awaits a debounced run, so failures end here
            logger.exception(f"Debounced callback failed: {str(e)}")

    async def wait(self) -> None:
        """Wait for the pending run, if any, to finish."""
        if self._pending is None:
            return
        try:
            await self._pending
        except asyncio.CancelledError:
            pass

    def cancel(self) -> None:
        if self.pending:
            self._pending.cancel()


class HeatSurfaceService:
    """
    Owns the current sample batch, its interpolation grid and the latest
    rendered surface.
    """

    def __init__(
        self,
        feed: SampleFeed,
        interpolator: Optional[SpatialInterpolator] = None,
        renderer: Optional[HeatSurfaceRenderer] = None,
        debounce_seconds: Optional[float] = None,
    ):
        self.feed = feed
        self.interpolator = interpolator or SpatialInterpolator()
        self.renderer = renderer or HeatSurfaceRenderer()
        self.samples: List[Sample] = []
        self.current_surface: Optional[RasterBuffer] = None
        self._viewport: Optional[Tuple[ViewportBounds, int, int]] = None
        delay = settings.render_debounce_seconds if debounce_seconds is None else debounce_seconds
        self.debouncer = Debouncer(delay, self._render_viewport)

    async def refresh_samples(self) -> Optional[int]:
        """
        Pull a fresh batch and rebuild the grid.

        Returns:
            Number of samples applied, or None if the batch went stale
        """
        samples = await self.feed.refresh()
        if samples is None:
            return None
        self.apply_samples(samples)
        return len(samples)

    def apply_samples(self, samples: List[Sample]) -> None:
        """Rebuild the grid from a complete batch and redraw the last viewport."""
        self.samples = list(samples)
        self.interpolator.build(self.samples)
        if self._viewport is not None:
            self.current_surface = self.render(*self._viewport)

    def render(self, bounds: ViewportBounds, width: int, height: int) -> RasterBuffer:
        return self.renderer.render(bounds, width, height, self.interpolator)

    def viewport_changed(self, bounds: ViewportBounds, width: int, height: int) -> asyncio.Task:
        """Schedule a re-render for the end of a pan/zoom gesture."""
        return self.debouncer.trigger(bounds, width, height)

    async def _render_viewport(self, bounds: ViewportBounds, width: int, height: int) -> None:
        # A viewport that cannot be rendered is never remembered
        surface = self.render(bounds, width, height)
        self._viewport = (bounds, width, height)
        self.current_surface = surface

    def statistics(self) -> Optional[TemperatureStats]:
        if not self.samples:
            return None
        values = [s.value for s in self.samples]
        return TemperatureStats(
            count=len(values),
            min=min(values),
            max=max(values),
            avg=sum(values) / len(values),
        )

    def temperature_for(self, territory: Territory) -> Optional[float]:
        """
        Value of the sample nearest to a territory's vertex centre.

        Returns:
            Sample value, or None without samples or vertices
        """
        if not self.samples or not territory.polygon.points:
            return None
        centre = vertex_centre([p.as_pair() for p in territory.polygon.points])
        kdtree = build_kdtree([s.point.as_pair() for s in self.samples])
        return self.samples[nearest_index(kdtree, centre)].value
