"""
Domain service: stateful polygon editor.

A session holds the vertex list of one territory while the user draws it
or reshapes it. Every mutation re-runs the self-intersection check and the
area calculation synchronously and publishes the resulting EditState, so
the latest call always wins and nothing from earlier calls lingers.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional
import logging

from geofence.domain.errors import (
    InsufficientVertices,
    InvalidSessionState,
    SelfIntersecting,
    TooFewVertices,
    VertexIndexError,
)
from geofence.domain.models import EditState, GeoPoint, Polygon, Territory
from geofence.services.domain.geodesic_area import GeodesicAreaCalculator
from geofence.services.domain.self_intersection import SelfIntersectionValidator

logger = logging.getLogger(__name__)

MIN_VERTICES = 3

StateListener = Callable[[EditState], None]


class SessionMode(str, Enum):
    DRAWING = "drawing"
    EDITING = "editing"
    FINALIZED = "finalized"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class FinalizedPolygon:
    """A committed, valid polygon and its area."""
    polygon: Polygon
    area_hectares: float


class PolygonEditSession:
    """
    Editor for one territory outline.

    A session starts either in DRAWING mode (new territory, vertices are
    appended one by one) or in EDITING mode (transient copy of a saved
    territory, vertices can only be moved or removed). finalize() ends the
    session with a valid polygon; cancel() discards it.
    """

    def __init__(
        self,
        validator: Optional[SelfIntersectionValidator] = None,
        area_calculator: Optional[GeodesicAreaCalculator] = None,
        mode: SessionMode = SessionMode.DRAWING,
        points: Optional[List[GeoPoint]] = None,
        territory_id: Optional[str] = None,
    ):
        self.validator = validator or SelfIntersectionValidator()
        self.area_calculator = area_calculator or GeodesicAreaCalculator()
        self.mode = mode
        self.territory_id = territory_id
        self._points: List[GeoPoint] = list(points or [])
        self._listeners: List[StateListener] = []
        self._state = EditState()
        self._recompute()

    @classmethod
    def for_territory(
        cls,
        territory: Territory,
        validator: Optional[SelfIntersectionValidator] = None,
        area_calculator: Optional[GeodesicAreaCalculator] = None,
    ) -> "PolygonEditSession":
        """Open an editing session on a copy of a saved territory's outline."""
        return cls(
            validator=validator,
            area_calculator=area_calculator,
            mode=SessionMode.EDITING,
            points=list(territory.polygon.points),
            territory_id=territory.id,
        )

    # ------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------

    @property
    def state(self) -> EditState:
        return self._state

    @property
    def points(self) -> tuple[GeoPoint, ...]:
        return tuple(self._points)

    @property
    def is_self_intersecting(self) -> bool:
        return self._state.vertex_count >= MIN_VERTICES and not self._state.is_valid

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register a callback invoked with the new state after every mutation.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------

    def add_vertex(self, point: GeoPoint) -> EditState:
        self._require({SessionMode.DRAWING}, "add a vertex")
        self._points.append(point)
        return self._recompute()

    def move_vertex(self, index: int, point: GeoPoint) -> EditState:
        self._require({SessionMode.DRAWING, SessionMode.EDITING}, "move a vertex")
        self._check_index(index)
        self._points[index] = point
        return self._recompute()

    def remove_vertex(self, index: int) -> EditState:
        self._require({SessionMode.DRAWING, SessionMode.EDITING}, "remove a vertex")
        self._check_index(index)
        if len(self._points) - 1 < MIN_VERTICES:
            raise TooFewVertices(len(self._points))
        del self._points[index]
        return self._recompute()

    def finalize(self) -> FinalizedPolygon:
        """
        Commit the current outline.

        Raises:
            InsufficientVertices: If fewer than 3 vertices
            SelfIntersecting: If any two edges cross
            InvalidSessionState: If the session is already closed
        """
        self._require({SessionMode.DRAWING, SessionMode.EDITING}, "finalize")
        if len(self._points) < MIN_VERTICES:
            raise InsufficientVertices(len(self._points))
        if not self._state.is_valid:
            raise SelfIntersecting()

        result = FinalizedPolygon(
            polygon=Polygon(points=tuple(self._points)),
            area_hectares=self._state.area_hectares,
        )
        self.mode = SessionMode.FINALIZED
        logger.info(
            f"Finalized polygon with {len(result.polygon)} points, "
            f"{result.area_hectares:.2f} ha"
        )
        return result

    def cancel(self) -> None:
        # Nothing uncommitted left once closed
        if self.mode in (SessionMode.CANCELLED, SessionMode.FINALIZED):
            return
        self._points.clear()
        self.mode = SessionMode.CANCELLED
        self._recompute()

    # ------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------

    def _require(self, allowed: set[SessionMode], operation: str) -> None:
        if self.mode not in allowed:
            raise InvalidSessionState(operation, self.mode.value)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._points):
            raise VertexIndexError(index, len(self._points))

    def _recompute(self) -> EditState:
        count = len(self._points)
        intersecting = self.validator.is_self_intersecting(self._points)
        self._state = EditState(
            is_valid=count >= MIN_VERTICES and not intersecting,
            area_hectares=self.area_calculator.area_hectares(self._points),
            vertex_count=count,
        )
        logger.debug(
            f"Session state: valid={self._state.is_valid}, "
            f"area={self._state.area_hectares:.4f} ha, points={count}"
        )
        for listener in list(self._listeners):
            listener(self._state)
        return self._state
