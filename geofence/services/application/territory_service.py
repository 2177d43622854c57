"""
Application service: Orchestration layer for territory editing and storage.
"""
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, List, Optional, Sequence, Tuple
import logging

from geofence.domain.errors import NotFound, SelfIntersecting
from geofence.domain.models import EditState, GeoPoint, Territory
from geofence.infrastructure.plan_client import PlanServiceClient
from geofence.infrastructure.territory_store import TerritoryStore
from geofence.services.domain.edit_session import PolygonEditSession, SessionMode
from geofence.services.domain.geodesic_area import GeodesicAreaCalculator
from geofence.services.domain.self_intersection import SelfIntersectionValidator

logger = logging.getLogger(__name__)


@dataclass
class TerritoryDetails:
    """User-supplied metadata for a territory."""
    name: str
    crop: Optional[str] = None
    planting_date: Optional[date] = None
    soil_type: Optional[str] = None


def _new_id() -> str:
    return uuid.uuid4().hex


def _replace(territory: Territory, **update) -> Territory:
    """Validated copy of a territory with some fields replaced."""
    return Territory.model_validate({**territory.model_dump(), **update})


class TerritoryService:
    """
    Application service for territory-related operations.

    Holds the open edit sessions and coordinates them with the store.
    No geometry here, only coordination between the domain services and
    the persistence layer.
    """

    def __init__(
        self,
        store: TerritoryStore,
        plan_client: Optional[PlanServiceClient] = None,
        validator: Optional[SelfIntersectionValidator] = None,
        area_calculator: Optional[GeodesicAreaCalculator] = None,
        id_factory: Callable[[], str] = _new_id,
    ):
        """
        Initialize the service with dependencies.

        Args:
            store: Territory persistence
            plan_client: Weekly plan generator (optional)
            validator: Self-intersection validator shared by all sessions
            area_calculator: Area calculator shared by all sessions
            id_factory: Generates territory and session ids
        """
        self.store = store
        self.plan_client = plan_client
        self.validator = validator or SelfIntersectionValidator()
        self.area_calculator = area_calculator or GeodesicAreaCalculator()
        self.id_factory = id_factory
        self.sessions: Dict[str, PolygonEditSession] = {}

    # ------------------------------------------------------------
    # Edit sessions
    # ------------------------------------------------------------

    def open_drawing_session(self) -> Tuple[str, PolygonEditSession]:
        session_id = self.id_factory()
        session = PolygonEditSession(
            validator=self.validator,
            area_calculator=self.area_calculator,
        )
        self.sessions[session_id] = session
        logger.info(f"Opened drawing session {session_id}")
        return session_id, session

    def open_editing_session(self, territory_id: str) -> Tuple[str, PolygonEditSession]:
        territory = self.store.get(territory_id)
        session_id = self.id_factory()
        session = PolygonEditSession.for_territory(
            territory,
            validator=self.validator,
            area_calculator=self.area_calculator,
        )
        self.sessions[session_id] = session
        logger.info(f"Opened editing session {session_id} for territory {territory_id}")
        return session_id, session

    def get_session(self, session_id: str) -> PolygonEditSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise NotFound("Session", session_id)
        return session

    def add_vertex(self, session_id: str, point: GeoPoint) -> EditState:
        return self.get_session(session_id).add_vertex(point)

    def move_vertex(self, session_id: str, index: int, point: GeoPoint) -> EditState:
        return self.get_session(session_id).move_vertex(index, point)

    def remove_vertex(self, session_id: str, index: int) -> EditState:
        return self.get_session(session_id).remove_vertex(index)

    def cancel_session(self, session_id: str) -> None:
        """Discard a session; cancelling an unknown or closed session is a no-op."""
        session = self.sessions.pop(session_id, None)
        if session is not None:
            session.cancel()
            logger.info(f"Cancelled session {session_id}")

    def commit_session(
        self,
        session_id: str,
        details: Optional[TerritoryDetails] = None,
    ) -> Territory:
        """
        Finalize a session and write the result to the store.

        A drawing session creates a new territory (details required); an
        editing session replaces the outline and area of its territory.

        Raises:
            InsufficientVertices: Fewer than 3 vertices
            SelfIntersecting: Crossing edges
            ValueError: Drawing session without name and crop
            NotFound: Edited territory was deleted meanwhile
            DuplicateTerritory: Generated id already taken

        A geometry failure keeps the session open for further edits; once
        finalized, the session is closed even if the store write fails.
        """
        session = self.get_session(session_id)
        drawing = session.mode is SessionMode.DRAWING
        if drawing and (details is None or not details.name or not details.crop):
            raise ValueError("Territory name and crop are required")

        result = session.finalize()
        try:
            if drawing:
                return self.store.create(Territory(
                    id=self.id_factory(),
                    polygon=result.polygon,
                    name=details.name,
                    crop=details.crop,
                    planting_date=details.planting_date,
                    soil_type=details.soil_type,
                    area_hectares=result.area_hectares,
                ))
            return self.store.update(
                session.territory_id,
                lambda t: _replace(
                    t,
                    polygon=result.polygon,
                    area_hectares=result.area_hectares,
                ),
            )
        finally:
            self.sessions.pop(session_id, None)

    # ------------------------------------------------------------
    # Saved territories
    # ------------------------------------------------------------

    def create_territory(
        self,
        points: Sequence[GeoPoint],
        details: TerritoryDetails,
    ) -> Territory:
        """
        Validate and save a finished outline in one step.

        Runs the same checks as an interactive drawing session.
        """
        session_id, session = self.open_drawing_session()
        try:
            for point in points:
                session.add_vertex(point)
            return self.commit_session(session_id, details)
        finally:
            self.sessions.pop(session_id, None)

    def list_territories(self) -> List[Territory]:
        return self.store.list()

    def get_territory(self, territory_id: str) -> Territory:
        return self.store.get(territory_id)

    def delete_territory(self, territory_id: str) -> None:
        self.store.delete(territory_id)

    def update_details(self, territory_id: str, **changes) -> Territory:
        """
        Change metadata fields (name, crop, planting_date, soil_type).

        Changing crop or planting date drops a previously generated plan.
        """
        allowed = {"name", "crop", "planting_date", "soil_type"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        def apply(territory: Territory) -> Territory:
            update = dict(changes)
            if {"crop", "planting_date"} & set(changes):
                update["ai_plan"] = None
            return _replace(territory, **update)

        return self.store.update(territory_id, apply)

    def move_territory_vertex(
        self,
        territory_id: str,
        index: int,
        point: GeoPoint,
    ) -> Territory:
        """
        Drag one vertex of a saved territory and recompute its area.

        The move is rejected if it makes the outline cross itself, so stored
        territories always stay simple.

        Raises:
            NotFound: Unknown territory
            VertexIndexError: Index out of range
            SelfIntersecting: The moved outline crosses itself
        """
        def apply(territory: Territory) -> Territory:
            session = PolygonEditSession.for_territory(
                territory,
                validator=self.validator,
                area_calculator=self.area_calculator,
            )
            state = session.move_vertex(index, point)
            if not state.is_valid:
                raise SelfIntersecting()
            return _replace(
                territory,
                polygon=session.finalize().polygon,
                area_hectares=state.area_hectares,
            )

        return self.store.update(territory_id, apply)

    async def ensure_plan(self, territory_id: str) -> Territory:
        """
        Generate and attach a weekly plan unless the territory already has one.

        Raises:
            NotFound: Unknown territory
            ValueError: Crop or planting date missing, or no plan client configured
            ExternalAPIError: Generator failure
        """
        territory = self.store.get(territory_id)
        if territory.ai_plan is not None:
            return territory
        if self.plan_client is None:
            raise ValueError("No plan generator configured")

        plan = await self.plan_client.generate_plan(territory)
        return self.store.update(
            territory_id,
            lambda t: _replace(t, ai_plan=plan),
        )
