"""
Unit tests for TerritoryService.

Tests cover:
- Drawing and editing sessions end to end
- One-shot territory creation
- Metadata updates and plan invalidation
- Dragging vertices of saved territories
- Plan generation
"""
import pytest
from datetime import date
from unittest.mock import AsyncMock

from geofence.domain.errors import (
    DuplicateTerritory,
    InsufficientVertices,
    NotFound,
    SelfIntersecting,
    VertexIndexError,
)
from geofence.domain.models import AIPlan, GeoPoint, WeekPlan
from geofence.infrastructure.territory_store import TerritoryStore
from geofence.services.application.territory_service import (
    TerritoryDetails,
    TerritoryService,
)


@pytest.fixture
def details() -> TerritoryDetails:
    return TerritoryDetails(
        name="North block",
        crop="wheat",
        planting_date=date(2024, 3, 1),
        soil_type="loam",
    )


@pytest.fixture
def plan() -> AIPlan:
    return AIPlan(
        crop="wheat",
        territory="North block",
        planting_date="2024-03-01",
        harvest_date="2024-07-15",
        total_weeks=20,
        weekly_plans=[WeekPlan(week=1, title="Establishment", tasks=["Check emergence"])],
    )


# ============================================================
# Session Tests
# ============================================================

class TestSessions:
    """Tests for session orchestration."""

    def test_drawing_session_creates_territory(self, territory_service, unit_square, details):
        session_id, _ = territory_service.open_drawing_session()
        for point in unit_square:
            territory_service.add_vertex(session_id, point)

        territory = territory_service.commit_session(session_id, details)

        assert territory.name == "North block"
        assert territory.polygon.points == tuple(unit_square)
        assert territory.area_hectares > 0
        assert territory_service.list_territories() == [territory]
        assert session_id not in territory_service.sessions

    def test_drawing_commit_requires_details(self, territory_service, unit_square):
        session_id, _ = territory_service.open_drawing_session()
        for point in unit_square:
            territory_service.add_vertex(session_id, point)

        with pytest.raises(ValueError):
            territory_service.commit_session(session_id, TerritoryDetails(name="x", crop=""))
        assert session_id in territory_service.sessions

    def test_rejected_commit_keeps_session(self, territory_service, bowtie, details):
        session_id, _ = territory_service.open_drawing_session()
        for point in bowtie:
            territory_service.add_vertex(session_id, point)

        with pytest.raises(SelfIntersecting):
            territory_service.commit_session(session_id, details)

        assert territory_service.list_territories() == []
        assert session_id in territory_service.sessions

    def test_editing_session_updates_outline(self, territory_service, unit_square, details):
        territory = territory_service.create_territory(unit_square, details)
        session_id, _ = territory_service.open_editing_session(territory.id)

        territory_service.move_vertex(session_id, 2, GeoPoint(lat=2.0, lng=2.0))
        updated = territory_service.commit_session(session_id)

        assert updated.id == territory.id
        assert updated.polygon.points[2] == GeoPoint(lat=2.0, lng=2.0)
        assert updated.area_hectares > territory.area_hectares
        assert updated.name == territory.name

    def test_cancel_session(self, territory_service, unit_square, details):
        territory = territory_service.create_territory(unit_square, details)
        session_id, _ = territory_service.open_editing_session(territory.id)
        territory_service.remove_vertex(session_id, 0)

        territory_service.cancel_session(session_id)
        territory_service.cancel_session(session_id)

        assert territory_service.get_territory(territory.id) == territory
        with pytest.raises(NotFound):
            territory_service.get_session(session_id)

    def test_editing_unknown_territory(self, territory_service):
        with pytest.raises(NotFound):
            territory_service.open_editing_session("missing")

    def test_commit_on_deleted_territory_closes_session(
        self, territory_service, unit_square, details
    ):
        """A finalized session never lingers when the store write fails."""
        territory = territory_service.create_territory(unit_square, details)
        session_id, _ = territory_service.open_editing_session(territory.id)
        territory_service.delete_territory(territory.id)

        with pytest.raises(NotFound):
            territory_service.commit_session(session_id)

        assert session_id not in territory_service.sessions
        assert territory_service.list_territories() == []

    def test_commit_with_taken_id_closes_session(self, store, unit_square, details):
        ids = iter(["s1", "t1", "s2", "t1"])
        service = TerritoryService(store=store, id_factory=lambda: next(ids))
        service.create_territory(unit_square, details)
        session_id, _ = service.open_drawing_session()
        for point in unit_square:
            service.add_vertex(session_id, point)

        with pytest.raises(DuplicateTerritory):
            service.commit_session(session_id, details)

        assert session_id not in service.sessions
        assert len(service.list_territories()) == 1


# ============================================================
# Territory Tests
# ============================================================

class TestTerritories:
    """Tests for saved-territory operations."""

    def test_create_territory(self, territory_service, field_outline, details):
        territory = territory_service.create_territory(field_outline, details)

        assert territory.crop == "wheat"
        assert territory.soil_type == "loam"
        assert 1.0 < territory.area_hectares < 2.5
        assert territory_service.sessions == {}

    def test_create_rejects_bad_outlines(self, territory_service, bowtie, details):
        with pytest.raises(SelfIntersecting):
            territory_service.create_territory(bowtie, details)
        with pytest.raises(InsufficientVertices):
            territory_service.create_territory(bowtie[:2], details)

        assert territory_service.list_territories() == []
        assert territory_service.sessions == {}

    def test_custom_ids(self, store, unit_square, details):
        ids = iter(["session-1", "territory-1"])
        service = TerritoryService(store=store, id_factory=lambda: next(ids))

        territory = service.create_territory(unit_square, details)

        assert territory.id == "territory-1"

    def test_update_details(self, territory_service, unit_square, details):
        territory = territory_service.create_territory(unit_square, details)

        updated = territory_service.update_details(territory.id, name="Renamed")

        assert updated.name == "Renamed"
        assert updated.polygon == territory.polygon

    def test_update_unknown_field(self, territory_service, unit_square, details):
        territory = territory_service.create_territory(unit_square, details)

        with pytest.raises(ValueError):
            territory_service.update_details(territory.id, area_hectares=1.0)

    def test_invalid_update_is_not_stored(self, territory_service, unit_square, details):
        """A change that breaks the territory model never reaches the backend."""
        territory = territory_service.create_territory(unit_square, details)

        with pytest.raises(ValueError):
            territory_service.update_details(territory.id, name=None)

        assert territory_service.get_territory(territory.id) == territory
        reloaded = TerritoryStore(territory_service.store.backend)
        assert reloaded.list() == [territory]

    def test_crop_change_drops_plan(self, territory_service, unit_square, details, plan):
        territory = territory_service.create_territory(unit_square, details)
        territory_service.store.update(
            territory.id, lambda t: t.model_copy(update={"ai_plan": plan})
        )

        renamed = territory_service.update_details(territory.id, name="Renamed")
        assert renamed.ai_plan == plan

        replanted = territory_service.update_details(territory.id, crop="barley")
        assert replanted.ai_plan is None

    def test_move_territory_vertex(self, territory_service, unit_square, details):
        territory = territory_service.create_territory(unit_square, details)

        moved = territory_service.move_territory_vertex(
            territory.id, 2, GeoPoint(lat=0.5, lng=0.5)
        )

        assert moved.polygon.points[2] == GeoPoint(lat=0.5, lng=0.5)
        assert moved.area_hectares < territory.area_hectares

    def test_move_into_crossing_rejected(self, territory_service, unit_square, details):
        """Saved territories never become self-intersecting."""
        territory = territory_service.create_territory(unit_square, details)

        with pytest.raises(SelfIntersecting):
            territory_service.move_territory_vertex(
                territory.id, 1, GeoPoint(lat=1.5, lng=0.5)
            )

        assert territory_service.get_territory(territory.id) == territory

    def test_move_bad_index(self, territory_service, unit_square, details):
        territory = territory_service.create_territory(unit_square, details)

        with pytest.raises(VertexIndexError):
            territory_service.move_territory_vertex(territory.id, 9, GeoPoint(lat=0, lng=0))

    def test_delete_territory(self, territory_service, unit_square, details):
        territory = territory_service.create_territory(unit_square, details)

        territory_service.delete_territory(territory.id)

        with pytest.raises(NotFound):
            territory_service.get_territory(territory.id)


# ============================================================
# Plan Tests
# ============================================================

class TestEnsurePlan:
    """Tests for attaching generated plans."""

    @pytest.mark.asyncio
    async def test_generates_and_stores_plan(self, store, unit_square, details, plan):
        plan_client = AsyncMock()
        plan_client.generate_plan.return_value = plan
        service = TerritoryService(store=store, plan_client=plan_client)
        territory = service.create_territory(unit_square, details)

        result = await service.ensure_plan(territory.id)

        assert result.ai_plan == plan
        assert service.get_territory(territory.id).ai_plan == plan
        plan_client.generate_plan.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_existing_plan_is_reused(self, store, unit_square, details, plan):
        plan_client = AsyncMock()
        plan_client.generate_plan.return_value = plan
        service = TerritoryService(store=store, plan_client=plan_client)
        territory = service.create_territory(unit_square, details)

        await service.ensure_plan(territory.id)
        await service.ensure_plan(territory.id)

        assert plan_client.generate_plan.await_count == 1

    @pytest.mark.asyncio
    async def test_without_plan_client(self, territory_service, unit_square, details):
        territory = territory_service.create_territory(unit_square, details)

        with pytest.raises(ValueError):
            await territory_service.ensure_plan(territory.id)
