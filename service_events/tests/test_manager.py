"""
Unit tests for EventManager and the in-memory repository.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from service_events.app.lifecycle import Event, EventCreate, EventStatus, EventUpdate
from service_events.app.manager import EventManager
from service_events.app.persistence import InMemoryEventRepository
from shared.errors import (
    AuthenticationRequiredError,
    ConflictRetryError,
    HasParticipantsError,
    IllegalTransitionError,
    NotFoundError,
    NotOwnerError,
)
from shared.identity import Identity, Role
from shared.metrics import MetricsCollector
from shared.test_helpers import sample_event_payload

OWNER = Identity(id=42, email="owner@example.com", role=Role.ORGANIZER)
STRANGER = Identity(id=7, email="other@example.com", role=Role.ORGANIZER)


class InterleavingRepository(InMemoryEventRepository):
    """Yields to the loop after every read so concurrent writers interleave."""

    async def get(self, event_id):
        event = await super().get(event_id)
        await asyncio.sleep(0)
        return event


def create_payload(**overrides):
    return EventCreate(**sample_event_payload(**overrides))


@pytest.fixture
def repository():
    return InMemoryEventRepository()


@pytest.fixture
def metrics():
    return MetricsCollector("events")


@pytest.fixture
def manager(repository, metrics):
    return EventManager(repository, metrics=metrics)


class TestInMemoryEventRepository:

    @pytest.mark.asyncio
    async def test_add_assigns_ids_and_version(self, repository, manager):
        first = await manager.create_event(create_payload(), OWNER)
        second = await manager.create_event(create_payload(), OWNER)

        assert (first.id, second.id) == (1, 2)
        assert first.version == 1
        assert len(repository) == 2

    @pytest.mark.asyncio
    async def test_compare_and_set_bumps_version(self, repository, manager):
        event = await manager.create_event(create_payload(), OWNER)

        stored = await repository.compare_and_set(event.model_copy(update={"title": "Changed"}), 1)

        assert stored.version == 2
        assert (await repository.get(event.id)).title == "Changed"

    @pytest.mark.asyncio
    async def test_stale_write_rejected(self, repository, manager):
        event = await manager.create_event(create_payload(), OWNER)
        await repository.compare_and_set(event.model_copy(update={"title": "First"}), 1)

        with pytest.raises(ConflictRetryError) as exc_info:
            await repository.compare_and_set(event.model_copy(update={"title": "Second"}), 1)

        assert exc_info.value.status_code == 409
        assert exc_info.value.code == "CONFLICT_RETRY"
        assert (await repository.get(event.id)).title == "First"

    @pytest.mark.asyncio
    async def test_write_to_missing_event(self, repository, manager):
        event = await manager.create_event(create_payload(), OWNER)
        await repository.delete(event.id, 1)

        with pytest.raises(NotFoundError):
            await repository.compare_and_set(event, 1)

    @pytest.mark.asyncio
    async def test_list_filters_and_order(self, manager):
        late = await manager.create_event(create_payload(days_ahead=60, category="music"), OWNER)
        early = await manager.create_event(create_payload(days_ahead=5, category="music"), OWNER)
        other = await manager.create_event(create_payload(days_ahead=10, category="sport"), STRANGER)
        await manager.change_status(other.id, EventStatus.PUBLISHED, STRANGER)

        assert [e.id for e in await manager.list_events()] == [early.id, other.id, late.id]
        assert [e.id for e in await manager.list_events(category="music")] == [early.id, late.id]
        assert [e.id for e in await manager.list_events(status=EventStatus.PUBLISHED)] == [other.id]
        assert [e.id for e in await manager.get_organizer_events(OWNER)] == [early.id, late.id]


class TestEventManager:

    @pytest.mark.asyncio
    async def test_create_starts_in_planning(self, manager, metrics):
        event = await manager.create_event(create_payload(title="Board games"), OWNER)

        assert event.status is EventStatus.PLANNING
        assert event.organizer_id == 42
        assert event.current_participants == 0
        assert event.title == "Board games"
        assert metrics.registry.get_sample_value(
            "business_events_total", {"event_type": "event_created", "service": "events"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_create_requires_identity(self, manager):
        with pytest.raises(AuthenticationRequiredError):
            await manager.create_event(create_payload(), None)

    @pytest.mark.asyncio
    async def test_get_unknown(self, manager):
        with pytest.raises(NotFoundError) as exc_info:
            await manager.get_event(999)

        assert exc_info.value.message == "Event not found"

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, manager, metrics):
        event = await manager.create_event(create_payload(), OWNER)

        for target in (EventStatus.PUBLISHED, EventStatus.RUNNING, EventStatus.COMPLETED):
            event = await manager.change_status(event.id, target, OWNER)

        assert event.status is EventStatus.COMPLETED
        assert event.version == 4
        assert metrics.registry.get_sample_value(
            "status_transitions_total", {"from_status": "Running", "to_status": "Completed"}
        ) == 1.0
        assert metrics.registry.get_sample_value(
            "business_events_total", {"event_type": "event_closed", "service": "events"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_publish_does_not_close(self, manager, metrics):
        event = await manager.create_event(create_payload(), OWNER)

        await manager.change_status(event.id, EventStatus.PUBLISHED, OWNER)

        assert metrics.registry.get_sample_value(
            "business_events_total", {"event_type": "event_closed", "service": "events"}
        ) is None

    @pytest.mark.asyncio
    async def test_illegal_transition_leaves_event_unchanged(self, manager):
        event = await manager.create_event(create_payload(), OWNER)

        with pytest.raises(IllegalTransitionError):
            await manager.change_status(event.id, EventStatus.COMPLETED, OWNER)

        stored = await manager.get_event(event.id)
        assert stored.status is EventStatus.PLANNING
        assert stored.version == event.version

    @pytest.mark.asyncio
    async def test_non_owner_cannot_change_status(self, manager):
        event = await manager.create_event(create_payload(), OWNER)

        with pytest.raises(NotOwnerError):
            await manager.change_status(event.id, EventStatus.PUBLISHED, STRANGER)

    @pytest.mark.asyncio
    async def test_update(self, manager):
        event = await manager.create_event(create_payload(), OWNER)

        updated = await manager.update_event(event.id, EventUpdate(location="Garden"), OWNER)

        assert updated.location == "Garden"
        assert updated.title == event.title
        assert updated.version == event.version + 1

    @pytest.mark.asyncio
    async def test_delete(self, manager):
        event = await manager.create_event(create_payload(), OWNER)

        await manager.delete_event(event.id, OWNER)

        with pytest.raises(NotFoundError):
            await manager.get_event(event.id)

    @pytest.mark.asyncio
    async def test_delete_with_participants(self, repository, manager):
        seeded = await repository.add(
            Event(
                id=0,
                organizer_id=42,
                title="Full house",
                location="Hall",
                date=datetime.now(timezone.utc) + timedelta(days=3),
                max_participants=10,
                current_participants=3,
                category="social",
            )
        )

        with pytest.raises(HasParticipantsError):
            await manager.delete_event(seeded.id, OWNER)

        assert await repository.get(seeded.id) is not None


class TestConcurrentWriters:

    @pytest.mark.asyncio
    async def test_exactly_one_status_change_wins(self):
        manager = EventManager(InterleavingRepository())
        event = await manager.create_event(create_payload(), OWNER)

        results = await asyncio.gather(
            manager.change_status(event.id, EventStatus.PUBLISHED, OWNER),
            manager.change_status(event.id, EventStatus.CANCELED, OWNER),
            return_exceptions=True,
        )

        winners = [r for r in results if isinstance(r, Event)]
        losers = [r for r in results if isinstance(r, ConflictRetryError)]
        assert len(winners) == 1
        assert len(losers) == 1

        stored = await manager.get_event(event.id)
        assert stored.status is winners[0].status
        assert stored.version == 2

    @pytest.mark.asyncio
    async def test_update_racing_status_change(self):
        manager = EventManager(InterleavingRepository())
        event = await manager.create_event(create_payload(), OWNER)

        results = await asyncio.gather(
            manager.update_event(event.id, EventUpdate(title="Renamed"), OWNER),
            manager.change_status(event.id, EventStatus.PUBLISHED, OWNER),
            return_exceptions=True,
        )

        assert sum(isinstance(r, ConflictRetryError) for r in results) == 1
        stored = await manager.get_event(event.id)
        assert (stored.title == "Renamed") != (stored.status is EventStatus.PUBLISHED)
