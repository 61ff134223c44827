"""
Event operations for the Events Service.

Each mutation reads the current snapshot, applies the lifecycle rules to it
and writes the result back with compare-and-set against the version it read.
"""

from datetime import datetime
from typing import Callable, List, Optional

from shared.errors import AuthenticationRequiredError, NotFoundError
from shared.identity import Identity
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from .lifecycle import (
    Event,
    EventCreate,
    EventStatus,
    EventUpdate,
    apply_update,
    check_delete,
    is_terminal,
    transition,
    utcnow,
)
from .persistence import InMemoryEventRepository


def require_identity(requester: Optional[Identity]) -> Identity:
    if requester is None:
        raise AuthenticationRequiredError()
    return requester


class EventManager:
    """Event CRUD and status changes on top of a repository."""

    def __init__(self, repository: InMemoryEventRepository,
                 metrics: Optional[MetricsCollector] = None,
                 clock: Callable[[], datetime] = utcnow):
        self.repository = repository
        self.metrics = metrics
        self.clock = clock
        self.logger = get_logger("events.manager")

    async def create_event(self, data: EventCreate, requester: Optional[Identity]) -> Event:
        requester = require_identity(requester)
        now = self.clock()
        event = await self.repository.add(
            Event(
                id=0,
                organizer_id=requester.id,
                status=EventStatus.PLANNING,
                created_at=now,
                updated_at=now,
                **data.model_dump(),
            )
        )
        self.logger.info("Event created", event_id=event.id, organizer_id=requester.id)
        self._record("event_created")
        return event

    async def list_events(self, status: Optional[EventStatus] = None,
                          category: Optional[str] = None) -> List[Event]:
        return await self.repository.list(status=status, category=category)

    async def get_event(self, event_id: int) -> Event:
        event = await self.repository.get(event_id)
        if event is None:
            raise NotFoundError("Event not found", details={"event_id": event_id})
        return event

    async def get_organizer_events(self, requester: Optional[Identity]) -> List[Event]:
        requester = require_identity(requester)
        return await self.repository.list(organizer_id=requester.id)

    async def update_event(self, event_id: int, data: EventUpdate,
                           requester: Optional[Identity]) -> Event:
        requester = require_identity(requester)
        current = await self.get_event(event_id)
        updated = apply_update(current, requester, data.changes(), clock=self.clock)
        stored = await self.repository.compare_and_set(updated, current.version)
        self.logger.info("Event updated", event_id=event_id, fields=sorted(data.changes()))
        self._record("event_updated")
        return stored

    async def delete_event(self, event_id: int, requester: Optional[Identity]) -> None:
        requester = require_identity(requester)
        current = await self.get_event(event_id)
        check_delete(current, requester)
        await self.repository.delete(event_id, current.version)
        self.logger.info("Event deleted", event_id=event_id)
        self._record("event_deleted")

    async def change_status(self, event_id: int, target: EventStatus,
                            requester: Optional[Identity]) -> Event:
        requester = require_identity(requester)
        current = await self.get_event(event_id)
        changed = transition(current, requester, target, clock=self.clock)
        stored = await self.repository.compare_and_set(changed, current.version)
        self.logger.info(
            "Event status changed",
            event_id=event_id,
            from_status=current.status.value,
            to_status=target.value,
        )
        if self.metrics is not None:
            self.metrics.increment_counter(
                "status_transitions_total",
                from_status=current.status.value,
                to_status=target.value,
            )
        if is_terminal(stored.status):
            self._record("event_closed")
        return stored

    def _record(self, event_type: str) -> None:
        if self.metrics is not None:
            self.metrics.record_business_event(event_type)
