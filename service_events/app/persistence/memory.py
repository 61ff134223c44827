"""
In-memory event repository for the Events Service.
"""

import asyncio
from typing import Dict, List, Optional

from shared.errors import ConflictRetryError, NotFoundError
from shared.logging import get_logger

from ..lifecycle.models import Event, EventStatus


class InMemoryEventRepository:
    """Process-local event store with optimistic concurrency.

    Reads return immutable snapshots. Writes go through ``compare_and_set``:
    the stored record is replaced only if its version still equals the
    version the caller read, otherwise the caller gets ``ConflictRetryError``
    and nothing is written.
    """

    def __init__(self):
        self._events: Dict[int, Event] = {}
        self._next_id = 1
        self._lock = asyncio.Lock()
        self.logger = get_logger("events.repository")

    async def get(self, event_id: int) -> Optional[Event]:
        return self._events.get(event_id)

    async def list(self, status: Optional[EventStatus] = None, category: Optional[str] = None,
                   organizer_id: Optional[int] = None) -> List[Event]:
        """Matching events ordered by date, then id."""
        events = [
            event for event in self._events.values()
            if (status is None or event.status is status)
            and (category is None or event.category == category)
            and (organizer_id is None or event.organizer_id == organizer_id)
        ]
        return sorted(events, key=lambda event: (event.date, event.id))

    async def add(self, event: Event) -> Event:
        """Store a new event, assigning its id."""
        async with self._lock:
            stored = event.model_copy(update={"id": self._next_id, "version": 1})
            self._events[stored.id] = stored
            self._next_id += 1
        return stored

    async def compare_and_set(self, event: Event, expected_version: int) -> Event:
        """Replace the stored record if it is still at ``expected_version``."""
        async with self._lock:
            self._check_version(event.id, expected_version)
            stored = event.model_copy(update={"version": expected_version + 1})
            self._events[stored.id] = stored
        return stored

    async def delete(self, event_id: int, expected_version: int) -> None:
        async with self._lock:
            self._check_version(event_id, expected_version)
            del self._events[event_id]

    def _check_version(self, event_id: int, expected_version: int) -> None:
        current = self._events.get(event_id)
        if current is None:
            raise NotFoundError("Event not found", details={"event_id": event_id})
        if current.version != expected_version:
            self.logger.info(
                "Concurrent modification detected",
                event_id=event_id,
                expected_version=expected_version,
                current_version=current.version,
            )
            raise ConflictRetryError(details={"event_id": event_id})

    def __len__(self) -> int:
        return len(self._events)
