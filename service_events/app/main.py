"""
Events service for the MOV Event Platform.
"""

from typing import Dict, Optional

from fastapi import Depends, Query, Request

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.identity import Identity, identity_from_headers
from shared.responses import success_response

from .lifecycle import EventCreate, EventStatus, EventStatusUpdate, EventUpdate
from .manager import EventManager
from .persistence import InMemoryEventRepository


def current_identity(request: Request) -> Optional[Identity]:
    """Caller identity forwarded by the gateway, or None."""
    return identity_from_headers(request.headers)


class EventService(BaseService):
    """Events service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None,
                 repository: Optional[InMemoryEventRepository] = None):
        super().__init__("events", 3002, config or get_config("events", 3002))
        self.repository = repository if repository is not None else InMemoryEventRepository()
        self.manager = EventManager(self.repository, metrics=self.metrics)

        self._setup_event_routes()
        self.app.state.event_service = self

    def _setup_event_routes(self):
        """Set up event routes."""

        @self.app.get("/events")
        async def list_events(
            status: Optional[EventStatus] = Query(None),
            category: Optional[str] = Query(None),
        ):
            events = await self.manager.list_events(status=status, category=category)
            return success_response(
                "Events retrieved successfully",
                {"events": [event.to_wire() for event in events]},
            )

        # Declared before /events/{event_id}.
        @self.app.get("/events/organizer/me")
        async def organizer_events(identity: Optional[Identity] = Depends(current_identity)):
            events = await self.manager.get_organizer_events(identity)
            return success_response(
                "Organizer events retrieved successfully",
                {"events": [event.to_wire() for event in events]},
            )

        @self.app.get("/events/{event_id}")
        async def get_event(event_id: int):
            event = await self.manager.get_event(event_id)
            return success_response("Event retrieved successfully", {"event": event.to_wire()})

        @self.app.post("/events", status_code=201)
        async def create_event(payload: EventCreate,
                               identity: Optional[Identity] = Depends(current_identity)):
            event = await self.manager.create_event(payload, identity)
            return success_response("Event created successfully", {"event": event.to_wire()}, status_code=201)

        @self.app.put("/events/{event_id}")
        async def update_event(event_id: int, payload: EventUpdate,
                               identity: Optional[Identity] = Depends(current_identity)):
            event = await self.manager.update_event(event_id, payload, identity)
            return success_response("Event updated successfully", {"event": event.to_wire()})

        @self.app.delete("/events/{event_id}")
        async def delete_event(event_id: int, identity: Optional[Identity] = Depends(current_identity)):
            await self.manager.delete_event(event_id, identity)
            return success_response("Event deleted successfully")

        @self.app.patch("/events/{event_id}/status")
        async def change_event_status(event_id: int, payload: EventStatusUpdate,
                                      identity: Optional[Identity] = Depends(current_identity)):
            event = await self.manager.change_status(event_id, payload.status, identity)
            return success_response("Event status changed successfully", {"event": event.to_wire()})

    async def _check_dependencies(self) -> Dict[str, str]:
        return {"repository": "ok"}


def create_app(config: Optional[ServiceConfig] = None,
               repository: Optional[InMemoryEventRepository] = None):
    return EventService(config, repository=repository).app


if __name__ == "__main__":
    service = EventService()
    service.run()
