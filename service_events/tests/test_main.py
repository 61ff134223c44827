"""
Unit tests for the Events service HTTP API.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from service_events.app.lifecycle import Event, EventStatus
from service_events.app.main import EventService, create_app
from service_events.app.persistence import InMemoryEventRepository
from shared.test_helpers import ORGANIZER, OTHER_ORGANIZER, PARTICIPANT, make_test_config, sample_event_payload


class TestEventService:
    """Test cases for EventService."""

    @pytest.fixture
    def repository(self):
        return InMemoryEventRepository()

    @pytest.fixture
    def app(self, repository):
        return create_app(make_test_config("events", 3002), repository=repository)

    @pytest.fixture
    def client(self, app):
        return TestClient(app)

    def _create(self, client, user=ORGANIZER, **overrides):
        response = client.post("/events", json=sample_event_payload(**overrides), headers=user.headers())
        assert response.status_code == 201
        return response.json()["data"]["event"]

    def test_health_endpoint(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["data"]["service"] == "events"
        assert data["data"]["dependencies"] == {"repository": "ok"}

    def test_create_event(self, client):
        response = client.post("/events", json=sample_event_payload(), headers=ORGANIZER.headers())

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Event created successfully"
        event = body["data"]["event"]
        assert event["status"] == "Planning"
        assert event["organizerId"] == ORGANIZER.id
        assert event["currentParticipants"] == 0
        assert event["maxParticipants"] == 50
        assert "version" not in event

    def test_create_requires_identity(self, client):
        response = client.post("/events", json=sample_event_payload())

        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "message": "Authentication required",
            "errorCode": "AUTHENTICATION_ERROR",
        }

    @pytest.mark.parametrize(
        "overrides,field",
        [
            ({"title": "ab"}, "title"),
            ({"maxParticipants": 0}, "maxParticipants"),
            ({"maxParticipants": 10001}, "maxParticipants"),
            ({"category": "x" * 51}, "category"),
            ({"location": "x" * 256}, "location"),
            ({"description": "x" * 1001}, "description"),
        ],
    )
    def test_create_validation(self, client, overrides, field):
        response = client.post("/events", json=sample_event_payload(**overrides), headers=ORGANIZER.headers())

        assert response.status_code == 400
        body = response.json()
        assert body["errorCode"] == "VALIDATION_ERROR"
        assert body["message"] == "Validation error"
        assert field in [error["field"] for error in body["errors"]]

    def test_create_past_date(self, client):
        response = client.post("/events", json=sample_event_payload(days_ahead=-1), headers=ORGANIZER.headers())

        assert response.status_code == 400
        assert {"field": "date", "message": "Event date must be in the future"} in response.json()["errors"]

    def test_create_unknown_field(self, client):
        payload = sample_event_payload(status="Published")

        response = client.post("/events", json=payload, headers=ORGANIZER.headers())

        assert response.status_code == 400

    def test_list_and_get(self, client):
        created = self._create(client)

        listed = client.get("/events")
        single = client.get(f"/events/{created['id']}")

        assert listed.status_code == 200
        assert [e["id"] for e in listed.json()["data"]["events"]] == [created["id"]]
        assert single.json()["data"]["event"]["title"] == created["title"]

    def test_list_filters(self, client):
        self._create(client, category="music")
        sport = self._create(client, category="sport")

        response = client.get("/events", params={"category": "sport"})

        assert [e["id"] for e in response.json()["data"]["events"]] == [sport["id"]]

    def test_list_invalid_status_filter(self, client):
        response = client.get("/events", params={"status": "Archived"})

        assert response.status_code == 400

    def test_get_unknown(self, client):
        response = client.get("/events/999")

        assert response.status_code == 404
        assert response.json()["message"] == "Event not found"
        assert response.json()["errorCode"] == "NOT_FOUND"

    def test_organizer_events(self, client):
        mine = self._create(client)
        self._create(client, user=OTHER_ORGANIZER)

        response = client.get("/events/organizer/me", headers=ORGANIZER.headers())

        assert response.status_code == 200
        assert [e["id"] for e in response.json()["data"]["events"]] == [mine["id"]]

    def test_organizer_events_requires_identity(self, client):
        assert client.get("/events/organizer/me").status_code == 401

    def test_update_event(self, client):
        created = self._create(client)

        response = client.put(
            f"/events/{created['id']}", json={"title": "Renamed"}, headers=ORGANIZER.headers()
        )

        assert response.status_code == 200
        assert response.json()["data"]["event"]["title"] == "Renamed"
        assert response.json()["message"] == "Event updated successfully"

    def test_update_by_other_organizer(self, client):
        created = self._create(client)

        response = client.put(
            f"/events/{created['id']}", json={"title": "Hijacked"}, headers=OTHER_ORGANIZER.headers()
        )

        assert response.status_code == 403
        assert response.json()["errorCode"] == "AUTHORIZATION_ERROR"

    def test_update_running_event(self, client):
        created = self._create(client)
        for status in ("Published", "Running"):
            client.patch(f"/events/{created['id']}/status", json={"status": status}, headers=ORGANIZER.headers())

        response = client.put(f"/events/{created['id']}", json={"title": "Too late"}, headers=ORGANIZER.headers())

        assert response.status_code == 400
        assert response.json()["errorCode"] == "INVALID_STATE_TRANSITION"

    def test_change_status(self, client):
        created = self._create(client)

        response = client.patch(
            f"/events/{created['id']}/status", json={"status": "Published"}, headers=ORGANIZER.headers()
        )

        assert response.status_code == 200
        assert response.json()["data"]["event"]["status"] == "Published"
        assert response.json()["message"] == "Event status changed successfully"

    def test_illegal_status_change(self, client):
        created = self._create(client)

        response = client.patch(
            f"/events/{created['id']}/status", json={"status": "Completed"}, headers=ORGANIZER.headers()
        )

        assert response.status_code == 400
        body = response.json()
        assert body["errorCode"] == "INVALID_STATE_TRANSITION"
        assert body["message"] == "Invalid state transition from Planning to Completed"

    def test_invalid_status_value(self, client):
        created = self._create(client)

        response = client.patch(
            f"/events/{created['id']}/status", json={"status": "Archived"}, headers=ORGANIZER.headers()
        )

        assert response.status_code == 400
        assert response.json()["errors"] == [{"field": "status", "message": "Invalid event status"}]

    def test_status_change_by_non_owner_with_illegal_target(self, client):
        created = self._create(client)

        response = client.patch(
            f"/events/{created['id']}/status", json={"status": "Completed"}, headers=OTHER_ORGANIZER.headers()
        )

        assert response.status_code == 403

    def test_delete_event(self, client):
        created = self._create(client)

        response = client.delete(f"/events/{created['id']}", headers=ORGANIZER.headers())

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Event deleted successfully"}
        assert client.get(f"/events/{created['id']}").status_code == 404

    def test_delete_published_event(self, client):
        created = self._create(client)
        client.patch(f"/events/{created['id']}/status", json={"status": "Published"}, headers=ORGANIZER.headers())

        response = client.delete(f"/events/{created['id']}", headers=ORGANIZER.headers())

        assert response.status_code == 400
        assert response.json()["message"] == "Can only delete events in Planning status"

    @pytest.mark.parametrize("status", list(EventStatus))
    def test_delete_with_participants(self, repository, client, status):
        seeded = asyncio.run(repository.add(
            Event(
                id=0,
                organizer_id=ORGANIZER.id,
                title="Full house",
                location="Hall",
                date=datetime.now(timezone.utc) + timedelta(days=3),
                max_participants=10,
                current_participants=3,
                category="social",
                status=status,
            )
        ))

        response = client.delete(f"/events/{seeded.id}", headers=ORGANIZER.headers())

        assert response.status_code == 400
        assert response.json()["errorCode"] == "HAS_PARTICIPANTS"

    def test_participant_headers_still_subject_to_ownership(self, client):
        created = self._create(client)

        response = client.delete(f"/events/{created['id']}", headers=PARTICIPANT.headers())

        assert response.status_code == 403

    def test_unknown_route(self, client):
        response = client.get("/nothing-here")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Route not found", "errorCode": "NOT_FOUND"}

    def test_metrics_label_by_route_template(self, app, client):
        for event_id in range(1, 21):
            client.get(f"/events/{event_id}")
            client.get(f"/missing/{event_id}")

        registry = app.state.event_service.metrics.registry
        labels = {
            sample.labels["endpoint"]
            for metric in registry.collect()
            for sample in metric.samples
            if sample.name == "http_requests_total"
        }

        assert labels == {"/events/{event_id}", "unmatched"}

    def test_request_id_echoed(self, client):
        response = client.get("/events", headers={"X-Request-ID": "abc-123"})

        assert response.headers["X-Request-ID"] == "abc-123"

    def test_unexpected_error_is_500_envelope(self, app):
        service = app.state.event_service

        async def explode(*args, **kwargs):
            raise RuntimeError("boom")

        service.manager.list_events = explode
        client = TestClient(app, raise_server_exceptions=False)

        response = client.get("/events")

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "message": "Internal server error",
            "errorCode": "INTERNAL_ERROR",
        }

    def test_service_instance(self):
        service = EventService(make_test_config("events", 3002))

        assert service.service_name == "events"
        assert isinstance(service.repository, InMemoryEventRepository)
