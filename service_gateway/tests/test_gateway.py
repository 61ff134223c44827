"""
Tests for the gateway in front of the real Auth and Event services.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from service_auth.app.main import create_app as create_auth_app
from service_events.app.main import create_app as create_events_app
from service_gateway.app.main import create_app
from shared.test_helpers import (
    ORGANIZER,
    OTHER_ORGANIZER,
    PARTICIPANT,
    bearer,
    make_test_config,
    sample_event_payload,
)


@pytest.fixture
def gateway():
    """Gateway whose backends run in-process behind ASGI transports."""
    backends = httpx.AsyncClient(mounts={
        "http://auth.test": httpx.ASGITransport(app=create_auth_app(make_test_config("auth", 3001))),
        "http://events.test": httpx.ASGITransport(app=create_events_app(make_test_config("events", 3002))),
    })
    config = make_test_config(
        "gateway", 3000,
        auth_service_url="http://auth.test",
        event_service_url="http://events.test",
    )
    return TestClient(create_app(config, client=backends))


def create_event(gateway, user=ORGANIZER, **overrides):
    response = gateway.post("/api/v1/events", json=sample_event_payload(**overrides), headers=bearer(user))
    assert response.status_code == 201
    return response.json()["data"]["event"]


def test_register_login_and_profile(gateway):
    registration = {
        "email": "ada@example.com",
        "password": "s3cret!",
        "role": "ORGANIZER",
        "firstName": "Ada",
        "lastName": "Lovelace",
    }
    assert gateway.post("/api/v1/auth/register", json=registration).status_code == 201

    login = gateway.post("/api/v1/auth/login", json={"email": "ada@example.com", "password": "s3cret!"})
    token = login.json()["data"]["token"]

    response = gateway.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["data"]["user"]["lastName"] == "Lovelace"


def test_issued_token_opens_organizer_routes(gateway):
    gateway.post("/api/v1/auth/register", json={
        "email": "ada@example.com", "password": "s3cret!", "role": "ORGANIZER",
    })
    token = gateway.post(
        "/api/v1/auth/login", json={"email": "ada@example.com", "password": "s3cret!"}
    ).json()["data"]["token"]

    response = gateway.post(
        "/api/v1/events", json=sample_event_payload(), headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 201
    assert response.json()["data"]["event"]["organizerId"] == 1


def test_verify_through_gateway(gateway):
    response = gateway.get("/api/v1/auth/verify", headers=bearer(PARTICIPANT))

    assert response.status_code == 200
    assert response.json()["data"]["user"] == {
        "id": PARTICIPANT.id,
        "email": PARTICIPANT.email,
        "role": "PARTICIPANT",
    }


def test_verify_requires_token(gateway):
    response = gateway.get("/api/v1/auth/verify")

    assert response.status_code == 401
    assert response.json()["message"] == "No token provided"


def test_event_lifecycle(gateway):
    event = create_event(gateway)
    assert event["status"] == "Planning"
    path = f"/api/v1/events/{event['id']}"

    for status in ("Published", "Running", "Completed"):
        response = gateway.patch(f"{path}/status", json={"status": status}, headers=bearer(ORGANIZER))
        assert response.status_code == 200
        assert response.json()["data"]["event"]["status"] == status

    response = gateway.patch(f"{path}/status", json={"status": "Canceled"}, headers=bearer(ORGANIZER))

    assert response.status_code == 400
    assert response.json()["errorCode"] == "INVALID_STATE_TRANSITION"


def test_public_reads_need_no_token(gateway):
    event = create_event(gateway)

    listing = gateway.get("/api/v1/events")
    detail = gateway.get(f"/api/v1/events/{event['id']}")

    assert [item["id"] for item in listing.json()["data"]["events"]] == [event["id"]]
    assert detail.json()["data"]["event"] == event


def test_repeated_reads_are_identical(gateway):
    create_event(gateway)

    first = gateway.get("/api/v1/events")
    second = gateway.get("/api/v1/events")

    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()


def test_participant_blocked_before_backend(gateway):
    response = gateway.post("/api/v1/events", json=sample_event_payload(), headers=bearer(PARTICIPANT))

    assert response.status_code == 403
    assert gateway.get("/api/v1/events").json()["data"]["events"] == []


def test_other_organizer_rejected_by_owner_check(gateway):
    event = create_event(gateway)

    response = gateway.patch(
        f"/api/v1/events/{event['id']}/status",
        json={"status": "Published"},
        headers=bearer(OTHER_ORGANIZER),
    )

    assert response.status_code == 403
    assert response.json()["message"] == "Only the organizer can change event status"


def test_organizer_events(gateway):
    mine = create_event(gateway)
    create_event(gateway, user=OTHER_ORGANIZER)

    response = gateway.get("/api/v1/events/organizer/me", headers=bearer(ORGANIZER))

    assert [event["id"] for event in response.json()["data"]["events"]] == [mine["id"]]


def test_validation_errors_pass_through(gateway):
    response = gateway.post(
        "/api/v1/events", json=sample_event_payload(title="x"), headers=bearer(ORGANIZER)
    )

    assert response.status_code == 400
    assert response.json()["errorCode"] == "VALIDATION_ERROR"


def test_spoofed_headers_cannot_impersonate(gateway):
    event = create_event(gateway)
    spoofed = dict(ORGANIZER.headers())
    spoofed.update(bearer(OTHER_ORGANIZER))

    response = gateway.delete(f"/api/v1/events/{event['id']}", headers=spoofed)

    assert response.status_code == 403
    assert gateway.get(f"/api/v1/events/{event['id']}").status_code == 200


def test_backend_down():
    config = make_test_config(
        "gateway", 3000,
        auth_service_url="http://auth.test",
        event_service_url="http://127.0.0.1:9",
    )
    gateway = TestClient(create_app(config))

    response = gateway.get("/api/v1/events")

    assert response.status_code == 503
    body = response.json()
    assert body["errorCode"] == "SERVICE_UNAVAILABLE"
    assert body["error"]
