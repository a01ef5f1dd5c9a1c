"""Tests for admin endpoints."""

from fastapi.testclient import TestClient

from anime_match.api.app import create_app
from anime_match.containers import AppContainer
from tests.conftest import FakeClock

ADMIN = {"X-Admin-Token": "admin-token"}


def test_admin_sessions_endpoint(container: AppContainer) -> None:
    app = create_app(container)
    client = TestClient(app)
    container.session_store.create("Alice")

    response = client.get("/admin/sessions", headers=ADMIN)

    assert response.status_code == 200
    data = response.json()
    assert data["sessions"][0]["status"] == "WAITING"
    assert data["sessions"][0]["participants"][0]["nickname"] == "Alice"


def test_admin_expire_session(container: AppContainer) -> None:
    app = create_app(container)
    client = TestClient(app)
    session, _ = container.session_store.create("Alice")

    response = client.post(f"/admin/sessions/{session.id}/expire", headers=ADMIN)

    assert response.status_code == 200
    assert response.json()["status"] == "EXPIRED"
    lookup = client.get(f"/sessions/{session.id}")
    assert lookup.status_code == 404
    assert lookup.json()["error"] == "expired"


def test_admin_purge_sessions(container: AppContainer, clock: FakeClock) -> None:
    app = create_app(container)
    client = TestClient(app)
    created = [
        client.post("/sessions", json={"nickname": name}).json()["session"]["id"]
        for name in ("Alice", "Carol")
    ]
    clock.advance(hours=25)

    response = client.post("/admin/sessions/purge", headers=ADMIN)

    assert response.status_code == 200
    assert response.json() == {"removed": 2}
    assert client.get("/admin/sessions", headers=ADMIN).json() == {"sessions": []}
    for session_id in created:
        assert client.get(f"/sessions/{session_id}/events").status_code == 404


def test_purge_drops_event_history(container: AppContainer, clock: FakeClock) -> None:
    client = TestClient(create_app(container))
    for index in range(50):
        client.post("/sessions", json={"nickname": f"Host{index}"})
    assert len(container.event_log._events) == 50
    clock.advance(hours=25)

    client.post("/admin/sessions/purge", headers=ADMIN)

    assert container.event_log._events == {}


def test_admin_endpoints_require_token(container: AppContainer) -> None:
    app = create_app(container)
    client = TestClient(app)

    assert client.get("/admin/sessions").status_code == 401
    assert client.post("/admin/sessions/purge").status_code == 401
