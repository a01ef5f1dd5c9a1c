"""Tests for the public HTTP API."""

from fastapi.testclient import TestClient

from anime_match.api.app import create_app
from anime_match.containers import AppContainer

ALICE_PICKS = ["1", "2", "3"]
BOB_PICKS = ["2", "4", "5"]


def _ratings(own: list[str], partner: list[str], q3: int = 4) -> dict[str, object]:
    entries = [
        {"item_id": item, "q1": 4, "q2": 4, "q3": 3, "is_self_rating": True}
        for item in own
    ]
    entries.extend(
        {"item_id": item, "q1": 4, "q2": 3, "q3": q3, "is_self_rating": False}
        for item in partner
    )
    return {"ratings": entries}


def _start(client: TestClient) -> tuple[str, str, str, str]:
    created = client.post("/sessions", json={"nickname": "Alice"})
    assert created.status_code == 201
    session = created.json()["session"]
    joined = client.post(
        "/sessions/join", json={"code": session["code"], "nickname": "Bob"}
    )
    assert joined.status_code == 200
    return (
        session["id"],
        session["code"],
        created.json()["participant"]["id"],
        joined.json()["participant"]["id"],
    )


def test_health(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_create_and_join_session(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    created = client.post("/sessions", json={"nickname": "Alice"})
    body = created.json()
    assert body["session"]["status"] == "WAITING"
    assert body["participant"]["is_creator"] is True

    joined = client.post(
        "/sessions/join",
        json={"code": body["session"]["code"].lower(), "nickname": "Bob"},
    )
    session = joined.json()["session"]
    assert session["status"] == "ACTIVE"
    assert session["phase"] == "SELECTION"
    assert [p["nickname"] for p in session["participants"]] == ["Alice", "Bob"]


def test_join_errors_map_to_status_codes(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    _, code, _, _ = _start(client)

    missing = client.post("/sessions/join", json={"code": "ZZZZZZ", "nickname": "Eve"})
    assert missing.status_code == 404
    assert missing.json()["error"] == "not_found"

    full = client.post("/sessions/join", json={"code": code, "nickname": "Eve"})
    assert full.status_code == 409
    assert full.json()["error"] == "full"

    invalid = client.post("/sessions/join", json={"code": code, "nickname": "E"})
    assert invalid.status_code == 422
    assert invalid.json()["error"] == "invalid_input"


def test_duplicate_nickname_conflicts(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    created = client.post("/sessions", json={"nickname": "Alice"}).json()

    response = client.post(
        "/sessions/join",
        json={"code": created["session"]["code"], "nickname": "alice"},
    )

    assert response.status_code == 409
    assert response.json()["error"] == "duplicate_nickname"


def test_partner_picks_stay_hidden_until_rating(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    session_id, _, alice_id, bob_id = _start(client)

    response = client.post(
        f"/sessions/{session_id}/selections",
        json={"item_ids": ALICE_PICKS},
        headers={"X-Participant-Id": alice_id},
    )
    assert response.status_code == 200

    bob_view = client.get(
        f"/sessions/{session_id}", headers={"X-Participant-Id": bob_id}
    ).json()
    assert bob_view["partner_selections"] == []
    assert bob_view["my_selections"] == []
    flags = {p["nickname"]: p["has_selected"] for p in bob_view["participants"]}
    assert flags == {"Alice": True, "Bob": False}

    bob_view = client.post(
        f"/sessions/{session_id}/selections",
        json={"item_ids": BOB_PICKS},
        headers={"X-Participant-Id": bob_id},
    ).json()
    assert bob_view["phase"] == "RATING"
    assert bob_view["partner_selections"] == ALICE_PICKS
    assert bob_view["direct_matches"] == ["2"]


def test_full_match_over_http(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    session_id, code, alice_id, bob_id = _start(client)
    for participant_id, picks in ((alice_id, ALICE_PICKS), (bob_id, BOB_PICKS)):
        client.post(
            f"/sessions/{session_id}/selections",
            json={"item_ids": picks},
            headers={"X-Participant-Id": participant_id},
        )

    not_ready = client.get(f"/sessions/{session_id}/results")
    assert not_ready.status_code == 409
    assert not_ready.json()["error"] == "wrong_phase"

    client.post(
        f"/sessions/{session_id}/ratings",
        json=_ratings(ALICE_PICKS, BOB_PICKS),
        headers={"X-Participant-Id": alice_id},
    )
    final = client.post(
        f"/sessions/{session_id}/ratings",
        json=_ratings(BOB_PICKS, ALICE_PICKS),
        headers={"X-Participant-Id": bob_id},
    )
    assert final.json()["status"] == "COMPLETED"

    results = client.get(f"/sessions/{session_id}/results").json()
    assert results["has_winner"] is True
    assert results["winner"] == "1"
    assert results["items"][0]["total_score"] == 22
    assert results["items"][0]["verdict"] == "excellent"
    assert results["stats"]["items_evaluated"] == 5

    by_code = client.get(f"/sessions/code/{code.lower()}").json()
    assert by_code["has_results"] is True


def test_vetoed_match_reports_no_winner(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    session_id, _, alice_id, bob_id = _start(client)
    for participant_id, picks in ((alice_id, ALICE_PICKS), (bob_id, BOB_PICKS)):
        client.post(
            f"/sessions/{session_id}/selections",
            json={"item_ids": picks},
            headers={"X-Participant-Id": participant_id},
        )
    client.post(
        f"/sessions/{session_id}/ratings",
        json=_ratings(ALICE_PICKS, BOB_PICKS, q3=1),
        headers={"X-Participant-Id": alice_id},
    )
    client.post(
        f"/sessions/{session_id}/ratings",
        json=_ratings(BOB_PICKS, ALICE_PICKS, q3=1),
        headers={"X-Participant-Id": bob_id},
    )

    results = client.get(f"/sessions/{session_id}/results").json()

    assert results["has_winner"] is False
    assert results["winner"] is None
    assert all(item["position"] is None for item in results["items"])


def test_submission_errors(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    session_id, _, alice_id, _ = _start(client)

    missing_header = client.post(
        f"/sessions/{session_id}/selections", json={"item_ids": ALICE_PICKS}
    )
    assert missing_header.status_code == 422

    unknown_item = client.post(
        f"/sessions/{session_id}/selections",
        json={"item_ids": ["1", "2", "99"]},
        headers={"X-Participant-Id": alice_id},
    )
    assert unknown_item.status_code == 404

    early_rating = client.post(
        f"/sessions/{session_id}/ratings",
        json=_ratings(ALICE_PICKS, []),
        headers={"X-Participant-Id": alice_id},
    )
    assert early_rating.status_code == 409
    assert early_rating.json()["error"] == "wrong_phase"

    client.post(
        f"/sessions/{session_id}/selections",
        json={"item_ids": ALICE_PICKS},
        headers={"X-Participant-Id": alice_id},
    )
    changed = client.post(
        f"/sessions/{session_id}/selections",
        json={"item_ids": BOB_PICKS},
        headers={"X-Participant-Id": alice_id},
    )
    assert changed.status_code == 422
    assert changed.json()["error"] == "already_submitted"


def test_unknown_session(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get("/sessions/00000000-0000-0000-0000-000000000000")

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_events_endpoint_returns_newer_snapshots(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    session_id, _, _, _ = _start(client)

    everything = client.get(f"/sessions/{session_id}/events").json()["events"]
    newer = client.get(f"/sessions/{session_id}/events", params={"after": 0}).json()

    assert [e["version"] for e in everything] == [0, 1]
    assert [e["status"] for e in newer["events"]] == ["ACTIVE"]


def test_catalog_routes(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    search = client.get("/catalog/search", params={"q": "titan"}).json()
    assert search["total"] == 1
    assert search["items"][0]["id"] == "1"

    popular = client.get("/catalog/popular", params={"limit": 3}).json()
    assert [item["id"] for item in popular["items"]] == ["1", "2", "3"]

    assert client.get("/catalog/13").json()["title"] == "Your Name"
    assert client.get("/catalog/999").status_code == 404
    assert client.get("/catalog/search", params={"limit": 100}).status_code == 422
