"""HTTP and WebSocket tests against the assembled application."""

from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from api import create_app
from api.websockets import CLOSE_UNAUTHORIZED


@pytest.fixture
def client(store, pool, settings):
    with TestClient(create_app(settings, pool=pool)) as test_client:
        yield test_client


def register(client, name, offered=(), wanted=()):
    """Register through the API and return (user, auth headers)."""
    response = client.post("/api/auth/register", json={
        "email": f"{name.lower()}@example.com",
        "password": "password123",
        "name": name,
        "skills_offered": list(offered),
        "skills_wanted": list(wanted)
    })
    assert response.status_code == 201
    data = response.json()["data"]
    return data["user"], {"Authorization": f"Bearer {data['token']}"}


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["data"]["version"] == "1.0.0"


def test_unknown_route(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Route not found"}


def test_health(client):
    response = client.get("/system/health")
    assert response.status_code == 200
    assert response.json()["data"]["database_status"] == "connected"
    assert response.json()["data"]["push_connections"] == 0


def test_register_login_me(client):
    user, headers = register(client, "Alice", offered=["Python", "Python"])
    assert user["skills_offered"] == ["Python"]
    assert "password_hash" not in user

    login = client.post("/api/auth/login", json={"email": "ALICE@example.com", "password": "password123"})
    assert login.status_code == 200
    assert login.json()["message"] == "Login successful"

    me = client.get("/api/auth/me", headers=headers)
    assert me.json()["data"]["user"]["email"] == "alice@example.com"


def test_requires_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["success"] is False

    response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


def test_validation_errors(client):
    response = client.post("/api/auth/register", json={"email": "not-an-email", "password": "x", "name": "A"})
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation error"
    fields = {error["field"] for error in body["errors"]}
    assert {"email", "password"} <= fields


def test_page_limit_ceiling(client):
    response = client.get("/api/users", params={"limit": 500})
    assert response.status_code == 400
    assert response.json()["errors"] == [{"field": "limit", "message": "Limit must be between 1 and 50"}]


def test_swap_flow(client):
    alice, alice_headers = register(client, "Alice", offered=["Python"], wanted=["Guitar"])
    bob, bob_headers = register(client, "Bob", offered=["Guitar"], wanted=["Python"])

    matches = client.get(f"/api/users/{alice['id']}/skill-matches", headers=alice_headers)
    assert [m["name"] for m in matches.json()["data"]["matches"]] == ["Bob"]

    payload = {
        "to_user_id": bob["id"],
        "skill_offered": "Python",
        "skill_wanted": "Guitar",
        "message": "Want to trade lessons?"
    }
    created = client.post("/api/swaps", json=payload, headers=alice_headers)
    assert created.status_code == 201
    swap = created.json()["data"]["swap_request"]
    assert swap["status"] == "pending"

    duplicate = client.post("/api/swaps", json=payload, headers=alice_headers)
    assert duplicate.status_code == 409

    # Only the recipient may accept
    assert client.put(f"/api/swaps/{swap['id']}/accept", headers=alice_headers).status_code == 403
    accepted = client.put(f"/api/swaps/{swap['id']}/accept", headers=bob_headers)
    assert accepted.json()["data"]["swap_request"]["status"] == "accepted"

    completed = client.put(f"/api/swaps/{swap['id']}/complete", headers=alice_headers)
    assert completed.json()["data"]["swap_request"]["completed_at"] is not None

    feedback = client.post(f"/api/feedback/{swap['id']}", json={"rating": 5}, headers=alice_headers)
    assert feedback.status_code == 201
    again = client.post(f"/api/feedback/{swap['id']}", json={"rating": 5}, headers=alice_headers)
    assert again.status_code == 409

    profile = client.get(f"/api/users/{bob['id']}")
    assert profile.json()["data"]["user"]["rating"] == 5.0

    listed = client.get("/api/swaps", params={"type": "received"}, headers=bob_headers)
    assert listed.json()["data"]["pagination"]["total"] == 1

    inbox = client.get("/api/notifications", headers=alice_headers).json()["data"]
    assert [n["type"] for n in inbox["notifications"]] == ["swap_completed", "swap_accepted"]
    assert inbox["unread_count"] == 2


def test_invalid_path_id(client):
    _, headers = register(client, "Alice")
    response = client.get("/api/swaps/not-a-uuid", headers=headers)
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "swap_id"


def test_missing_swap(client):
    _, headers = register(client, "Alice")
    response = client.get(f"/api/swaps/{uuid4()}", headers=headers)
    assert response.status_code == 404


def test_admin_routes(client, store):
    alice, alice_headers = register(client, "Alice")
    root, root_headers = register(client, "Root")

    assert client.get("/api/admin/dashboard", headers=alice_headers).status_code == 403

    store.users[UUID(root["id"])]["is_admin"] = True
    dashboard = client.get("/api/admin/dashboard", headers=root_headers)
    assert dashboard.status_code == 200
    assert dashboard.json()["data"]["users"]["total"] == 2

    sent = client.post("/api/admin/messages", json={
        "title": "Maintenance",
        "message": "Down tonight",
        "type": "maintenance",
        "is_global": True
    }, headers=root_headers)
    assert sent.status_code == 201
    assert sent.json()["data"]["delivered"] == 2

    visible = client.get("/api/notifications/messages", headers=alice_headers)
    assert [m["title"] for m in visible.json()["data"]["messages"]] == ["Maintenance"]

    banned = client.put(f"/api/admin/users/{alice['id']}/ban", headers=root_headers)
    assert banned.status_code == 200
    assert client.get("/api/auth/me", headers=alice_headers).status_code == 403


def test_websocket_rejects_bad_token(client):
    with client.websocket_connect("/ws/notifications") as websocket:
        websocket.send_json({"token": "garbage"})
        with pytest.raises(WebSocketDisconnect) as exc_info:
            websocket.receive_json()
    assert exc_info.value.code == CLOSE_UNAUTHORIZED


def test_websocket_push(client):
    alice, alice_headers = register(client, "Alice", offered=["Python"], wanted=["Guitar"])
    bob, bob_headers = register(client, "Bob", offered=["Guitar"], wanted=["Python"])
    token = bob_headers["Authorization"].split()[1]

    with client.websocket_connect("/ws/notifications") as websocket:
        websocket.send_json({"token": token})
        status = websocket.receive_json()
        assert status["type"] == "connection_status"
        assert status["data"]["user_id"] == bob["id"]

        websocket.send_json({"type": "ping"})
        assert websocket.receive_json()["type"] == "pong"

        client.post("/api/swaps", json={
            "to_user_id": bob["id"],
            "skill_offered": "Python",
            "skill_wanted": "Guitar",
            "message": "Trade?"
        }, headers=alice_headers)

        events = [websocket.receive_json()["type"] for _ in range(2)]
        assert set(events) == {"notification", "new-swap-request"}


def test_websocket_binary_token_frame(client):
    with client.websocket_connect("/ws/notifications") as websocket:
        websocket.send_bytes(b"\x00\x01")
        with pytest.raises(WebSocketDisconnect) as exc_info:
            websocket.receive_json()
    assert exc_info.value.code == CLOSE_UNAUTHORIZED


def test_websocket_disconnect_before_token(client):
    with client.websocket_connect("/ws/notifications") as websocket:
        websocket.close()
    assert client.app.state.hub.connection_count() == 0


def test_websocket_binary_frame_after_auth(client):
    _, headers = register(client, "Bob")
    token = headers["Authorization"].split()[1]

    with client.websocket_connect("/ws/notifications") as websocket:
        websocket.send_json({"token": token})
        assert websocket.receive_json()["type"] == "connection_status"

        websocket.send_bytes(b"\x00\x01")
        with pytest.raises(WebSocketDisconnect) as exc_info:
            websocket.receive_json()
    assert exc_info.value.code == 1003
    assert client.app.state.hub.connection_count() == 0
