from __future__ import annotations


def test_login_route_wraps_result_in_success_envelope(client):
    resp = client.post("/api/auth/login", json={"username": "admin", "password": "admin123"})

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["data"]["user"]["role"] == "ADMIN"
    assert body["data"]["token"]


def test_login_route_failure_shape(client):
    resp = client.post("/api/auth/login", json={"username": "admin", "password": "bad"})

    assert resp.status_code == 401
    assert resp.get_json() == {"success": False, "message": "Invalid username or password."}


def test_profile_requires_bearer_token(client):
    resp = client.get("/api/auth/profile")

    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Authorization failed. Token not found."


def test_profile_rejects_garbage_token(client):
    resp = client.get("/api/auth/profile", headers={"Authorization": "Bearer not-a-jwt"})

    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid or expired token."


def test_profile_and_change_password(client, admin_headers):
    profile = client.get("/api/auth/profile", headers=admin_headers)
    assert profile.get_json()["data"]["username"] == "admin"

    changed = client.put(
        "/api/auth/change-password",
        headers=admin_headers,
        json={"current_password": "admin123", "new_password": "s3cret-pass"},
    )
    assert changed.status_code == 200

    relogin = client.post("/api/auth/login", json={"username": "admin", "password": "s3cret-pass"})
    assert relogin.status_code == 200


def test_admin_routes_reject_parent_role(client, parent_headers):
    resp = client.get("/api/students", headers=parent_headers)

    assert resp.status_code == 403
    assert resp.get_json()["message"] == "Administrator permission is required for this action."


def test_health_needs_no_auth(client):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "ok"


def test_unknown_route_uses_failure_shape(client):
    resp = client.get("/api/does-not-exist")

    assert resp.status_code == 404
    assert resp.get_json() == {"success": False, "message": "Not found."}
