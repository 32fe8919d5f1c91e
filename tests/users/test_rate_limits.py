from __future__ import annotations

import pytest

import config.testing

from src.absence_portal.absence_portal.main import create_app


@pytest.fixture
def limited_client(container, monkeypatch):
    monkeypatch.setattr(config.testing, "RATELIMIT_ENABLED", True)
    app = create_app(container, settings_module="config.testing")
    return app.test_client()


def test_login_is_limited_to_ten_attempts(limited_client):
    for _ in range(10):
        resp = limited_client.post("/api/auth/login", json={"username": "admin", "password": "wrong"})
        assert resp.status_code == 401

    blocked = limited_client.post("/api/auth/login", json={"username": "admin", "password": "admin123"})

    assert blocked.status_code == 429
    assert blocked.get_json() == {"success": False, "message": "Too many requests. Please try again later."}


def test_otp_verify_is_limited_to_ten_attempts(limited_client):
    for _ in range(10):
        resp = limited_client.post("/api/otp/verify", json={"token": "ffffffff", "code": "1234"})
        assert resp.status_code == 401

    blocked = limited_client.post("/api/otp/verify", json={"token": "ffffffff", "code": "1234"})

    assert blocked.status_code == 429
    assert blocked.get_json()["success"] is False


def test_limits_are_counted_per_endpoint(limited_client):
    for _ in range(10):
        limited_client.post("/api/otp/verify", json={"token": "ffffffff", "code": "1234"})

    resp = limited_client.post("/api/auth/login", json={"username": "admin", "password": "admin123"})

    assert resp.status_code == 200
