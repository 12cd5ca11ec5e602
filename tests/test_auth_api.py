"""Tests for the session-based auth routes."""

from __future__ import annotations

from tests.conftest import login_as


def _register(client, email="runner@example.com", password="pw-12345", role=None):
    body = {"email": email, "password": password}
    if role is not None:
        body["role"] = role
    return client.post("/auth/register", json=body)


def test_root_banner(client) -> None:
    resp = client.get("/")

    assert resp.status_code == 200
    assert resp.text == "Race Timing System Backend Running"


def test_register_defaults_to_participant(client) -> None:
    resp = _register(client, role="SUPERUSER")

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "User registered successfully"
    assert body["user"]["email"] == "runner@example.com"
    assert body["user"]["role"] == "PARTICIPANT"
    assert "password" not in body["user"]


def test_register_keeps_valid_role(client) -> None:
    assert _register(client, role="ORGANIZER").json()["user"]["role"] == "ORGANIZER"


def test_register_duplicate_email(client) -> None:
    _register(client)
    resp = _register(client, email="Runner@Example.com")

    assert resp.status_code == 400
    assert resp.json() == {"error": "User already exists"}


def test_register_requires_password(client) -> None:
    resp = client.post("/auth/register", json={"email": "runner@example.com"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request body"


def test_login_errors(client) -> None:
    _register(client)

    resp = client.post("/auth/login", json={"email": "nobody@example.com", "password": "pw-12345"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Incorrect email."}

    resp = client.post("/auth/login", json={"email": "runner@example.com", "password": "nope"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid credentials."}


def test_login_me_logout_flow(client) -> None:
    assert client.get("/auth/me").status_code == 401

    user = login_as(client, "PARTICIPANT", email="flow@example.com")

    resp = client.get("/auth/me")
    assert resp.status_code == 200
    assert resp.json() == {"user": {"id": user["id"], "email": "flow@example.com", "role": "PARTICIPANT"}}

    resp = client.post("/auth/logout")
    assert resp.status_code == 200
    assert resp.json() == {"message": "Logged out successfully"}

    resp = client.get("/auth/me")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Not authenticated"}


def test_login_redirects_browsers(client) -> None:
    _register(client)

    resp = client.post(
        "/auth/login",
        json={"email": "runner@example.com", "password": "pw-12345"},
        follow_redirects=False,
    )

    assert resp.status_code == 302
    assert resp.headers["location"] == "/"
    assert client.get("/auth/me").status_code == 200
