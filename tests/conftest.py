"""Shared fixtures: an in-memory database and a TestClient wired to it."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from racetiming import models  # noqa: F401
from racetiming.db import Base, get_session
from racetiming.main import app


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def _get_test_session():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_session] = _get_test_session
    # no context manager: the startup hook would open the configured database
    yield TestClient(app)
    app.dependency_overrides.clear()


def login_as(client: TestClient, role: str, email: str | None = None, password: str = "s3cret-pass") -> dict:
    email = email or f"{role.lower()}@example.com"
    resp = client.post("/auth/register", json={"email": email, "password": password, "role": role})
    assert resp.status_code == 200, resp.text
    resp = client.post(
        "/auth/login",
        json={"email": email, "password": password},
        headers={"accept": "application/json"},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["user"]


@pytest.fixture
def organizer_client(client):
    login_as(client, "ORGANIZER")
    return client
