"""Pytest configuration and fixtures."""
import itertools

import pytest
from fastapi.testclient import TestClient

import auth
import models
from config import Settings
from main import create_app


@pytest.fixture
def settings():
    """Settings pointing at a private in-memory database."""
    return Settings(database_url="sqlite:///:memory:")


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    """TestClient with the app lifespan running (database opened and closed)."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def session_factory(app, client):
    """Open short-lived sessions on the app's database for direct setup."""
    return app.state.db.session


@pytest.fixture
def make_user(client):
    counter = itertools.count(1)

    def _make(role="citizen", name=None, password="secret123"):
        n = next(counter)
        resp = client.post("/auth/signup", json={
            "name": name or f"{role.title()} {n}",
            "email": f"{role}{n}@example.com",
            "password": password,
            "role": role,
        })
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make


@pytest.fixture
def admin_headers(client, session_factory):
    db = session_factory()
    try:
        db.add(models.User(
            name="Admin User",
            email="admin@example.com",
            password=auth.get_password_hash("adminsecret"),
            role="admin",
        ))
        db.commit()
    finally:
        db.close()

    resp = client.post("/auth/signin", json={"email": "admin@example.com", "password": "adminsecret"})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['accessToken']}"}


@pytest.fixture
def make_report(client, make_user):
    def _make(user=None, **overrides):
        owner = user or make_user("citizen")
        body = {
            "userId": owner["id"],
            "category": "Garbage Dumping",
            "description": "Pile of plastic waste near the lake",
            "location": "Lake Road",
            "coordinates": {"latitude": 22.5726, "longitude": 88.3639},
        }
        body.update(overrides)
        resp = client.post("/reports", json=body)
        assert resp.status_code == 201, resp.text
        return resp.json()["report"]

    return _make


@pytest.fixture
def award_points(session_factory, make_user):
    """Insert reports assigned to a volunteer directly, to give them EcoPoints."""

    def _award(volunteer_id, resolved=0, in_progress=0):
        owner = make_user("citizen")
        db = session_factory()
        try:
            for status, count in (("Resolved", resolved), ("In Progress", in_progress)):
                for _ in range(count):
                    db.add(models.Report(
                        user_id=owner["id"],
                        category="Cleanup",
                        description="Seeded task",
                        location="Somewhere",
                        latitude=1.0,
                        longitude=2.0,
                        status=status,
                        assigned_to=volunteer_id,
                        resolved_at=models.utcnow() if status == "Resolved" else None,
                        resolved_by=volunteer_id if status == "Resolved" else None,
                    ))
            db.commit()
        finally:
            db.close()

    return _award
