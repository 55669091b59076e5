"""Shared fixtures for the API tests.

Every test gets its own SQLite file seeded with the default roles,
permissions, question statuses and the admin account.
"""

import os
import tempfile

# Settings are read at import time, so they must be in place before the app loads.
_IMPORT_DB_DIR = tempfile.mkdtemp(prefix="employdex-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_IMPORT_DB_DIR}/import.db"
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET_KEY"] = "test-secret"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app import app
from config import DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD
from core.database import create_db_engine, get_db
from models.base import Base
from utils.seed import seed_defaults

DEFAULT_PASSWORD = "Password1!"


@pytest.fixture()
def session_factory(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path/'test.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = factory()
    try:
        seed_defaults(db)
    finally:
        db.close()

    yield factory
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    # Not used as a context manager: startup seeding would target the real database.
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


def login(client, username, password=DEFAULT_PASSWORD):
    r = client.post(
        "/api/authentication/login",
        json={"username": username, "password": password},
    )
    assert r.status_code == 200, r.text
    return r.json()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def create_question(client, headers, text="Which planet is known as the red planet?", **overrides):
    payload = {
        "question_text": text,
        "question_type": "multiple_choice",
        "difficulty_level": "easy",
        "explanation": "Iron oxide gives Mars its colour.",
        "options": [
            {"text": "Venus"},
            {"text": "Mars", "is_correct": True},
            {"text": "Jupiter"},
        ],
    }
    payload.update(overrides)
    r = client.post("/api/questions", json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


@pytest.fixture()
def admin_login(client):
    return login(client, DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD)


@pytest.fixture()
def admin_headers(admin_login):
    return bearer(admin_login["access_token"])


@pytest.fixture()
def role_ids(client, admin_headers):
    r = client.get("/api/role_management/roles", headers=admin_headers)
    assert r.status_code == 200
    return {role["role_name"]: role["role_id"] for role in r.json()["roles"]}


@pytest.fixture()
def make_user(client, admin_headers, role_ids):
    """Factory: create a user with the given role names and return (user, headers)."""

    def _make(email, roles=(), mobile_number=None, first_name="Test", last_name="User"):
        payload = {
            "user_email": email,
            "password": DEFAULT_PASSWORD,
            "first_name": first_name,
            "last_name": last_name,
            "roles": [role_ids[name] for name in roles],
        }
        if mobile_number:
            payload["mobile_number"] = mobile_number
        r = client.post("/api/user_management/users", json=payload, headers=admin_headers)
        assert r.status_code == 201, r.text
        user = r.json()
        return user, bearer(login(client, email)["access_token"])

    return _make


@pytest.fixture()
def user_headers(make_user):
    _, headers = make_user("user@example.com", roles=["User"])
    return headers


@pytest.fixture()
def reviewer_headers(make_user):
    _, headers = make_user("reviewer@example.com", roles=["Reviewer"])
    return headers
