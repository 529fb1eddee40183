"""Shared fixtures: a throwaway SQLite database and an app client."""

import asyncio
import os
import tempfile

# Settings are read at import time, so point them at scratch locations first.
_TMP_DIR = tempfile.mkdtemp(prefix="civicconnect-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["MEDIA_DIR"] = os.path.join(_TMP_DIR, "media")
os.environ["MEDIA_BASE_URL"] = "http://testserver/media"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["APP_ENV"] = "test"
os.environ["GEMINI_API_KEY"] = ""

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from civicconnect.core.security import hash_password
from civicconnect.db.session import async_session_maker, create_tables, drop_tables
from civicconnect.main import app
from civicconnect.models.user import User, UserRole

PASSWORD = "correct-horse-battery"


async def _reset_database() -> None:
    await drop_tables()
    await create_tables()


async def _insert_user(name: str, email: str, role: UserRole) -> User:
    async with async_session_maker() as db:
        user = User(name=name, email=email, password_hash=hash_password(PASSWORD), role=role)
        db.add(user)
        await db.commit()
        return user


@pytest.fixture(autouse=True)
def clean_database():
    """Every test starts from empty tables."""
    asyncio.run(_reset_database())
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def db_session():
    async with async_session_maker() as session:
        yield session


@pytest.fixture
def create_user():
    """Insert a user directly, bypassing registration (which never creates admins)."""

    def _create(name: str = "Citizen", email: str = "citizen@example.com", role: UserRole = UserRole.CITIZEN) -> User:
        return asyncio.run(_insert_user(name, email, role))

    return _create


def login(client: TestClient, email: str, password: str = PASSWORD) -> dict:
    """Log in and return the Authorization header for the session."""
    response = client.post("/api/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def citizen_headers(client, create_user):
    create_user("Asha", "asha@example.com")
    return login(client, "asha@example.com")


@pytest.fixture
def other_citizen_headers(client, create_user):
    create_user("Ravi", "ravi@example.com")
    return login(client, "ravi@example.com")


@pytest.fixture
def admin_headers(client, create_user):
    create_user("Ward Office", "staff@example.com", UserRole.ADMIN)
    return login(client, "staff@example.com")


def report_payload(**overrides) -> dict:
    payload = {
        "description": "Water pipe burst near the market",
        "location": {"lat": 12.9716, "lng": 77.5946, "address": "MG Road, Bengaluru"},
        "images": ["http://testserver/media/photo.jpg"],
        "category": "Water & Supply Management",
    }
    payload.update(overrides)
    return payload
