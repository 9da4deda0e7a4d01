from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from mongomock_motor import AsyncMongoMockClient

import src.database as database_module
from src.config import settings
from src.main import app
from src.services.access_guard import Actor, Role

LISTING_FIELDS = {
    "business_name": "Joe's Diner",
    "category": "Cafe & Bar",
    "description": "Breakfast all day and strong coffee.",
    "email": "joe@example.com",
    "phone": "+1 512 555 0100",
    "address": "100 Congress Ave",
    "city": "Austin",
    "image": "https://img.example.com/joes.png",
}


@pytest.fixture
def mongo_db(monkeypatch):
    database = AsyncMongoMockClient()["listing_directory_test"]
    monkeypatch.setattr(database_module, "_database", database)
    return database


@pytest.fixture
async def client(mongo_db):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client


@pytest.fixture
def listing_fields() -> dict:
    return dict(LISTING_FIELDS)


@pytest.fixture
def user_a() -> Actor:
    return Actor(id="user-a", role=Role.USER, name="Alice")


@pytest.fixture
def user_b() -> Actor:
    return Actor(id="user-b", role=Role.USER, name="Bob")


@pytest.fixture
def user_c() -> Actor:
    return Actor(id="user-c", role=Role.USER, name="Carol")


@pytest.fixture
def admin() -> Actor:
    return Actor(id="admin-1", role=Role.ADMIN, name="Root")


def make_token(user_id: str, role: str = "user", name: str = "") -> str:
    claims = {"sub": user_id, "role": role, "name": name, "iat": int(datetime.now(timezone.utc).timestamp())}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def bearer(user_id: str, role: str = "user", name: str = "") -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, role=role, name=name)}"}


@pytest.fixture
def auth_headers():
    return bearer
