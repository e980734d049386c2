"""Test fixtures with in-memory SQLite via SQLModel."""

from __future__ import annotations

import time

import jwt
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from taskboard.config import settings
from taskboard.database import get_db_session
from taskboard.db_models import Role, Task, User  # noqa: F401 - register tables
from taskboard.main import app
from taskboard.rate_limit import limiter

TEST_SECRET = "test-signing-secret"


@pytest.fixture(autouse=True)
def _test_settings(monkeypatch):
    monkeypatch.setattr(settings, "jwt_secret", TEST_SECRET)
    monkeypatch.setattr(settings, "jwt_algorithm", "HS256")
    monkeypatch.setattr(settings, "jwt_audience", None)
    monkeypatch.setattr(settings, "jwt_issuer", None)
    monkeypatch.setattr(settings, "bootstrap_admin_uids", "")
    limiter.reset()


async def make_engine(url: str = "sqlite+aiosqlite://"):
    engine = create_async_engine(
        url, echo=False, connect_args={"check_same_thread": False, "timeout": 30}
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    return engine


@pytest.fixture
async def db():
    engine = await make_engine()
    factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)  # type: ignore[call-overload]

    async def override_get_db_session():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session

    yield factory

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture
async def client(db):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def make_token(uid: str, secret: str = TEST_SECRET, expires_in: int = 3600, **claims) -> str:
    payload = {"sub": uid, "exp": int(time.time()) + expires_in, **claims}
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_header(uid: str, **claims) -> dict:
    return {"Authorization": f"Bearer {make_token(uid, **claims)}", "Accept": "application/json"}


async def add_user(factory, uid: str, role: Role = Role.user) -> User:
    """Helper: insert a user row directly with the given role."""
    async with factory() as session:
        user = User(id=uid, role=role)
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user


@pytest.fixture
async def people(db):
    """An admin, a manager and two plain users, already provisioned."""
    await add_user(db, "admin-1", Role.admin)
    await add_user(db, "manager-1", Role.manager)
    await add_user(db, "U1", Role.user)
    await add_user(db, "U2", Role.user)
    return {
        "admin": auth_header("admin-1"),
        "manager": auth_header("manager-1"),
        "u1": auth_header("U1"),
        "u2": auth_header("U2"),
    }


async def create_task(client: AsyncClient, headers: dict, title: str = "Sweep the floor") -> str:
    """Helper: create a task as manager/admin, return its id."""
    resp = await client.post(
        "/v1/tasks", json={"title": title, "description": "All of it"}, headers=headers
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["id"]
