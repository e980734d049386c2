"""Racing claims against a shared database file."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from taskboard.db_models import Role, Task, TaskStatus, User
from taskboard.errors import Conflict
from taskboard.services.mutations import claim_task, release_task
from taskboard.store import Store
from tests.conftest import add_user, make_engine


@pytest.fixture
async def file_db(tmp_path):
    engine = await make_engine(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}")
    factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)  # type: ignore[call-overload]
    await add_user(factory, "manager-1", Role.manager)
    yield factory
    await engine.dispose()


async def _seed_task(factory, tid: str = "tk_race") -> str:
    async with factory() as session:
        session.add(Task(id=tid, title="Race me", created_by="manager-1"))
        await session.commit()
    return tid


async def _claim_in_own_session(factory, user: User, tid: str):
    async with factory() as session:
        return await claim_task(Store(session, timeout=30), user, tid)


@pytest.mark.asyncio
async def test_two_concurrent_claims_one_winner(file_db):
    u1 = await add_user(file_db, "U1")
    u2 = await add_user(file_db, "U2")
    tid = await _seed_task(file_db)

    results = await asyncio.gather(
        _claim_in_own_session(file_db, u1, tid),
        _claim_in_own_session(file_db, u2, tid),
        return_exceptions=True,
    )

    wins = [r for r in results if isinstance(r, dict)]
    losses = [r for r in results if isinstance(r, Conflict)]
    assert len(wins) == 1
    assert len(losses) == 1

    async with file_db() as session:
        task = await session.get(Task, tid)
    assert task.status == TaskStatus.claimed
    assert task.claimed_by == wins[0]["claimed_by"]
    assert task.claimed_by in ("U1", "U2")


@pytest.mark.asyncio
async def test_many_concurrent_claims_one_winner(file_db):
    users = [await add_user(file_db, f"U{i}") for i in range(6)]
    tid = await _seed_task(file_db)

    results = await asyncio.gather(
        *(_claim_in_own_session(file_db, u, tid) for u in users), return_exceptions=True
    )

    assert sum(isinstance(r, dict) for r in results) == 1
    assert sum(isinstance(r, Conflict) for r in results) == len(users) - 1


class StaleStore(Store):
    """Serves a snapshot taken before another request changed the row."""

    def __init__(self, session, snapshot: Task):
        super().__init__(session)
        self.snapshot = snapshot
        self.stale_reads = 1

    async def get(self, model, key, timeout=None):
        if model is Task and self.stale_reads:
            self.stale_reads -= 1
            return self.snapshot
        return await super().get(model, key, timeout=timeout)


@pytest.mark.asyncio
async def test_conditional_write_rejects_stale_read(file_db):
    u1 = await add_user(file_db, "U1")
    u2 = await add_user(file_db, "U2")
    tid = await _seed_task(file_db)

    snapshot = Task(id=tid, title="Race me", created_by="manager-1", status=TaskStatus.available)

    # U1 wins while U2 is still looking at the old row
    await _claim_in_own_session(file_db, u1, tid)

    async with file_db() as session:
        with pytest.raises(Conflict):
            await claim_task(StaleStore(session, snapshot), u2, tid)

    async with file_db() as session:
        task = await session.get(Task, tid)
    assert task.claimed_by == "U1"


@pytest.mark.asyncio
async def test_release_loses_to_concurrent_reclaim(file_db):
    u1 = await add_user(file_db, "U1")
    u2 = await add_user(file_db, "U2")
    admin = await add_user(file_db, "admin-1", Role.admin)
    tid = await _seed_task(file_db)
    await _claim_in_own_session(file_db, u1, tid)

    # Admin read the row while U1 held it; meanwhile U1 released and U2 claimed
    snapshot = Task(
        id=tid,
        title="Race me",
        created_by="manager-1",
        status=TaskStatus.claimed,
        claimed_by="U1",
        claimed_at=datetime.now(UTC),
    )
    async with file_db() as session:
        await release_task(Store(session), u1, tid)
    await _claim_in_own_session(file_db, u2, tid)

    async with file_db() as session:
        with pytest.raises(Conflict):
            await release_task(StaleStore(session, snapshot), admin, tid)

    async with file_db() as session:
        task = await session.get(Task, tid)
    assert task.status == TaskStatus.claimed
    assert task.claimed_by == "U2"
