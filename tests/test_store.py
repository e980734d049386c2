"""Store timeouts and error translation."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from taskboard.db_models import Task, User
from taskboard.errors import Conflict, StoreUnavailable
from taskboard.main import app
from taskboard.store import Store, get_store


async def _slow():
    await asyncio.sleep(5)


@pytest.mark.asyncio
async def test_timeout_becomes_store_unavailable(db):
    async with db() as session:
        store = Store(session, timeout=0.01)
        with pytest.raises(StoreUnavailable) as exc_info:
            await store._run(_slow, None)
    assert exc_info.value.retryable
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_per_call_timeout_overrides_default(db):
    async with db() as session:
        store = Store(session, timeout=60)
        with pytest.raises(StoreUnavailable):
            await store._run(_slow, 0.01)


@pytest.mark.asyncio
async def test_driver_errors_are_translated(db):
    async def broken():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    async def duplicate():
        raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

    async with db() as session:
        store = Store(session)
        with pytest.raises(StoreUnavailable):
            await store._run(broken, None)
        with pytest.raises(Conflict):
            await store._run(duplicate, None)


@pytest.mark.asyncio
async def test_update_where_reports_affected_rows(db):
    async with db() as session:
        store = Store(session)
        await store.insert(User(id="m"))
        await store.insert(Task(id="tk_a", title="a", created_by="m"))

        assert await store.update_where(Task, [Task.id == "tk_a"], {"title": "b"}) == 1
        assert await store.update_where(Task, [Task.id == "tk_missing"], {"title": "b"}) == 0
        assert (await store.get(Task, "tk_a")).title == "b"
        assert await store.delete_where(Task, [Task.id == "tk_a"]) == 1
        assert await store.get(Task, "tk_a") is None


@pytest.mark.asyncio
async def test_insert_duplicate_is_conflict(db):
    async with db() as session:
        store = Store(session)
        await store.insert(User(id="dup"))
    async with db() as session:
        with pytest.raises(Conflict):
            await Store(session).insert(User(id="dup"))


class SlowReads(Store):
    async def find(self, *args, **kwargs):
        return await self._run(_slow, 0.01)


@pytest.mark.asyncio
async def test_timeout_surfaces_as_503(client, people, db):
    async def slow_store():
        async with db() as session:
            yield SlowReads(session)

    app.dependency_overrides[get_store] = slow_store
    resp = await client.get("/v1/tasks/available", headers=people["u1"])
    assert resp.status_code == 503
    body = resp.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "store_unavailable"
    assert body["error"]["retryable"] is True
