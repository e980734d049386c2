"""Row access for users and tasks, bounded by a timeout.

The services only rely on affected-row counts from ``update_where`` and
``delete_where`` to detect lost races, so any SQL backend SQLAlchemy supports
will do. Every call runs under ``asyncio.wait_for`` and every driver error is
translated into the taxonomy in :mod:`taskboard.errors`.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from fastapi import Depends
from sqlalchemy import delete, update
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from taskboard.config import settings
from taskboard.database import get_db_session
from taskboard.errors import Conflict, StoreUnavailable

logger = logging.getLogger("taskboard.store")


class Store:
    def __init__(self, session: AsyncSession, timeout: float | None = None):
        self.session = session
        self.timeout = timeout if timeout is not None else settings.store_timeout_seconds

    async def _run(self, op, timeout: float | None):
        limit = timeout if timeout is not None else self.timeout
        try:
            return await asyncio.wait_for(op(), timeout=limit)
        except TimeoutError:
            logger.warning("Store call timed out after %.1fs", limit)
            await self._rollback()
            raise StoreUnavailable(f"Store did not answer within {limit:g}s") from None
        except IntegrityError as e:
            await self._rollback()
            raise Conflict("Row conflicts with existing data") from e
        except DBAPIError as e:
            logger.warning("Store error: %s", e.__class__.__name__)
            await self._rollback()
            raise StoreUnavailable() from e

    async def _rollback(self) -> None:
        with contextlib.suppress(SQLAlchemyError):
            await self.session.rollback()

    async def get(self, model: type[SQLModel], key: str, timeout: float | None = None):
        """Fetch one row by primary key, bypassing the session's identity map."""

        async def op():
            return await self.session.get(model, key, populate_existing=True)

        return await self._run(op, timeout)

    async def find(
        self,
        model: type[SQLModel],
        *where,
        order_by: Any = None,
        limit: int | None = None,
        offset: int = 0,
        timeout: float | None = None,
    ) -> list:
        async def op():
            query = select(model).where(*where).execution_options(populate_existing=True)
            if order_by is not None:
                clauses = order_by if isinstance(order_by, list | tuple) else (order_by,)
                query = query.order_by(*clauses)
            if offset:
                query = query.offset(offset)
            if limit is not None:
                query = query.limit(limit)
            result = await self.session.execute(query)
            return list(result.scalars().all())

        return await self._run(op, timeout)

    async def insert(self, row: SQLModel, timeout: float | None = None):
        async def op():
            self.session.add(row)
            await self.session.commit()
            await self.session.refresh(row)
            return row

        return await self._run(op, timeout)

    async def update_where(
        self,
        model: type[SQLModel],
        where: list,
        patch: dict,
        timeout: float | None = None,
    ) -> int:
        """Conditionally update rows; return how many rows the predicate matched."""

        async def op():
            stmt = (
                update(model)
                .where(*where)
                .values(**patch)
                .execution_options(synchronize_session=False)
            )
            result = await self.session.execute(stmt)
            await self.session.commit()
            return result.rowcount

        return await self._run(op, timeout)

    async def delete_where(
        self, model: type[SQLModel], where: list, timeout: float | None = None
    ) -> int:
        async def op():
            stmt = delete(model).where(*where).execution_options(synchronize_session=False)
            result = await self.session.execute(stmt)
            await self.session.commit()
            return result.rowcount

        return await self._run(op, timeout)


async def get_store(session: AsyncSession = Depends(get_db_session)) -> Store:
    return Store(session)
