"""Alembic environment for Taskboard.

Migrations run at application startup: ``taskboard.database.init_db`` opens
the connection and hands it over through ``config.attributes``. Batch mode
is on because SQLite cannot ALTER most column definitions in place.
"""

from __future__ import annotations

from alembic import context
from sqlmodel import SQLModel

from taskboard.db_models import Task, User  # noqa: F401 - register all tables

config = context.config
target_metadata = SQLModel.metadata


def run_migrations() -> None:
    connection = config.attributes.get("connection")
    if connection is None:
        raise RuntimeError("Migrations are applied by taskboard.database.init_db()")

    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


run_migrations()
