"""SQLModel table definitions for Taskboard."""

from __future__ import annotations

import enum
from datetime import UTC, datetime

from sqlalchemy import Index
from sqlmodel import Field, SQLModel


class Role(str, enum.Enum):
    user = "user"
    manager = "manager"
    admin = "admin"


class TaskStatus(str, enum.Enum):
    available = "available"
    claimed = "claimed"
    completed = "completed"
    cancelled = "cancelled"


TERMINAL_STATUSES = frozenset({TaskStatus.completed, TaskStatus.cancelled})


def _utcnow() -> datetime:
    return datetime.now(UTC)


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(primary_key=True)
    role: Role = Field(default=Role.user, index=True)
    display_name: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime | None = None


class Task(SQLModel, table=True):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_status_created_at", "status", "created_at"),
        Index("ix_tasks_claimed_by_status", "claimed_by", "status"),
        Index("ix_tasks_assigned_manager_id", "assigned_manager_id"),
    )

    id: str = Field(primary_key=True)
    title: str
    description: str = Field(default="")
    status: TaskStatus = Field(default=TaskStatus.available, index=True)
    claimed_by: str | None = Field(default=None, foreign_key="users.id")
    created_by: str = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=_utcnow, index=True)
    updated_at: datetime | None = None
    claimed_at: datetime | None = None
    completed_at: datetime | None = None
    # Manager responsible for reviewing the work
    assigned_manager_id: str | None = Field(default=None, foreign_key="users.id")
    deadline: datetime | None = None
    level: int | None = None  # difficulty, 1-5
