"""Pydantic models for request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class TaskCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=500, description="Short task title")
    description: str = Field(default="", max_length=50_000, description="What needs doing")
    assigned_manager_id: str | None = Field(default=None, description="Reviewing manager")
    deadline: datetime | None = Field(default=None, description="No claims after this time")
    level: int | None = Field(default=None, ge=1, le=5, description="Difficulty, 1-5")


class TaskUpdateRequest(BaseModel):
    """Fields left out are unchanged; null clears assignment, deadline or level."""

    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=50_000)
    assigned_manager_id: str | None = None
    deadline: datetime | None = None
    level: int | None = Field(default=None, ge=1, le=5)


class RoleUpdateRequest(BaseModel):
    role: str = Field(..., description="One of user, manager, admin")


class TaskOut(BaseModel):
    id: str
    title: str
    description: str = ""
    status: str
    claimed_by: str | None = None
    created_by: str
    assigned_manager_id: str | None = None
    deadline: str | None = None
    expired: bool = False
    level: int | None = None
    created_at: str | None = None
    updated_at: str | None = None
    claimed_at: str | None = None
    completed_at: str | None = None


class TaskListOut(BaseModel):
    tasks: list[TaskOut]


class UserOut(BaseModel):
    id: str
    role: str
    display_name: str | None = None
    created_at: str | None = None


class UserListOut(BaseModel):
    users: list[UserOut]


class ErrorBody(BaseModel):
    code: str
    message: str
    retryable: bool = False


class Result(BaseModel):
    """Envelope returned by every route: either ``data`` or ``error`` is set."""

    ok: bool
    data: Any | None = None
    error: ErrorBody | None = None


class TaskResult(Result):
    data: TaskOut | None = None


class TaskListResult(Result):
    data: TaskListOut | None = None


class UserResult(Result):
    data: UserOut | None = None


class UserListResult(Result):
    data: UserListOut | None = None


class ErrorResult(Result):
    ok: bool = False
