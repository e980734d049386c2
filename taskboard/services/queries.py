"""Role-scoped read views over tasks."""

from __future__ import annotations

from taskboard.db_models import Task, TaskStatus, User
from taskboard.errors import Forbidden, NotFound, ValidationFailed
from taskboard.policy import Action, can_perform
from taskboard.state_machine import is_expired
from taskboard.store import Store

SORT_KEYS = {
    "created_at": Task.created_at,
    "title": Task.title,
    "status": Task.status,
    "deadline": Task.deadline,
    "level": Task.level,
}


def task_to_dict(task: Task) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "status": TaskStatus(task.status).value,
        "claimed_by": task.claimed_by,
        "created_by": task.created_by,
        "assigned_manager_id": task.assigned_manager_id,
        "deadline": task.deadline.isoformat() if task.deadline else None,
        "expired": is_expired(task),
        "level": task.level,
        "created_at": task.created_at.isoformat() if task.created_at else None,
        "updated_at": task.updated_at.isoformat() if task.updated_at else None,
        "claimed_at": task.claimed_at.isoformat() if task.claimed_at else None,
        "completed_at": task.completed_at.isoformat() if task.completed_at else None,
    }


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _parse_status(status: str | None) -> TaskStatus | None:
    if status is None:
        return None
    try:
        return TaskStatus(status)
    except ValueError:
        raise ValidationFailed(f"Invalid status: {status}") from None


def _ordering(sort: str | None, descending: bool) -> list:
    # created_at ascending is insertion order and also breaks ties
    if sort is None:
        return [Task.created_at.desc() if descending else Task.created_at.asc()]
    column = SORT_KEYS.get(sort)
    if column is None:
        raise ValidationFailed(f"Invalid sort key: {sort}")
    return [column.desc() if descending else column.asc(), Task.created_at.asc()]


async def list_available(store: Store, actor: User) -> list[dict]:
    """Tasks open for claiming. Only the ``user`` role browses this view."""
    if not can_perform(actor.role, Action.view_available_tasks):
        raise Forbidden("Your role does not browse available tasks")
    rows = await store.find(
        Task, Task.status == TaskStatus.available, order_by=Task.created_at.asc()
    )
    return [task_to_dict(t) for t in rows]


async def list_all(
    store: Store,
    actor: User,
    status: str | None = None,
    claimed_by: str | None = None,
    created_by: str | None = None,
    assigned_manager_id: str | None = None,
    level: int | None = None,
    search: str | None = None,
    sort: str | None = None,
    descending: bool = False,
    limit: int | None = None,
    offset: int = 0,
) -> list[dict]:
    """Every task, optionally filtered. Managers and admins only."""
    if not can_perform(actor.role, Action.view_all_tasks):
        raise Forbidden("Only managers and admins can list all tasks")

    where = []
    parsed = _parse_status(status)
    if parsed is not None:
        where.append(Task.status == parsed)
    if claimed_by is not None:
        where.append(Task.claimed_by == claimed_by)
    if created_by is not None:
        where.append(Task.created_by == created_by)
    if assigned_manager_id is not None:
        where.append(Task.assigned_manager_id == assigned_manager_id)
    if level is not None:
        where.append(Task.level == level)
    if search:
        term = f"%{_escape_like(search)}%"
        where.append(
            Task.title.ilike(term, escape="\\") | Task.description.ilike(term, escape="\\")
        )

    rows = await store.find(
        Task, *where, order_by=_ordering(sort, descending), limit=limit, offset=offset
    )
    return [task_to_dict(t) for t in rows]


async def list_assigned(store: Store, actor: User) -> list[dict]:
    """Tasks assigned to the acting manager, newest first."""
    if not can_perform(actor.role, Action.view_all_tasks):
        raise Forbidden("Only managers and admins have assigned tasks")
    rows = await store.find(
        Task, Task.assigned_manager_id == actor.id, order_by=Task.created_at.desc()
    )
    return [task_to_dict(t) for t in rows]


async def list_own_claims(store: Store, actor: User) -> list[dict]:
    rows = await store.find(
        Task,
        Task.claimed_by == actor.id,
        Task.status.in_([TaskStatus.claimed, TaskStatus.completed]),
        order_by=Task.created_at.asc(),
    )
    return [task_to_dict(t) for t in rows]


async def get_task(store: Store, actor: User, task_id: str) -> dict:
    """Fetch one task if the actor may see it.

    Tasks the actor may not see are reported as missing so ids cannot be
    enumerated.
    """
    task = await store.get(Task, task_id)
    if not task:
        raise NotFound("Task not found")

    visible = (
        can_perform(actor.role, Action.view_all_tasks)
        or (
            TaskStatus(task.status) is TaskStatus.available
            and can_perform(actor.role, Action.view_available_tasks)
        )
        or (task.claimed_by is not None and task.claimed_by == actor.id)
    )
    if not visible:
        raise NotFound("Task not found")
    return task_to_dict(task)
