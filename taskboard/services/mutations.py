"""Task writes: create, claim, release, complete, cancel, edit, delete.

Each status change reads the row fresh, asks the state machine whether the
transition is legal for this actor, then issues a single conditional UPDATE
that repeats the observed status (and claimant) in its WHERE clause. Zero
affected rows means another request changed the task first.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from taskboard.db_models import Role, Task, TaskStatus, User
from taskboard.errors import Conflict, Forbidden, InvalidTransition, NotFound, ValidationFailed
from taskboard.ids import task_id as make_task_id
from taskboard.policy import Action, can_perform
from taskboard.services.queries import task_to_dict
from taskboard.state_machine import Transition, check, is_terminal
from taskboard.store import Store

logger = logging.getLogger("taskboard.tasks")

# Marks an edit_task field the caller did not send
UNSET: Any = object()


def _utcnow() -> datetime:
    return datetime.now(UTC)


async def _load(store: Store, tid: str) -> Task:
    task = await store.get(Task, tid)
    if not task:
        raise NotFound("Task not found")
    return task


async def _reload(store: Store, tid: str) -> dict:
    task = await store.get(Task, tid)
    if not task:
        # Deleted between our write and the re-read
        raise NotFound("Task not found")
    return task_to_dict(task)


def _check_level(level: int | None) -> int | None:
    if level is not None and not 1 <= level <= 5:
        raise ValidationFailed("Level must be between 1 and 5")
    return level


def _normalize_deadline(deadline: datetime | None) -> datetime | None:
    if deadline is None:
        return None
    return deadline if deadline.tzinfo else deadline.replace(tzinfo=UTC)


async def _check_assignee(store: Store, uid: str | None) -> str | None:
    """The assigned manager must be a known manager or admin."""
    if uid is None:
        return None
    user = await store.get(User, uid)
    if user is None or Role(user.role) not in (Role.manager, Role.admin):
        raise ValidationFailed(f"Cannot assign task to {uid}: not a manager")
    return uid


async def create_task(
    store: Store,
    actor: User,
    title: str,
    description: str = "",
    assigned_manager_id: str | None = None,
    deadline: datetime | None = None,
    level: int | None = None,
) -> dict:
    if not can_perform(actor.role, Action.edit_task):
        raise Forbidden("Only managers and admins can create tasks")
    title = title.strip()
    if not title:
        raise ValidationFailed("Missing 'title' field")
    level = _check_level(level)
    assigned_manager_id = await _check_assignee(store, assigned_manager_id)

    task = Task(
        id=make_task_id(),
        title=title,
        description=description or "",
        status=TaskStatus.available,
        created_by=actor.id,
        assigned_manager_id=assigned_manager_id,
        deadline=_normalize_deadline(deadline),
        level=level,
    )
    task = await store.insert(task)
    logger.info("Task %s created by %s", task.id, actor.id)
    return task_to_dict(task)


async def claim_task(store: Store, actor: User, tid: str) -> dict:
    task = await _load(store, tid)
    target = check(Transition.claim, task, actor.role, actor.id)

    now = _utcnow()
    affected = await store.update_where(
        Task,
        [Task.id == tid, Task.status == TaskStatus.available, Task.claimed_by.is_(None)],
        {"status": target, "claimed_by": actor.id, "claimed_at": now, "updated_at": now},
    )
    if affected == 0:
        logger.info("Claim on %s by %s lost the race", tid, actor.id)
        raise Conflict()

    logger.info("Task %s claimed by %s", tid, actor.id)
    return await _reload(store, tid)


async def release_task(store: Store, actor: User, tid: str) -> dict:
    task = await _load(store, tid)
    target = check(Transition.release, task, actor.role, actor.id)

    affected = await store.update_where(
        Task,
        [Task.id == tid, Task.status == TaskStatus.claimed, Task.claimed_by == task.claimed_by],
        {"status": target, "claimed_by": None, "claimed_at": None, "updated_at": _utcnow()},
    )
    if affected == 0:
        raise Conflict("Task changed while it was being released")

    logger.info("Task %s released by %s (was held by %s)", tid, actor.id, task.claimed_by)
    return await _reload(store, tid)


async def complete_task(store: Store, actor: User, tid: str) -> dict:
    task = await _load(store, tid)
    target = check(Transition.complete, task, actor.role, actor.id)

    now = _utcnow()
    affected = await store.update_where(
        Task,
        [Task.id == tid, Task.status == TaskStatus.claimed, Task.claimed_by == task.claimed_by],
        {"status": target, "completed_at": now, "updated_at": now},
    )
    if affected == 0:
        raise Conflict("Task changed while it was being completed")

    logger.info("Task %s completed by %s", tid, actor.id)
    return await _reload(store, tid)


async def cancel_task(store: Store, actor: User, tid: str) -> dict:
    task = await _load(store, tid)
    target = check(Transition.cancel, task, actor.role, actor.id)

    affected = await store.update_where(
        Task,
        [Task.id == tid, Task.status == task.status],
        {"status": target, "claimed_by": None, "claimed_at": None, "updated_at": _utcnow()},
    )
    if affected == 0:
        raise Conflict("Task changed while it was being cancelled")

    logger.info("Task %s cancelled by %s", tid, actor.id)
    return await _reload(store, tid)


async def edit_task(
    store: Store,
    actor: User,
    tid: str,
    title: str | None = None,
    description: str | None = None,
    assigned_manager_id: str | None = UNSET,
    deadline: datetime | None = UNSET,
    level: int | None = UNSET,
) -> dict:
    """Change a task's details. Status is never touched here.

    ``title`` and ``description`` are left alone when None. The assignment,
    deadline and level are left alone when omitted and cleared by None.
    """
    if not can_perform(actor.role, Action.edit_task):
        raise Forbidden("Only managers and admins can edit tasks")

    patch: dict = {}
    if title is not None:
        if not title.strip():
            raise ValidationFailed("Title cannot be empty")
        patch["title"] = title.strip()
    if description is not None:
        patch["description"] = description
    if level is not UNSET:
        patch["level"] = _check_level(level)
    if deadline is not UNSET:
        patch["deadline"] = _normalize_deadline(deadline)
    if assigned_manager_id is not UNSET:
        patch["assigned_manager_id"] = await _check_assignee(store, assigned_manager_id)
    if not patch:
        raise ValidationFailed("Nothing to update")

    task = await _load(store, tid)
    if is_terminal(task.status):
        raise InvalidTransition(f"Cannot edit a task that is {TaskStatus(task.status).value}")

    patch["updated_at"] = _utcnow()
    affected = await store.update_where(Task, [Task.id == tid, Task.status == task.status], patch)
    if affected == 0:
        raise Conflict("Task changed while it was being edited")

    logger.info("Task %s edited by %s", tid, actor.id)
    return await _reload(store, tid)


async def delete_task(store: Store, actor: User, tid: str) -> dict:
    if not can_perform(actor.role, Action.delete_task):
        raise Forbidden("Only managers and admins can delete tasks")

    affected = await store.delete_where(Task, [Task.id == tid])
    if affected == 0:
        raise NotFound("Task not found")

    logger.info("Task %s deleted by %s", tid, actor.id)
    return {"id": tid, "deleted": True}
