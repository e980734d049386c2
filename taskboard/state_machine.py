"""Task status transitions and who may trigger them.

The stored status is the only source of truth: every check here is made
against a freshly read row, and the mutation service repeats the source
status in the WHERE clause of its conditional write.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import UTC, datetime

from taskboard.db_models import TERMINAL_STATUSES, Role, Task, TaskStatus
from taskboard.errors import Conflict, Forbidden, InvalidTransition
from taskboard.policy import Action, TaskContext, can_perform


class Transition(str, enum.Enum):
    claim = "claim"
    release = "release"
    complete = "complete"
    cancel = "cancel"


@dataclass(frozen=True)
class TransitionRule:
    sources: frozenset[TaskStatus]
    target: TaskStatus
    action: Action


RULES: dict[Transition, TransitionRule] = {
    Transition.claim: TransitionRule(
        frozenset({TaskStatus.available}), TaskStatus.claimed, Action.claim_task
    ),
    Transition.release: TransitionRule(
        frozenset({TaskStatus.claimed}), TaskStatus.available, Action.release_task
    ),
    Transition.complete: TransitionRule(
        frozenset({TaskStatus.claimed}), TaskStatus.completed, Action.complete_task
    ),
    Transition.cancel: TransitionRule(
        frozenset({TaskStatus.available, TaskStatus.claimed}),
        TaskStatus.cancelled,
        Action.edit_task,
    ),
}


def is_terminal(status: TaskStatus | str) -> bool:
    return TaskStatus(status) in TERMINAL_STATUSES


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def is_expired(task: Task, now: datetime | None = None) -> bool:
    if task.deadline is None:
        return False
    return (now or datetime.now(UTC)) > _as_utc(task.deadline)


def check(
    transition: Transition,
    task: Task,
    role: Role | str,
    actor_id: str,
    now: datetime | None = None,
) -> TaskStatus:
    """Validate ``transition`` on ``task`` for the given actor; return the target status.

    Source status is checked before the actor so that an illegal transition
    reports InvalidTransition regardless of who asked. A claim on a task that
    is currently claimed is a Conflict for every caller. An available task
    whose deadline has passed can no longer be claimed.
    """
    rule = RULES[transition]
    current = TaskStatus(task.status)

    if transition is Transition.claim and current is TaskStatus.claimed:
        raise Conflict()

    if current not in rule.sources:
        raise InvalidTransition(
            f"Cannot {transition.value} a task that is {current.value}"
        )

    if transition is Transition.claim and is_expired(task, now):
        raise InvalidTransition("Task deadline has passed")

    ctx = TaskContext(actor_id=actor_id, claimed_by=task.claimed_by)
    if not can_perform(role, rule.action, ctx):
        raise Forbidden(f"Your role may not {transition.value} this task")

    return rule.target
