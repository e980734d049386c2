"""Role-based access policy: a fixed (role, action) table with two ownership conditions."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from taskboard.db_models import Role


class Action(str, enum.Enum):
    view_available_tasks = "viewAvailableTasks"
    view_all_tasks = "viewAllTasks"
    claim_task = "claimTask"
    release_task = "releaseTask"
    complete_task = "completeTask"
    edit_task = "editTask"
    delete_task = "deleteTask"
    manage_users = "manageUsers"


@dataclass(frozen=True)
class TaskContext:
    """What the policy needs to know about the task an action targets."""

    actor_id: str | None = None
    claimed_by: str | None = None

    @property
    def unclaimed(self) -> bool:
        return self.claimed_by is None

    @property
    def own_claim(self) -> bool:
        return self.actor_id is not None and self.claimed_by == self.actor_id


# Cell values: True (always), False (never), or a condition name checked
# against the TaskContext.
ALLOW = True
DENY = False
IF_UNCLAIMED = "unclaimed"
IF_OWN_CLAIM = "own_claim"

_TABLE: dict[Action, dict[Role, bool | str]] = {
    Action.view_available_tasks: {Role.user: ALLOW, Role.manager: DENY, Role.admin: DENY},
    Action.view_all_tasks: {Role.user: DENY, Role.manager: ALLOW, Role.admin: ALLOW},
    Action.claim_task: {Role.user: IF_UNCLAIMED, Role.manager: DENY, Role.admin: DENY},
    Action.release_task: {Role.user: IF_OWN_CLAIM, Role.manager: DENY, Role.admin: ALLOW},
    Action.complete_task: {Role.user: IF_OWN_CLAIM, Role.manager: ALLOW, Role.admin: ALLOW},
    Action.edit_task: {Role.user: DENY, Role.manager: ALLOW, Role.admin: ALLOW},
    Action.delete_task: {Role.user: DENY, Role.manager: ALLOW, Role.admin: ALLOW},
    Action.manage_users: {Role.user: DENY, Role.manager: DENY, Role.admin: ALLOW},
}


def _coerce(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


def can_perform(role: Role | str, action: Action | str, context: TaskContext | None = None) -> bool:
    """Decide whether ``role`` may perform ``action``.

    Unknown roles and actions are denied. Conditional cells deny when no
    context is given.
    """
    r = _coerce(Role, role)
    a = _coerce(Action, action)
    if r is None or a is None:
        return False

    rule = _TABLE[a].get(r, DENY)
    if isinstance(rule, bool):
        return rule
    if context is None:
        return False
    return bool(getattr(context, rule))
