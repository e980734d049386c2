"""The access table, cell by cell."""

from __future__ import annotations

import pytest

from taskboard.db_models import Role
from taskboard.policy import Action, TaskContext, can_perform

# Expected outcome with a context that satisfies any ownership condition
# (unclaimed task for claim, own claim for release/complete).
EXPECTED = {
    Action.view_available_tasks: {Role.user: True, Role.manager: False, Role.admin: False},
    Action.view_all_tasks: {Role.user: False, Role.manager: True, Role.admin: True},
    Action.claim_task: {Role.user: True, Role.manager: False, Role.admin: False},
    Action.release_task: {Role.user: True, Role.manager: False, Role.admin: True},
    Action.complete_task: {Role.user: True, Role.manager: True, Role.admin: True},
    Action.edit_task: {Role.user: False, Role.manager: True, Role.admin: True},
    Action.delete_task: {Role.user: False, Role.manager: True, Role.admin: True},
    Action.manage_users: {Role.user: False, Role.manager: False, Role.admin: True},
}


def _satisfying_context(action: Action) -> TaskContext:
    if action is Action.claim_task:
        return TaskContext(actor_id="u", claimed_by=None)
    return TaskContext(actor_id="u", claimed_by="u")


@pytest.mark.parametrize("action", list(Action))
@pytest.mark.parametrize("role", list(Role))
def test_table_matches(role, action):
    assert can_perform(role, action, _satisfying_context(action)) is EXPECTED[action][role]


def test_table_covers_every_cell():
    assert len(EXPECTED) == 8
    assert all(len(row) == 3 for row in EXPECTED.values())


def test_accepts_plain_strings():
    assert can_perform("manager", "viewAllTasks")
    assert not can_perform("user", "manageUsers")


def test_user_cannot_claim_claimed_task():
    assert not can_perform(Role.user, Action.claim_task, TaskContext("u", claimed_by="other"))


@pytest.mark.parametrize("action", [Action.release_task, Action.complete_task])
def test_user_needs_own_claim(action):
    assert can_perform(Role.user, action, TaskContext("u", claimed_by="u"))
    assert not can_perform(Role.user, action, TaskContext("u", claimed_by="other"))
    assert not can_perform(Role.user, action, TaskContext("u", claimed_by=None))


def test_conditional_cells_deny_without_context():
    assert not can_perform(Role.user, Action.claim_task)
    assert not can_perform(Role.user, Action.release_task)
    assert can_perform(Role.admin, Action.release_task)


@pytest.mark.parametrize("action", list(Action))
def test_unknown_role_denied(action):
    assert not can_perform("superuser", action, _satisfying_context(action))
    assert not can_perform("", action)


def test_unknown_action_denied():
    for role in Role:
        assert not can_perform(role, "launchRockets", TaskContext("u", claimed_by="u"))


def test_context_without_actor_is_not_own_claim():
    assert not TaskContext(actor_id=None, claimed_by=None).own_claim
    assert TaskContext(actor_id=None, claimed_by=None).unclaimed
