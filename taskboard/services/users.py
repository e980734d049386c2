"""User provisioning and role management."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from taskboard.config import settings
from taskboard.db_models import Role, User
from taskboard.errors import Conflict, Forbidden, NotFound, ValidationFailed
from taskboard.policy import Action, can_perform
from taskboard.store import Store

logger = logging.getLogger("taskboard.users")


def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "role": Role(user.role).value,
        "display_name": user.display_name,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


async def get_or_provision(store: Store, uid: str, display_name: str | None = None) -> User:
    """Return the stored user for ``uid``, creating it on first sign-in."""
    user = await store.get(User, uid)
    if user:
        return user

    role = Role.admin if uid in settings.admin_uids else Role.user
    try:
        user = await store.insert(User(id=uid, role=role, display_name=display_name))
    except Conflict:
        # Another request provisioned the same uid first
        user = await store.get(User, uid)
        if user is None:
            raise
        return user

    logger.info("Provisioned user %s with role %s", uid, role.value)
    return user


async def list_users(store: Store, actor: User) -> list[dict]:
    if not can_perform(actor.role, Action.manage_users):
        raise Forbidden("Only admins can manage users")
    rows = await store.find(User, order_by=User.created_at.asc())
    return [user_to_dict(u) for u in rows]


async def set_role(store: Store, actor: User, uid: str, role: str) -> dict:
    """Change a user's role. Admins cannot demote themselves."""
    if not can_perform(actor.role, Action.manage_users):
        raise Forbidden("Only admins can manage users")
    try:
        new_role = Role(role)
    except ValueError:
        raise ValidationFailed(f"Invalid role: {role}") from None

    target = await store.get(User, uid)
    if not target:
        raise NotFound("User not found")
    if target.id == actor.id and new_role is not Role.admin:
        raise Forbidden("Admins cannot demote themselves")

    affected = await store.update_where(
        User,
        [User.id == uid],
        {"role": new_role, "updated_at": datetime.now(UTC)},
    )
    target = await store.get(User, uid) if affected else None
    if target is None:
        raise NotFound("User not found")
    logger.info("User %s role set to %s by %s", uid, new_role.value, actor.id)
    return user_to_dict(target)
