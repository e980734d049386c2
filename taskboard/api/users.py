"""User routes: the caller's own profile and admin role management."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from taskboard.auth import AuthUser
from taskboard.config import settings
from taskboard.content import ok, parse_body, render_response
from taskboard.db_models import User
from taskboard.errors import ValidationFailed
from taskboard.models import ErrorResult, RoleUpdateRequest, UserListResult, UserResult
from taskboard.rate_limit import limiter
from taskboard.services.users import list_users, set_role, user_to_dict
from taskboard.store import Store, get_store

router = APIRouter()


@router.get("/v1/me", response_model=UserResult, responses={401: {"model": ErrorResult}})
@limiter.limit(settings.rate_limit_read)
async def me(request: Request, user: User = AuthUser):
    """Who you are and which role the server holds for you."""
    return render_response(request, ok(user_to_dict(user)))


@router.get(
    "/v1/users",
    response_model=UserListResult,
    responses={401: {"model": ErrorResult}, 403: {"model": ErrorResult}},
)
@limiter.limit(settings.rate_limit_admin)
async def users(request: Request, user: User = AuthUser, store: Store = Depends(get_store)):
    result = await list_users(store, user)
    return render_response(request, ok({"users": result}))


@router.patch(
    "/v1/users/{uid}",
    response_model=UserResult,
    responses={
        400: {"model": ErrorResult},
        401: {"model": ErrorResult},
        403: {"model": ErrorResult},
        404: {"model": ErrorResult},
    },
)
@limiter.limit(settings.rate_limit_admin)
async def change_role(
    request: Request, uid: str, user: User = AuthUser, store: Store = Depends(get_store)
):
    """Set a user's role. Admins only."""
    body = await parse_body(request)
    try:
        req = RoleUpdateRequest.model_validate(body)
    except ValidationError:
        raise ValidationFailed("Missing required field: role") from None
    result = await set_role(store, user, uid, req.role)
    return render_response(request, ok(result))
