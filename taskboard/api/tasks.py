"""Task routes: browsing, claiming and administration."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from pydantic import ValidationError

from taskboard.auth import AuthUser
from taskboard.config import settings
from taskboard.content import ok, parse_body, render_response, render_task
from taskboard.db_models import User
from taskboard.errors import ValidationFailed
from taskboard.models import (
    ErrorResult,
    TaskCreateRequest,
    TaskListResult,
    TaskResult,
    TaskUpdateRequest,
)
from taskboard.rate_limit import limiter
from taskboard.services import mutations, queries
from taskboard.store import Store, get_store

router = APIRouter()

ERRORS = {
    401: {"model": ErrorResult},
    403: {"model": ErrorResult},
    404: {"model": ErrorResult},
    409: {"model": ErrorResult},
    503: {"model": ErrorResult},
}


def _describe(exc: ValidationError) -> str:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "body"
    return f"Invalid request body: '{field}' {first['msg'].lower()}"


@router.get("/v1/tasks/available", response_model=TaskListResult, responses=ERRORS)
@limiter.limit(settings.rate_limit_read)
async def available_tasks(
    request: Request, user: User = AuthUser, store: Store = Depends(get_store)
):
    """Tasks nobody has claimed yet, oldest first."""
    tasks = await queries.list_available(store, user)
    return render_response(request, ok({"tasks": tasks}))


@router.get("/v1/tasks/mine", response_model=TaskListResult, responses=ERRORS)
@limiter.limit(settings.rate_limit_read)
async def my_tasks(request: Request, user: User = AuthUser, store: Store = Depends(get_store)):
    """Tasks you have claimed or completed."""
    tasks = await queries.list_own_claims(store, user)
    return render_response(request, ok({"tasks": tasks}))


@router.get("/v1/tasks/assigned", response_model=TaskListResult, responses=ERRORS)
@limiter.limit(settings.rate_limit_read)
async def assigned_tasks(
    request: Request, user: User = AuthUser, store: Store = Depends(get_store)
):
    """Tasks assigned to you as reviewing manager, newest first."""
    tasks = await queries.list_assigned(store, user)
    return render_response(request, ok({"tasks": tasks}))


@router.get("/v1/tasks", response_model=TaskListResult, responses=ERRORS)
@limiter.limit(settings.rate_limit_read)
async def all_tasks(
    request: Request,
    user: User = AuthUser,
    store: Store = Depends(get_store),
    status: str | None = None,
    claimed_by: str | None = None,
    created_by: str | None = None,
    assigned_manager_id: str | None = None,
    level: int | None = None,
    search: str | None = None,
    sort: str | None = None,
    descending: bool = False,
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    offset: int = Query(0, ge=0),
):
    """Every task, filterable. Managers and admins only."""
    tasks = await queries.list_all(
        store,
        user,
        status=status,
        claimed_by=claimed_by,
        created_by=created_by,
        assigned_manager_id=assigned_manager_id,
        level=level,
        search=search,
        sort=sort,
        descending=descending,
        limit=limit,
        offset=offset,
    )
    return render_response(request, ok({"tasks": tasks}))


@router.post("/v1/tasks", response_model=TaskResult, responses=ERRORS)
@limiter.limit(settings.rate_limit_write)
async def create(request: Request, user: User = AuthUser, store: Store = Depends(get_store)):
    """Create a task. It starts out available."""
    body = await parse_body(request)
    try:
        req = TaskCreateRequest.model_validate(body)
    except ValidationError as exc:
        raise ValidationFailed(_describe(exc)) from None
    task = await mutations.create_task(
        store,
        user,
        req.title,
        req.description,
        assigned_manager_id=req.assigned_manager_id,
        deadline=req.deadline,
        level=req.level,
    )
    return render_task(request, task, status_code=201)


@router.get("/v1/tasks/{task_id}", response_model=TaskResult, responses=ERRORS)
@limiter.limit(settings.rate_limit_read)
async def task_detail(
    request: Request, task_id: str, user: User = AuthUser, store: Store = Depends(get_store)
):
    """One task. Tasks you cannot see are reported as not found."""
    task = await queries.get_task(store, user, task_id)
    return render_task(request, task)


@router.patch("/v1/tasks/{task_id}", response_model=TaskResult, responses=ERRORS)
@limiter.limit(settings.rate_limit_write)
async def edit(
    request: Request, task_id: str, user: User = AuthUser, store: Store = Depends(get_store)
):
    body = await parse_body(request)
    try:
        req = TaskUpdateRequest.model_validate(body)
    except ValidationError as exc:
        raise ValidationFailed(_describe(exc)) from None
    # Only fields the client actually sent may clear a value
    optional = {
        name: getattr(req, name)
        for name in ("assigned_manager_id", "deadline", "level")
        if name in req.model_fields_set
    }
    task = await mutations.edit_task(
        store, user, task_id, title=req.title, description=req.description, **optional
    )
    return render_task(request, task)


@router.delete("/v1/tasks/{task_id}", responses=ERRORS)
@limiter.limit(settings.rate_limit_write)
async def delete(
    request: Request, task_id: str, user: User = AuthUser, store: Store = Depends(get_store)
):
    result = await mutations.delete_task(store, user, task_id)
    return render_response(request, ok(result))


@router.post("/v1/tasks/{task_id}/claim", response_model=TaskResult, responses=ERRORS)
@limiter.limit(settings.rate_limit_claim)
async def claim(
    request: Request, task_id: str, user: User = AuthUser, store: Store = Depends(get_store)
):
    """Claim an available task. 409 if someone else got there first."""
    task = await mutations.claim_task(store, user, task_id)
    return render_task(request, task)


@router.post("/v1/tasks/{task_id}/release", response_model=TaskResult, responses=ERRORS)
@limiter.limit(settings.rate_limit_claim)
async def release(
    request: Request, task_id: str, user: User = AuthUser, store: Store = Depends(get_store)
):
    """Give a claimed task back. Claimant or admin."""
    task = await mutations.release_task(store, user, task_id)
    return render_task(request, task)


@router.post("/v1/tasks/{task_id}/complete", response_model=TaskResult, responses=ERRORS)
@limiter.limit(settings.rate_limit_claim)
async def complete(
    request: Request, task_id: str, user: User = AuthUser, store: Store = Depends(get_store)
):
    """Mark a claimed task done. Claimant, manager or admin."""
    task = await mutations.complete_task(store, user, task_id)
    return render_task(request, task)


@router.post("/v1/tasks/{task_id}/cancel", response_model=TaskResult, responses=ERRORS)
@limiter.limit(settings.rate_limit_write)
async def cancel(
    request: Request, task_id: str, user: User = AuthUser, store: Store = Depends(get_store)
):
    """Withdraw an available or claimed task. Managers and admins only."""
    task = await mutations.cancel_task(store, user, task_id)
    return render_task(request, task)
