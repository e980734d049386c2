"""Taskboard: role-gated task claiming service."""

from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException

from taskboard.api.router import api_router
from taskboard.config import settings
from taskboard.content import failure, render_response
from taskboard.database import close_db, init_db
from taskboard.errors import TaskboardError, ValidationFailed
from taskboard.rate_limit import limiter

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("taskboard")

_HTTP_CODES = {401: "unauthenticated", 403: "forbidden", 404: "not_found", 429: "rate_limited"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    db_url = settings.database_url
    if "://" not in db_url:
        db_url = f"sqlite+aiosqlite:///{db_url}"
    await init_db(db_url)
    safe_url = re.sub(r"://[^:]+:[^@]+@", "://***:***@", db_url)
    logger.info("Database connected: %s", safe_url)

    yield

    await close_db()
    logger.info("Database closed")


app = FastAPI(
    title="Taskboard",
    description="Role-gated task claiming",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

app.include_router(api_router)


@app.exception_handler(TaskboardError)
async def taskboard_error_handler(request: Request, exc: TaskboardError):
    return render_response(request, failure(exc), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    err = ValidationFailed("Invalid request parameters")
    return render_response(request, failure(err), status_code=err.status_code)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    error = {
        "code": _HTTP_CODES.get(exc.status_code, "http_error"),
        "message": str(exc.detail),
        "retryable": exc.status_code == 429,
    }
    return render_response(
        request, {"ok": False, "error": error}, status_code=exc.status_code
    )


@app.get("/health")
async def health():
    return {"status": "ok"}


def main():
    import uvicorn

    uvicorn.run(
        "taskboard.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
    )


if __name__ == "__main__":
    main()
