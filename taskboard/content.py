"""Content negotiation: accept markdown (with YAML frontmatter) or JSON."""

from __future__ import annotations

import json

import frontmatter
import yaml
from fastapi import Request, Response

from taskboard.errors import TaskboardError, ValidationFailed


async def parse_body(request: Request) -> dict:
    """Parse request body as JSON or markdown with YAML frontmatter.

    In markdown bodies the frontmatter carries the fields and the text below
    it becomes ``description``.
    """
    content_type = request.headers.get("content-type", "")
    raw = await request.body()
    try:
        text = raw.decode("utf-8").strip()
    except UnicodeDecodeError:
        raise ValidationFailed("Request body must be UTF-8") from None

    if not text:
        return {}

    if "application/json" in content_type or (
        text.startswith("{") and "text/markdown" not in content_type
    ):
        try:
            body = json.loads(text)
        except json.JSONDecodeError:
            raise ValidationFailed("Malformed JSON body") from None
        if not isinstance(body, dict):
            raise ValidationFailed("Request body must be an object")
        return body

    try:
        post = frontmatter.loads(text)
    except (yaml.YAMLError, TypeError, ValueError):
        # TypeError/ValueError: frontmatter that is YAML but not a mapping
        raise ValidationFailed("Malformed frontmatter") from None
    if not all(isinstance(key, str) for key in post.metadata):
        raise ValidationFailed("Frontmatter keys must be strings")
    result = dict(post.metadata)
    if post.content.strip():
        result["description"] = post.content.strip()
    return result


def wants_json(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    return "application/json" in accept


def ok(data) -> dict:
    return {"ok": True, "data": data}


def failure(err: TaskboardError) -> dict:
    return {"ok": False, "error": err.to_dict()}


def render_response(
    request: Request,
    payload: dict,
    status_code: int = 200,
    headers: dict | None = None,
) -> Response:
    """Return the result envelope as JSON or markdown based on Accept header."""
    if wants_json(request):
        return Response(
            content=json.dumps(payload, indent=2),
            status_code=status_code,
            media_type="application/json",
            headers=headers,
        )

    # Copy before mutating so callers' dicts are not affected
    meta = dict(payload)

    # Markdown: a task's description or an error's message becomes the body
    body = ""
    key = "data" if meta.get("ok") else "error"
    inner = meta.get(key)
    if isinstance(inner, dict):
        for field in ("description", "message"):
            if isinstance(inner.get(field), str):
                inner = dict(inner)
                body = inner.pop(field)
                meta[key] = inner
                break

    content = frontmatter.dumps(frontmatter.Post(body, **meta))
    return Response(
        content=content,
        status_code=status_code,
        media_type="text/markdown",
        headers=headers,
    )


def render_task(request: Request, task: dict, status_code: int = 200) -> Response:
    headers = {"X-Task-Id": task["id"], "X-Status": task["status"]}
    return render_response(request, ok(task), status_code=status_code, headers=headers)
