"""Error taxonomy shared by the services, the store and the HTTP boundary.

Everything that can go wrong inside the core is expressed as a subclass of
:class:`TaskboardError`. Foreign exceptions (SQLAlchemy, PyJWT, timeouts) are
translated at the store and identity seams so that callers only ever see
these types.
"""

from __future__ import annotations


class TaskboardError(Exception):
    status_code = 500
    code = "internal_error"
    retryable = False

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message()
        super().__init__(self.message)

    @classmethod
    def default_message(cls) -> str:
        return cls.__name__

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "retryable": self.retryable}


class Unauthenticated(TaskboardError):
    status_code = 401
    code = "unauthenticated"

    @classmethod
    def default_message(cls) -> str:
        return "Missing or invalid identity token"


class Forbidden(TaskboardError):
    status_code = 403
    code = "forbidden"

    @classmethod
    def default_message(cls) -> str:
        return "Not allowed"


class NotFound(TaskboardError):
    status_code = 404
    code = "not_found"

    @classmethod
    def default_message(cls) -> str:
        return "Not found"


class InvalidTransition(TaskboardError):
    status_code = 409
    code = "invalid_transition"

    @classmethod
    def default_message(cls) -> str:
        return "Transition not allowed from the current status"


class Conflict(TaskboardError):
    status_code = 409
    code = "conflict"

    @classmethod
    def default_message(cls) -> str:
        return "Task already claimed"


class StoreUnavailable(TaskboardError):
    status_code = 503
    code = "store_unavailable"
    retryable = True

    @classmethod
    def default_message(cls) -> str:
        return "Store unavailable, try again"


class ValidationFailed(TaskboardError):
    status_code = 400
    code = "invalid_request"

    @classmethod
    def default_message(cls) -> str:
        return "Invalid request body"
