"""Domain errors raised by the studio services.

Every error carries a stable ``code`` and an HTTP-ish ``status`` so the REST layer
and the CLI can report them without knowing each subclass.
"""

from __future__ import annotations


class StudioError(Exception):
    code = "operation_failed"
    status = 500
    default_message = "Operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class Unauthorized(StudioError):
    code = "unauthorized"
    status = 401
    default_message = "Authentication required"


class Forbidden(StudioError):
    """The caller lacks the capability or role for the operation.

    The message is always generic: callers are never told which flag was missing.
    """

    code = "forbidden"
    status = 403
    default_message = "You don't have permission to perform this action"

    def __init__(self) -> None:
        super().__init__(self.default_message)


class NotFound(StudioError):
    code = "not_found"
    status = 404
    default_message = "Not found"


class Conflict(StudioError):
    code = "conflict"
    status = 409
    default_message = "Already exists"


class OwnerProtected(StudioError):
    code = "owner_protected"
    status = 409
    default_message = "The team owner cannot be removed"


class InvalidInput(StudioError):
    code = "invalid_input"
    status = 400
    default_message = "Invalid input"


class GenerationFailed(StudioError):
    code = "generation_failed"
    status = 422
    default_message = "Could not generate a workflow from the prompt"


class OperationFailed(StudioError):
    pass
