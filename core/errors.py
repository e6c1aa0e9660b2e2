"""
core/errors.py -- Error taxonomy and the failure description used by the API.

Every failure the service reports to a client is an AppError subclass carrying
its own HTTP status, a machine-readable code, and a human-readable message.
Stores, gates, and route handlers raise these; they never build responses.

The Error Reporter is split in two:
  describe_failure()  -- pure function: exception -> FailureDescription.
  log_failure()       -- side effect: one structured diagnostic log record.
Writing the HTTP response from a description lives in api/main.py, the only
place that has a concrete response to write to.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass

logger = logging.getLogger("userdir.errors")

_GENERIC_MESSAGE = "An unexpected error occurred."


class AppError(Exception):
    """Base class for failures that map to a client-visible status."""

    status_code: int = 500
    code: str = "internal_error"
    message: str = _GENERIC_MESSAGE

    def __init__(self, message: str | None = None, *, detail: str | None = None) -> None:
        if message is not None:
            self.message = message
        # detail is logged, never returned to the client
        self.detail = detail
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"
    message = "Request validation failed."


class UnauthorizedError(AppError):
    status_code = 401
    code = "unauthorized"
    message = "Authentication required."


class ForbiddenError(AppError):
    status_code = 403
    code = "forbidden"
    message = "You are not allowed to access this resource."


class ConflictError(AppError):
    status_code = 409
    code = "conflict"
    message = "Resource already exists."


class StorageError(AppError):
    status_code = 500
    code = "storage_error"
    message = "The user store could not be read or written."


class InternalError(AppError):
    status_code = 500
    code = "internal_error"


@dataclass(frozen=True)
class FailureDescription:
    """Everything known about a failure, split into public and diagnostic parts.

    status_code, code and message are safe to send to a client. name, detail,
    cause and stack are for the operational log only.
    """

    status_code: int
    code: str
    message: str
    name: str
    detail: str | None = None
    cause: str | None = None
    stack: str | None = None


def describe_failure(exc: BaseException) -> FailureDescription:
    """Map any exception to a FailureDescription.

    AppError subclasses keep their own status and message. Anything else is an
    unexpected server error: 500 with a generic message, so internal details
    never reach the response body.
    """
    cause = exc.__cause__ or exc.__context__
    stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    if isinstance(exc, AppError):
        return FailureDescription(
            status_code=exc.status_code,
            code=exc.code,
            message=exc.message,
            name=type(exc).__name__,
            detail=exc.detail,
            cause=repr(cause) if cause is not None else None,
            stack=stack,
        )
    return FailureDescription(
        status_code=InternalError.status_code,
        code=InternalError.code,
        message=_GENERIC_MESSAGE,
        name=type(exc).__name__,
        detail=str(exc) or None,
        cause=repr(cause) if cause is not None else None,
        stack=stack,
    )


def log_failure(description: FailureDescription, method: str = "-", path: str = "-") -> None:
    """Emit one structured diagnostic record for a failure.

    Server errors (>= 500) are logged at ERROR with the stack; client errors
    are expected traffic and logged at INFO without it.
    """
    record = {
        "name": description.name,
        "message": description.message,
        "code": description.code,
        "status": description.status_code,
        "detail": description.detail,
        "cause": description.cause,
    }
    if description.status_code >= 500:
        logger.error("%s %s failed: %s\n%s", method, path, record, description.stack)
    else:
        logger.info("%s %s rejected: %s", method, path, record)
