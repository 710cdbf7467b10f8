"""
core/errors.py -- Application error taxonomy.

Stores, the policy, and the lifecycle manager raise these; api/main.py turns
each one into the standard {"error": {...}} envelope with the status code
carried by the class. Domain code never imports fastapi to signal failures.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for failures that map onto a client-facing HTTP status."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationFailed(AppError):
    status_code = 400
    code = "validation_error"


class Unauthenticated(AppError):
    status_code = 401
    code = "unauthorized"


class Forbidden(AppError):
    status_code = 403
    code = "forbidden"


class NotFound(AppError):
    status_code = 404
    code = "not_found"


class Conflict(AppError):
    status_code = 409
    code = "conflict"


class InternalFailure(AppError):
    status_code = 500
    code = "internal_error"
