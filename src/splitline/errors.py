from __future__ import annotations


class SplitlineError(Exception):
    """Base class for domain failures surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SplitlineError):
    status_code = 400


class InvalidTransitionError(SplitlineError):
    status_code = 400

    def __init__(self, current: str, requested: str):
        super().__init__(f"invalid status transition from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class AuthenticationError(SplitlineError):
    status_code = 401


class AuthorizationError(SplitlineError):
    status_code = 403


class NotFoundError(SplitlineError):
    status_code = 404


class ConflictError(SplitlineError):
    status_code = 409
