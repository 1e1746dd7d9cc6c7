"""
Typed errors raised by the review services.

Routers never translate these by hand: ``security.setup_security`` registers
one handler that maps each class to its HTTP status and machine code, so a
client can tell "no access" apart from "does not exist".
"""

from fastapi import status


class ReviewError(Exception):
    """Base exception class for review workflow errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "REVIEW_ERROR"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(ReviewError):
    """A proposal, question, answer, comment, suggestion or notification is absent."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class PermissionDeniedError(ReviewError):
    """The caller lacks the capability required for the operation."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "PERMISSION_DENIED"


class InvalidStateError(ReviewError):
    """The record exists but is not in a state that allows the operation."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_STATE"


class ValidationError(ReviewError):
    """Malformed input rejected before it reaches a state machine."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"


class ConflictError(ReviewError):
    """An answer write was based on a stale version."""

    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"

    def __init__(self, detail: str, current_version: int | None = None):
        super().__init__(detail)
        self.current_version = current_version
