"""
Domain errors for the jobs service.

Every error carries the HTTP status code the API layer answers with, a
``kind`` naming its place in the taxonomy and an optional ``reason`` that
narrows it down (used by conflicts).
"""
from typing import Optional


class ConflictReason:
    """Sub-reasons attached to a ConflictError."""
    ALREADY_CLAIMED = 'already_claimed'
    WRONG_STATUS = 'wrong_status'
    DEADLINE_PASSED = 'deadline_passed'
    NOT_OWNER = 'not_owner'


class JobError(Exception):
    """Base class for errors returned to callers of the engine."""

    kind = 'Internal'
    status_code = 500

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason

    def to_dict(self) -> dict:
        body = {'error': self.kind, 'message': self.message}
        if self.reason:
            body['reason'] = self.reason
        return body


class NotFoundError(JobError):
    kind = 'NotFound'
    status_code = 404


class InvalidInputError(JobError):
    kind = 'InvalidInput'
    status_code = 400


class UnauthorizedError(JobError):
    kind = 'Unauthorized'
    status_code = 401


class ForbiddenError(JobError):
    kind = 'Forbidden'
    status_code = 403


class ConflictError(JobError):
    """A precondition on the job row did not hold."""
    kind = 'Conflict'
    status_code = 409

    def __init__(self, message: str, reason: str = ConflictReason.WRONG_STATUS):
        super().__init__(message, reason)


class InternalError(JobError):
    kind = 'Internal'
    status_code = 500


class StoreUnavailableError(InternalError):
    """The job store could not be reached or rejected the request."""
