"""
Workflow Errors

Error taxonomy raised by the workflow engine and its collaborators.
Each error carries the HTTP status the API layer answers with; the message
is short, user-facing and names the rule that was violated.
"""

from fastapi import status


class WorkflowError(Exception):
    """Base class for every error the request workflow surfaces to callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationError(WorkflowError):
    """Bearer credential missing, invalid, or without a profile."""

    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(WorkflowError):
    """Entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(WorkflowError):
    """Actor role or scope does not allow the operation."""

    status_code = status.HTTP_403_FORBIDDEN


class InvalidStateError(WorkflowError):
    """Current status is not a precondition of the requested transition (includes lost races)."""

    status_code = status.HTTP_409_CONFLICT


class ValidationError(WorkflowError):
    """A field required by the transition is missing or invalid."""

    status_code = status.HTTP_400_BAD_REQUEST


class PersistenceError(WorkflowError):
    """Underlying store failed. Not retried."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class UpstreamError(WorkflowError):
    """Supabase auth or storage answered with an unexpected failure."""

    status_code = status.HTTP_502_BAD_GATEWAY


class ServiceUnavailableError(WorkflowError):
    """A collaborator the request needs is not configured or not initialized."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
