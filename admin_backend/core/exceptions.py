"""Exception taxonomy for the admin action pipeline."""

from fastapi import HTTPException, status


class AdminConsoleError(Exception):
    """Base exception for the admin console core."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class PermissionDenied(AdminConsoleError):
    """Raised when the caller's role lacks the permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ConfirmationCancelled(AdminConsoleError):
    """Raised when the user backs out of a confirmation prompt."""

    status_code = status.HTTP_409_CONFLICT


class ReauthFailed(AdminConsoleError):
    """Raised when step-up re-authentication is rejected."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ExecutionFailed(AdminConsoleError):
    """Raised when the delegated operation fails."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class AuditWriteFailed(AdminConsoleError):
    """Raised internally when the durable audit sink rejects a write.

    Never surfaced to the end user; the audit trail absorbs it.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class AuditSinkUnavailable(AdminConsoleError):
    """Raised internally when the durable audit store cannot be read."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class ValidationError(AdminConsoleError):
    """Raised when confirmation input is incomplete."""
    pass


class PipelineBusy(AdminConsoleError):
    """Raised when a pipeline is asked to run while an action is in flight."""

    status_code = status.HTTP_409_CONFLICT


class ResourceNotFoundError(AdminConsoleError):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


# HTTP exception shortcuts
def forbidden(detail: str = "Insufficient permissions") -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def unauthorized(detail: str = "Not authenticated") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )
