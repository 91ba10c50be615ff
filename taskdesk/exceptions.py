# taskdesk/exceptions.py
"""
Error taxonomy for the task engine.

Every error is recoverable: the API renders it as ``{"success": false, "error": ...}``
and the client board turns it into a user-facing notification.
"""

from typing import List, Optional


class TaskDeskError(Exception):
    """Base class for all engine errors"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthorizationError(TaskDeskError):
    """The acting user lacks the permission for the attempted action"""

    status_code = 403


class TaskValidationError(TaskDeskError):
    """A required field is missing or malformed; the operation was not attempted"""

    status_code = 400


class TaskNotFoundError(TaskDeskError):
    status_code = 404


class InvalidTransitionError(TaskDeskError):
    """The requested status/approval move is not legal from the current state"""

    status_code = 409


class ForwardingError(TaskDeskError):
    """Forwarding failed part way; nothing already applied is rolled back"""

    status_code = 502

    def __init__(
        self,
        message: str,
        updated_original=None,
        created_clones: Optional[List] = None,
        failed_recipients: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.updated_original = updated_original
        self.created_clones = created_clones or []
        self.failed_recipients = failed_recipients or []

    @property
    def original_updated(self) -> bool:
        return self.updated_original is not None
