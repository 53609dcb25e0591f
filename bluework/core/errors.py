"""
Error taxonomy shared by the form, backend and dashboard layers
"""

from typing import Optional


class BlueWorkError(Exception):
    """Base class for all application errors"""


class ValidationError(BlueWorkError):
    """Input rejected before any collaborator was called"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class DependencyError(BlueWorkError):
    """A database, storage or auth call failed"""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ConsistencyError(BlueWorkError):
    """
    Dependent insert failed after the primary record was written.

    ``cleanup_error`` is set when the compensating delete failed too, in which
    case ``primary_id`` names a record that still needs manual removal.
    """

    def __init__(
        self,
        message: str,
        primary_id: str,
        cause: Optional[BaseException] = None,
        cleanup_error: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.primary_id = primary_id
        self.cause = cause
        self.cleanup_error = cleanup_error

    @property
    def needs_manual_cleanup(self) -> bool:
        return self.cleanup_error is not None


class SubmissionInProgressError(BlueWorkError):
    """The same draft is already being submitted"""
