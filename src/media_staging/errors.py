"""Exceptions raised by the temporary media staging area."""

from src.git_backend.errors import WikiError


class StagingError(WikiError):
    """Raised when a staged file cannot be written.

    Attributes:
        path: File or directory that failed
        message: Error description
    """

    def __init__(self, path: str, message: str):
        super().__init__(f"Media staging error at {path}: {message}")
        self.path = path
        self.message = message
