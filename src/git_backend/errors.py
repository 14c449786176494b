"""Typed exception hierarchy for the wiki store.

This module defines the base exception shared by every package and the
errors raised by the git backing store. Backing store errors carry the git
output and a ``retryable`` flag so callers can tell a lost commit race from
a permanent failure.
"""


class WikiError(Exception):
    """Base exception for all wiki-store errors.

    Use this to catch any application-level error from the wiki store.
    """
    pass


class NotFoundError(WikiError):
    """Base exception for lookups of things that do not exist."""
    pass


class GitPathNotFoundError(NotFoundError):
    """Raised when a path does not exist (as a file) at a revision."""

    def __init__(self, path: str, revision: str):
        super().__init__(f"Path '{path}' not found at {revision}")
        self.path = path
        self.revision = revision


class RevisionNotFoundError(NotFoundError):
    """Raised when a branch name or commit id does not resolve."""

    def __init__(self, revision: str):
        super().__init__(f"Revision '{revision}' not found")
        self.revision = revision


class BackingStoreError(WikiError):
    """Raised when a git operation fails.

    Attributes:
        repo_path: Path to the git repository
        message: Error description
        git_output: Git command stderr output
        retryable: Whether repeating the operation may succeed
    """

    def __init__(
        self,
        repo_path: str,
        message: str,
        git_output: str = "",
        retryable: bool = False,
    ):
        super().__init__(f"Git repository error at {repo_path}: {message}")
        self.repo_path = repo_path
        self.message = message
        self.git_output = git_output
        self.retryable = retryable


class GitTimeoutError(BackingStoreError):
    """Raised when a git command does not finish within its timeout."""

    def __init__(self, repo_path: str, command: str, timeout: float):
        super().__init__(
            repo_path=repo_path,
            message=f"Git {command} timed out after {timeout} seconds",
            retryable=True,
        )
        self.command = command
        self.timeout = timeout


class ConcurrentCommitError(BackingStoreError):
    """Raised when the branch moved while a commit was being created."""

    def __init__(self, repo_path: str, branch: str, git_output: str = ""):
        super().__init__(
            repo_path=repo_path,
            message=f"Branch '{branch}' was updated by a concurrent commit",
            git_output=git_output,
            retryable=True,
        )
        self.branch = branch


class OperationCancelledError(WikiError):
    """Raised when an operation is cancelled before it changed anything."""

    def __init__(self, operation: str):
        super().__init__(f"Operation '{operation}' was cancelled")
        self.operation = operation


class CommitOutcomeUnknownError(WikiError):
    """Raised when a commit was handed to git but its result was not observed.

    The branch may or may not have been advanced. Callers should re-read the
    branch instead of assuming the commit failed.
    """

    def __init__(self, branch: str, commit_id: str, reason: str):
        super().__init__(
            f"Outcome of commit {commit_id[:8]} on branch '{branch}' is unknown: {reason}"
        )
        self.branch = branch
        self.commit_id = commit_id
        self.reason = reason
