"""Git backing store for versioned wiki content.

This package stores every wiki file in a bare git repository and exposes
reads by branch or commit, file history and atomic multi-file commits.
"""

from src.git_backend.errors import (
    BackingStoreError,
    CommitOutcomeUnknownError,
    ConcurrentCommitError,
    GitPathNotFoundError,
    GitTimeoutError,
    NotFoundError,
    OperationCancelledError,
    RevisionNotFoundError,
    WikiError,
)
from src.git_backend.git_repository import GitBackingStore, sanitize_git_name_or_email
from src.git_backend.models import (
    CommitMetadata,
    CommitOperation,
    CommitSignature,
    FileContent,
    OperationKind,
    PathType,
    Revision,
    TreeEntry,
)
from src.git_backend.retry_logic import retry_on_concurrent_commit

__all__ = [
    # Errors
    'WikiError',
    'NotFoundError',
    'GitPathNotFoundError',
    'RevisionNotFoundError',
    'BackingStoreError',
    'GitTimeoutError',
    'ConcurrentCommitError',
    'OperationCancelledError',
    'CommitOutcomeUnknownError',
    # Components
    'GitBackingStore',
    'retry_on_concurrent_commit',
    'sanitize_git_name_or_email',
    # Models
    'CommitMetadata',
    'CommitOperation',
    'CommitSignature',
    'FileContent',
    'OperationKind',
    'PathType',
    'Revision',
    'TreeEntry',
]
