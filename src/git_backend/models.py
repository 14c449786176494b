"""Data models for the git backing store.

This module defines the data structures exchanged with the backing store:
tree entries, file contents with their blob hash, revisions and the
operations that make up a commit.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class PathType(Enum):
    """Kind of entry found at a path in a tree."""

    FILE = "file"
    DIRECTORY = "directory"
    ABSENT = "absent"


class OperationKind(Enum):
    """Kind of change a commit operation applies to a path."""

    ADD = "add"
    UPDATE = "update"


@dataclass(frozen=True)
class TreeEntry:
    """An entry of a recursive tree listing.

    Attributes:
        path: Slash-separated path from the repository root
        kind: FILE or DIRECTORY
    """

    path: str
    kind: PathType


@dataclass(frozen=True)
class FileContent:
    """Raw bytes of a file together with the git blob id they are stored under.

    Attributes:
        content: File bytes
        hash: Git blob id (hex) of the stored content
    """

    content: bytes
    hash: str


@dataclass(frozen=True)
class Revision:
    """An immutable commit in the backing store.

    Attributes:
        commit_id: Full commit id
        message: Commit message (trailing newline removed)
        author_name: Git author name
        author_email: Git author email
        timestamp: Author date (timezone aware)
    """

    commit_id: str
    message: str
    author_name: str
    author_email: str
    timestamp: datetime


@dataclass(frozen=True)
class CommitSignature:
    """Author/committer identity written into a commit."""

    name: str
    email: str
    when: datetime


@dataclass(frozen=True)
class CommitMetadata:
    """Message and author of a commit to create."""

    message: str
    author: CommitSignature
    committer: Optional[CommitSignature] = None


@dataclass(frozen=True)
class CommitOperation:
    """Write of one file as part of a commit.

    Attributes:
        kind: ADD for a new path, UPDATE for an existing file
        path: Slash-separated path from the repository root
        content: New file bytes
    """

    kind: OperationKind
    path: str
    content: bytes

    @classmethod
    def add(cls, path: str, content: bytes) -> "CommitOperation":
        return cls(OperationKind.ADD, path, content)

    @classmethod
    def update(cls, path: str, content: bytes) -> "CommitOperation":
        return cls(OperationKind.UPDATE, path, content)
