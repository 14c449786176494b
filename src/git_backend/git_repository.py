"""Git-backed commit log for wiki content.

This module provides the GitBackingStore class, the versioned storage that
every page, media file and the access-control rule file live in. It drives a
bare git repository through the ``git`` executable using subprocess and
builds multi-file commits with plumbing commands so that a commit is
published atomically by a single compare-and-swap on the branch ref.
"""

import logging
import os
import subprocess
import tempfile
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Iterator, List, Optional, Sequence, Tuple

from src.git_backend.errors import (
    BackingStoreError,
    CommitOutcomeUnknownError,
    ConcurrentCommitError,
    GitPathNotFoundError,
    GitTimeoutError,
    OperationCancelledError,
    RevisionNotFoundError,
)
from src.git_backend.models import (
    CommitMetadata,
    CommitOperation,
    CommitSignature,
    FileContent,
    PathType,
    Revision,
    TreeEntry,
)

logger = logging.getLogger(__name__)

# Git command timeout in seconds
GIT_TIMEOUT = 10

# How often a running git command checks its cancellation event
CANCEL_POLL_INTERVAL = 0.1

_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = "%H%x1f%an%x1f%ae%x1f%aI%x1f%B%x1e"

# Characters that would corrupt a git signature line
_INVALID_SIGNATURE_CHARS = ("<", ">", "\n", "\r", "\0")


def sanitize_git_name_or_email(value: str) -> str:
    """Replace characters that git refuses in identities by underscores."""
    for char in _INVALID_SIGNATURE_CHARS:
        value = value.replace(char, "_")
    return value


def _format_git_date(when: datetime) -> str:
    """Format a datetime in git's internal ``<epoch> <+hhmm>`` form."""
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    offset = when.utcoffset() or timedelta(0)
    minutes = int(offset.total_seconds() // 60)
    sign = "+" if minutes >= 0 else "-"
    minutes = abs(minutes)
    return f"{int(when.timestamp())} {sign}{minutes // 60:02d}{minutes % 60:02d}"


class GitBackingStore:
    """Versioned file store on top of a bare git repository.

    Reads never touch a working tree: file contents come from ``cat-file``,
    listings from ``ls-tree`` and history from ``log``. Writes stage their
    operations in a private temporary index, so concurrent writers never
    share state; the branch is then advanced with
    ``git update-ref <branch> <new> <old>``, which fails if another commit
    landed first.

    Repository layout:
        <repository_root>/wiki/      # bare repository
          HEAD                       # -> refs/heads/<branch>
          objects/ refs/ ...

    Example:
        >>> store = GitBackingStore("/srv/wiki-data/wiki")
        >>> store.init_if_not_exists("main")
        >>> sha = store.create_commit("main", [CommitOperation.add("Home.md", b"# Home")], metadata)
        >>> store.read_file_and_hash("Home.md", "main").content
        b'# Home'
    """

    def __init__(self, repo_path: str):
        """Initialize the backing store.

        Args:
            repo_path: Path to the bare git repository
        """
        self.repo_path = repo_path
        self._ensure_absolute_path()

    def _ensure_absolute_path(self) -> None:
        """Convert repo_path to absolute path if relative."""
        if not os.path.isabs(self.repo_path):
            self.repo_path = os.path.abspath(self.repo_path)

    def exists(self) -> bool:
        """Return True if repo_path holds a git repository."""
        return (
            os.path.isfile(os.path.join(self.repo_path, "HEAD"))
            and os.path.isdir(os.path.join(self.repo_path, "objects"))
        )

    def init_if_not_exists(self, branch: str = "main") -> bool:
        """Create a bare repository whose HEAD points at ``branch``.

        Args:
            branch: Name of the branch wiki content is committed to

        Returns:
            True if a repository was created, False if one already existed

        Raises:
            BackingStoreError: If initialization fails
        """
        if self.exists():
            logger.debug(f"Git repository already exists at {self.repo_path}")
            return False

        try:
            os.makedirs(self.repo_path, exist_ok=True)
        except OSError as e:
            raise BackingStoreError(
                repo_path=self.repo_path,
                message=f"Failed to create directory: {e}",
            )

        self._check(
            self._run_git(["init", "--bare", "--quiet"]),
            "Failed to initialize git repository",
        )
        self._check(
            self._run_git(["symbolic-ref", "HEAD", self._branch_ref(branch)]),
            f"Failed to point HEAD at branch '{branch}'",
        )

        logger.info(f"Initialized git repository at {self.repo_path}")
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_branch_tip(self, branch: str) -> Optional[str]:
        """Return the commit id at the tip of ``branch``, None if unborn."""
        return self._resolve_commit(self._branch_ref(branch))

    def read_file_and_hash(
        self,
        path: str,
        revision: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> FileContent:
        """Read a file and its blob id at a branch or commit.

        Args:
            path: File path from the repository root
            revision: Branch name or commit id
            cancel_event: Optional cancellation signal

        Returns:
            FileContent with the raw bytes and the blob id

        Raises:
            RevisionNotFoundError: If ``revision`` does not resolve
            GitPathNotFoundError: If no file exists at ``path``
            BackingStoreError: If a git command fails
        """
        commit = self._resolve_commit(revision, cancel_event)
        if commit is None:
            raise RevisionNotFoundError(revision)

        entry = self._lookup_entry(commit, path, cancel_event)
        if entry is None or entry[0] != "blob":
            raise GitPathNotFoundError(path, revision)

        blob_id = entry[1]
        result = self._check(
            self._run_git(["cat-file", "blob", blob_id], cancel_event=cancel_event),
            f"Failed to read {path}",
        )
        return FileContent(content=result.stdout, hash=blob_id)

    def get_file_history(
        self,
        path: str,
        branch: str,
        limit: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Iterator[Revision]:
        """Yield the commits touching ``path`` on ``branch``, newest first.

        Yields nothing when the path never existed or the branch is unborn.
        """
        tip = self.get_branch_tip(branch)
        if tip is None:
            return

        args = ["log", f"--format={_LOG_FORMAT}"]
        if limit is not None:
            args.append(f"--max-count={limit}")
        args.extend([tip, "--", path])

        result = self._check(
            self._run_git(args, cancel_event=cancel_event),
            f"Failed to read history of {path}",
        )
        yield from self._parse_log(result.stdout)

    def get_commit(
        self,
        revision_id: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Revision:
        """Return metadata of a commit.

        Raises:
            RevisionNotFoundError: If ``revision_id`` does not resolve
        """
        commit = self._resolve_commit(revision_id, cancel_event)
        if commit is None:
            raise RevisionNotFoundError(revision_id)

        result = self._check(
            self._run_git(
                ["log", "--max-count=1", f"--format={_LOG_FORMAT}", commit],
                cancel_event=cancel_event,
            ),
            f"Failed to read commit {revision_id}",
        )
        revisions = list(self._parse_log(result.stdout))
        if not revisions:
            raise RevisionNotFoundError(revision_id)
        return revisions[0]

    def enumerate_tree(
        self,
        branch: str,
        directory_prefix: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Iterator[TreeEntry]:
        """Yield every file and directory at the tip of ``branch``.

        Args:
            branch: Branch to list
            directory_prefix: Only list entries below this directory
            cancel_event: Optional cancellation signal
        """
        tip = self.get_branch_tip(branch)
        if tip is None:
            return

        args = ["ls-tree", "-r", "-t", "-z", "--full-tree", tip]
        prefix = directory_prefix.strip("/") if directory_prefix else ""
        if prefix:
            args.extend(["--", f"{prefix}/"])

        result = self._check(
            self._run_git(args, cancel_event=cancel_event),
            "Failed to list repository tree",
        )
        for obj_type, _, entry_path in self._parse_ls_tree(result.stdout):
            if entry_path == prefix:
                continue
            if obj_type == "blob":
                yield TreeEntry(entry_path, PathType.FILE)
            elif obj_type == "tree":
                yield TreeEntry(entry_path, PathType.DIRECTORY)

    def get_path_type(
        self,
        path: str,
        branch: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> PathType:
        """Return what occupies ``path`` at the tip of ``branch``."""
        tip = self.get_branch_tip(branch)
        if tip is None:
            return PathType.ABSENT

        entry = self._lookup_entry(tip, path, cancel_event)
        if entry is None:
            return PathType.ABSENT
        if entry[0] == "blob":
            return PathType.FILE
        # Trees and submodules both block a file from being written here
        return PathType.DIRECTORY

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_commit(
        self,
        branch: str,
        operations: Sequence[CommitOperation],
        metadata: CommitMetadata,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        """Create one commit applying all ``operations`` on top of ``branch``.

        Args:
            branch: Branch to advance (created if unborn)
            operations: File writes, applied together
            metadata: Commit message and author
            cancel_event: Optional cancellation signal

        Returns:
            Id of the new commit

        Raises:
            ConcurrentCommitError: If the branch moved while committing
            OperationCancelledError: If cancelled before the branch was touched
            CommitOutcomeUnknownError: If cancelled or timed out while the
                branch update was in flight
            BackingStoreError: If any other git command fails
        """
        if not operations:
            raise ValueError("A commit needs at least one operation")

        self._raise_if_cancelled(cancel_event, "create_commit")
        parent = self.get_branch_tip(branch)

        with tempfile.TemporaryDirectory(prefix="wiki-index-") as index_dir:
            index_env = {"GIT_INDEX_FILE": os.path.join(index_dir, "index")}

            read_tree = ["read-tree", parent] if parent else ["read-tree", "--empty"]
            self._check(
                self._run_git(read_tree, env=index_env, cancel_event=cancel_event),
                "Failed to load parent tree",
            )

            index_lines: List[str] = []
            for operation in operations:
                result = self._check(
                    self._run_git(
                        ["hash-object", "-w", "--stdin"],
                        input_data=operation.content,
                        cancel_event=cancel_event,
                    ),
                    f"Failed to store {operation.path}",
                )
                blob_id = result.stdout.decode("ascii").strip()
                index_lines.append(f"100644 {blob_id}\t{operation.path}\n")

            self._check(
                self._run_git(
                    ["update-index", "--index-info"],
                    input_data="".join(index_lines).encode("utf-8"),
                    env=index_env,
                    cancel_event=cancel_event,
                ),
                "Failed to stage commit operations",
            )

            result = self._check(
                self._run_git(["write-tree"], env=index_env, cancel_event=cancel_event),
                "Failed to write tree",
            )
            tree_id = result.stdout.decode("ascii").strip()

        commit_args = ["commit-tree", tree_id]
        if parent:
            commit_args.extend(["-p", parent])
        commit_args.extend(["-F", "-"])

        result = self._check(
            self._run_git(
                commit_args,
                input_data=metadata.message.encode("utf-8"),
                env=self._signature_env(metadata),
                cancel_event=cancel_event,
            ),
            "Failed to create commit",
        )
        commit_id = result.stdout.decode("ascii").strip()

        # Last point where cancelling leaves the branch untouched
        self._raise_if_cancelled(cancel_event, "create_commit")
        self._update_branch(branch, commit_id, parent, cancel_event)

        logger.info(
            f"Committed {len(operations)} file(s) to {branch}: {commit_id[:8]}"
        )
        return commit_id

    def _update_branch(
        self,
        branch: str,
        commit_id: str,
        expected_parent: Optional[str],
        cancel_event: Optional[threading.Event],
    ) -> None:
        """Move the branch ref to ``commit_id`` if it still points at the parent."""
        # An empty old value means the ref must not exist yet
        old_value = expected_parent or ""
        try:
            result = self._run_git(
                ["update-ref", self._branch_ref(branch), commit_id, old_value],
                cancel_event=cancel_event,
                operation="update-ref",
            )
        except (OperationCancelledError, GitTimeoutError) as e:
            raise CommitOutcomeUnknownError(branch, commit_id, str(e)) from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace")
            if "cannot lock ref" in stderr or "Unable to create" in stderr:
                logger.warning(f"Concurrent commit detected on branch {branch}")
                raise ConcurrentCommitError(self.repo_path, branch, git_output=stderr)
            raise BackingStoreError(
                repo_path=self.repo_path,
                message=f"Failed to update branch '{branch}'",
                git_output=stderr,
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _branch_ref(branch: str) -> str:
        return f"refs/heads/{branch}"

    @staticmethod
    def _signature_env(metadata: CommitMetadata) -> dict:
        author = metadata.author
        committer: CommitSignature = metadata.committer or author
        return {
            "GIT_AUTHOR_NAME": sanitize_git_name_or_email(author.name),
            "GIT_AUTHOR_EMAIL": sanitize_git_name_or_email(author.email),
            "GIT_AUTHOR_DATE": _format_git_date(author.when),
            "GIT_COMMITTER_NAME": sanitize_git_name_or_email(committer.name),
            "GIT_COMMITTER_EMAIL": sanitize_git_name_or_email(committer.email),
            "GIT_COMMITTER_DATE": _format_git_date(committer.when),
        }

    def _resolve_commit(
        self,
        revision: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[str]:
        """Resolve a branch, ref or commit id to a full commit id."""
        if not revision or revision.startswith("-"):
            return None

        result = self._run_git(
            ["rev-parse", "--verify", "--quiet", f"{revision}^{{commit}}"],
            cancel_event=cancel_event,
        )
        if result.returncode != 0:
            return None
        return result.stdout.decode("ascii").strip() or None

    def _lookup_entry(
        self,
        commit: str,
        path: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[Tuple[str, str]]:
        """Return (object type, object id) of the entry exactly at ``path``."""
        path = path.strip("/")
        if not path:
            return None

        result = self._check(
            self._run_git(
                ["ls-tree", "-z", "--full-tree", commit, "--", path],
                cancel_event=cancel_event,
            ),
            f"Failed to look up {path}",
        )
        for obj_type, obj_id, entry_path in self._parse_ls_tree(result.stdout):
            if entry_path == path:
                return obj_type, obj_id
        return None

    @staticmethod
    def _parse_ls_tree(output: bytes) -> Iterator[Tuple[str, str, str]]:
        """Parse ``ls-tree -z`` output into (type, object id, path) triples."""
        for record in output.split(b"\0"):
            if not record:
                continue
            meta, _, raw_path = record.partition(b"\t")
            _mode, obj_type, obj_id = meta.decode("ascii").split()
            yield obj_type, obj_id, raw_path.decode("utf-8")

    @staticmethod
    def _parse_log(output: bytes) -> Iterator[Revision]:
        """Parse log output produced with ``_LOG_FORMAT``."""
        text = output.decode("utf-8", errors="replace")
        for record in text.split(_RECORD_SEP):
            record = record.strip("\n")
            if not record:
                continue
            commit_id, author_name, author_email, date, message = record.split(_FIELD_SEP, 4)
            yield Revision(
                commit_id=commit_id,
                message=message.rstrip("\n"),
                author_name=author_name,
                author_email=author_email,
                timestamp=datetime.fromisoformat(date),
            )

    @staticmethod
    def _raise_if_cancelled(cancel_event: Optional[threading.Event], operation: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError(operation)

    def _check(
        self,
        result: subprocess.CompletedProcess,
        message: str,
    ) -> subprocess.CompletedProcess:
        """Raise BackingStoreError if a git command failed."""
        if result.returncode != 0:
            raise BackingStoreError(
                repo_path=self.repo_path,
                message=message,
                git_output=result.stderr.decode("utf-8", errors="replace"),
            )
        return result

    def _run_git(
        self,
        args: List[str],
        input_data: Optional[bytes] = None,
        env: Optional[dict] = None,
        cancel_event: Optional[threading.Event] = None,
        operation: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        """Run a git command in the repository and capture its output as bytes.

        Raises:
            OperationCancelledError: If ``cancel_event`` is set before or while
                the command runs (the command is killed)
            GitTimeoutError: If the command exceeds GIT_TIMEOUT
            BackingStoreError: If git is missing or the repository is gone
        """
        operation = operation or args[0]
        command = ["git", *args]
        full_env = {**os.environ, **env} if env else None

        if not os.path.isdir(self.repo_path):
            raise BackingStoreError(
                repo_path=self.repo_path,
                message="Repository directory does not exist",
            )

        self._raise_if_cancelled(cancel_event, operation)

        try:
            if cancel_event is None:
                return subprocess.run(
                    command,
                    cwd=self.repo_path,
                    input=input_data,
                    capture_output=True,
                    timeout=GIT_TIMEOUT,
                    env=full_env,
                )

            process = subprocess.Popen(
                command,
                cwd=self.repo_path,
                env=full_env,
                stdin=subprocess.PIPE if input_data is not None else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except subprocess.TimeoutExpired:
            raise GitTimeoutError(self.repo_path, operation, GIT_TIMEOUT)
        except FileNotFoundError:
            raise BackingStoreError(
                repo_path=self.repo_path,
                message="Git command not found. Please install git.",
            )

        return self._wait_cancellable(process, command, input_data, cancel_event, operation)

    def _wait_cancellable(
        self,
        process: subprocess.Popen,
        command: List[str],
        input_data: Optional[bytes],
        cancel_event: threading.Event,
        operation: str,
    ) -> subprocess.CompletedProcess:
        """Wait for ``process`` while polling the cancellation event."""
        deadline = time.monotonic() + GIT_TIMEOUT
        pending_input = input_data

        while True:
            try:
                stdout, stderr = process.communicate(
                    input=pending_input, timeout=CANCEL_POLL_INTERVAL
                )
                return subprocess.CompletedProcess(command, process.returncode, stdout, stderr)
            except subprocess.TimeoutExpired:
                # communicate() refuses input once communication has started
                pending_input = None
                cancelled = cancel_event.is_set()
                if not cancelled and time.monotonic() < deadline:
                    continue

                process.kill()
                process.communicate()
                if cancelled:
                    logger.debug(f"Cancelled git {operation}")
                    raise OperationCancelledError(operation)
                raise GitTimeoutError(self.repo_path, operation, GIT_TIMEOUT)
