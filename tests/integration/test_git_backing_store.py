"""Integration tests for GitBackingStore against a real bare repository."""

import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from src.git_backend.errors import (
    ConcurrentCommitError,
    GitPathNotFoundError,
    OperationCancelledError,
    RevisionNotFoundError,
)
from src.git_backend.git_repository import GitBackingStore
from src.git_backend.models import (
    CommitMetadata,
    CommitOperation,
    CommitSignature,
    PathType,
    TreeEntry,
)
from tests.helpers.git_test_utils import (
    branch_tip,
    commit_author,
    commit_count,
    files_in_commit,
    run_git,
)


def _metadata(message: str, name: str = "Alice", email: str = "alice@wikistore.local") -> CommitMetadata:
    when = datetime(2024, 5, 17, 9, 30, tzinfo=timezone(timedelta(hours=2)))
    return CommitMetadata(message, CommitSignature(name, email, when))


class TestInit:
    """Test cases for repository creation."""

    def test_creates_bare_repository(self, tmp_path):
        store = GitBackingStore(str(tmp_path / "wiki"))

        assert store.init_if_not_exists("main") is True
        assert store.exists()
        assert run_git(store.repo_path, "rev-parse", "--is-bare-repository").strip() == "true"
        assert run_git(store.repo_path, "symbolic-ref", "HEAD").strip() == "refs/heads/main"

    def test_second_init_is_noop(self, backing_store):
        assert backing_store.init_if_not_exists("main") is False

    def test_unborn_branch_reads(self, backing_store):
        assert backing_store.get_branch_tip("main") is None
        assert list(backing_store.enumerate_tree("main")) == []
        assert list(backing_store.get_file_history("Home.md", "main")) == []
        assert backing_store.get_path_type("Home.md", "main") == PathType.ABSENT
        with pytest.raises(RevisionNotFoundError):
            backing_store.read_file_and_hash("Home.md", "main")


class TestCommitAndRead:
    """Test cases for commits and reads."""

    def test_multi_file_commit_is_one_commit(self, backing_store):
        commit_id = backing_store.create_commit("main", [
            CommitOperation.add("docs/setup.md", b"# Setup"),
            CommitOperation.add("docs/medias/a.png", b"\x89PNG"),
        ], _metadata("Create page docs/setup"))

        assert branch_tip(backing_store.repo_path) == commit_id
        assert commit_count(backing_store.repo_path) == 1
        assert files_in_commit(backing_store.repo_path, commit_id) == [
            "docs/medias/a.png", "docs/setup.md",
        ]

    def test_read_file_and_hash(self, backing_store):
        backing_store.create_commit("main", [CommitOperation.add("Home.md", b"# Home")], _metadata("Init"))

        file = backing_store.read_file_and_hash("Home.md", "main")

        assert file.content == b"# Home"
        assert file.hash == run_git(backing_store.repo_path, "rev-parse", "main:Home.md").strip()

    def test_hash_changes_with_content(self, backing_store):
        backing_store.create_commit("main", [CommitOperation.add("Home.md", b"v1")], _metadata("v1"))
        first = backing_store.read_file_and_hash("Home.md", "main").hash
        backing_store.create_commit("main", [CommitOperation.update("Home.md", b"v2")], _metadata("v2"))

        assert backing_store.read_file_and_hash("Home.md", "main").hash != first

    def test_read_at_older_commit(self, backing_store):
        old = backing_store.create_commit("main", [CommitOperation.add("Home.md", b"v1")], _metadata("v1"))
        backing_store.create_commit("main", [CommitOperation.update("Home.md", b"v2")], _metadata("v2"))

        assert backing_store.read_file_and_hash("Home.md", old).content == b"v1"

    def test_missing_path(self, backing_store):
        backing_store.create_commit("main", [CommitOperation.add("docs/a.md", b"a")], _metadata("a"))

        with pytest.raises(GitPathNotFoundError):
            backing_store.read_file_and_hash("Home.md", "main")
        with pytest.raises(GitPathNotFoundError):
            backing_store.read_file_and_hash("docs", "main")

    def test_unknown_revision(self, backing_store):
        backing_store.create_commit("main", [CommitOperation.add("Home.md", b"a")], _metadata("a"))

        with pytest.raises(RevisionNotFoundError):
            backing_store.read_file_and_hash("Home.md", "deadbeef")
        with pytest.raises(RevisionNotFoundError):
            backing_store.get_commit("0" * 40)

    def test_history_newest_first(self, backing_store):
        backing_store.create_commit("main", [CommitOperation.add("Home.md", b"v1")], _metadata("First"))
        backing_store.create_commit("main", [CommitOperation.add("Other.md", b"x")], _metadata("Other"))
        backing_store.create_commit(
            "main", [CommitOperation.update("Home.md", b"v2")], _metadata("Second", "Bob", "bob@wikistore.local")
        )

        history = list(backing_store.get_file_history("Home.md", "main"))

        assert [r.message for r in history] == ["Second", "First"]
        assert history[0].author_name == "Bob"
        assert history[0].timestamp == datetime(2024, 5, 17, 7, 30, tzinfo=timezone.utc)
        assert len(list(backing_store.get_file_history("Home.md", "main", limit=1))) == 1

    def test_get_commit(self, backing_store):
        commit_id = backing_store.create_commit(
            "main", [CommitOperation.add("Home.md", b"x")], _metadata("Create home\n\nDetails")
        )

        revision = backing_store.get_commit(commit_id[:12])

        assert revision.commit_id == commit_id
        assert revision.message == "Create home\n\nDetails"
        assert revision.author_email == "alice@wikistore.local"

    def test_author_is_sanitized(self, backing_store):
        commit_id = backing_store.create_commit(
            "main", [CommitOperation.add("Home.md", b"x")], _metadata("x", "Eve <evil>", "e<v>e@x")
        )

        assert commit_author(backing_store.repo_path, commit_id) == "Eve _evil_ <e_v_e@x>"

    def test_enumerate_tree_and_path_type(self, backing_store):
        backing_store.create_commit("main", [
            CommitOperation.add("Home.md", b"h"),
            CommitOperation.add("docs/setup.md", b"s"),
            CommitOperation.add("docs/linux/install.md", b"i"),
        ], _metadata("Pages"))

        entries = set(backing_store.enumerate_tree("main"))
        docs = set(backing_store.enumerate_tree("main", "docs"))

        assert TreeEntry("docs", PathType.DIRECTORY) in entries
        assert TreeEntry("docs/linux/install.md", PathType.FILE) in entries
        assert docs == {
            TreeEntry("docs/setup.md", PathType.FILE),
            TreeEntry("docs/linux", PathType.DIRECTORY),
            TreeEntry("docs/linux/install.md", PathType.FILE),
        }
        assert list(backing_store.enumerate_tree("main", "nothing")) == []
        assert backing_store.get_path_type("docs", "main") == PathType.DIRECTORY
        assert backing_store.get_path_type("docs/setup.md", "main") == PathType.FILE
        assert backing_store.get_path_type("docs/missing.md", "main") == PathType.ABSENT


class TestConcurrency:
    """Test cases for the compare-and-swap publication of commits."""

    def test_lost_race_raises_and_keeps_winner(self, backing_store):
        first = backing_store.create_commit("main", [CommitOperation.add("Home.md", b"v1")], _metadata("v1"))
        winner = backing_store.create_commit("main", [CommitOperation.update("Home.md", b"v2")], _metadata("v2"))

        # Simulate a writer that read the tip before the winner landed
        with patch.object(backing_store, "get_branch_tip", return_value=first):
            with pytest.raises(ConcurrentCommitError) as exc_info:
                backing_store.create_commit(
                    "main", [CommitOperation.update("Home.md", b"v3")], _metadata("v3")
                )

        assert exc_info.value.retryable is True
        assert branch_tip(backing_store.repo_path) == winner
        assert backing_store.read_file_and_hash("Home.md", "main").content == b"v2"

    def test_lost_race_on_unborn_branch(self, backing_store):
        winner = backing_store.create_commit("main", [CommitOperation.add("Home.md", b"a")], _metadata("a"))

        with patch.object(backing_store, "get_branch_tip", return_value=None):
            with pytest.raises(ConcurrentCommitError):
                backing_store.create_commit("main", [CommitOperation.add("Other.md", b"b")], _metadata("b"))

        assert branch_tip(backing_store.repo_path) == winner

    def test_parallel_writers_all_land_with_retry(self, backing_store):
        from src.git_backend.retry_logic import retry_on_concurrent_commit

        backing_store.create_commit("main", [CommitOperation.add("Home.md", b"h")], _metadata("init"))
        errors = []

        def write(index: int) -> None:
            try:
                retry_on_concurrent_commit(
                    backing_store.create_commit,
                    "main",
                    [CommitOperation.add(f"page{index}.md", b"x")],
                    _metadata(f"page {index}"),
                )
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=write, args=(i,)) for i in range(4)]
        with patch("src.git_backend.retry_logic.time.sleep"):
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        landed = {e.path for e in backing_store.enumerate_tree("main")}
        assert all(isinstance(e, ConcurrentCommitError) for e in errors)
        assert len(landed) == 5 - len(errors)

    def test_cancelled_commit_publishes_nothing(self, backing_store):
        tip = backing_store.create_commit("main", [CommitOperation.add("Home.md", b"h")], _metadata("init"))
        event = threading.Event()
        event.set()

        with pytest.raises(OperationCancelledError):
            backing_store.create_commit("main", [CommitOperation.update("Home.md", b"x")], _metadata("x"), event)

        assert branch_tip(backing_store.repo_path) == tip
