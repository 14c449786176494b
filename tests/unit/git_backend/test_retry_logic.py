"""Unit tests for git_backend.retry_logic module."""

from unittest.mock import MagicMock, patch

import pytest

from src.git_backend.errors import (
    BackingStoreError,
    ConcurrentCommitError,
    GitTimeoutError,
)
from src.git_backend.retry_logic import MAX_RETRIES, as_decorator, retry_on_concurrent_commit


def _conflict() -> ConcurrentCommitError:
    return ConcurrentCommitError("/repo", "main", "cannot lock ref")


class TestRetryOnConcurrentCommit:
    """Test cases for retry_on_concurrent_commit function."""

    def test_success_on_first_attempt(self):
        """Returns the result without sleeping when the first call succeeds."""
        mock_func = MagicMock(return_value="abc123")

        with patch("src.git_backend.retry_logic.time.sleep") as mock_sleep:
            result = retry_on_concurrent_commit(mock_func, "Home", culture=None)

        assert result == "abc123"
        mock_func.assert_called_once_with("Home", culture=None)
        mock_sleep.assert_not_called()

    def test_retries_concurrent_commit_then_succeeds(self):
        """A lost commit race is retried with exponential backoff."""
        mock_func = MagicMock(side_effect=[_conflict(), _conflict(), "abc123"])

        with patch("src.git_backend.retry_logic.time.sleep") as mock_sleep:
            result = retry_on_concurrent_commit(mock_func)

        assert result == "abc123"
        assert mock_func.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1, 2]

    def test_gives_up_after_max_retries(self):
        """The last ConcurrentCommitError is raised once retries are exhausted."""
        mock_func = MagicMock(side_effect=_conflict())

        with patch("src.git_backend.retry_logic.time.sleep") as mock_sleep:
            with pytest.raises(ConcurrentCommitError):
                retry_on_concurrent_commit(mock_func)

        assert mock_func.call_count == MAX_RETRIES + 1
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1, 2, 4]

    def test_timeout_is_retried(self):
        """Git timeouts are retryable."""
        mock_func = MagicMock(side_effect=[GitTimeoutError("/repo", "log", 10), "ok"])

        with patch("src.git_backend.retry_logic.time.sleep"):
            assert retry_on_concurrent_commit(mock_func) == "ok"

    def test_non_retryable_backing_store_error_raised_immediately(self):
        mock_func = MagicMock(side_effect=BackingStoreError("/repo", "Failed to write tree"))

        with patch("src.git_backend.retry_logic.time.sleep") as mock_sleep:
            with pytest.raises(BackingStoreError):
                retry_on_concurrent_commit(mock_func)

        mock_func.assert_called_once()
        mock_sleep.assert_not_called()

    def test_other_exceptions_raised_immediately(self):
        mock_func = MagicMock(side_effect=ValueError("bad input"))

        with pytest.raises(ValueError):
            retry_on_concurrent_commit(mock_func)

        mock_func.assert_called_once()


class TestAsDecorator:
    """Test cases for as_decorator."""

    def test_decorated_function_is_retried(self):
        calls = []

        @as_decorator
        def publish(value):
            calls.append(value)
            if len(calls) == 1:
                raise _conflict()
            return value * 2

        with patch("src.git_backend.retry_logic.time.sleep"):
            assert publish(21) == 42

        assert calls == [21, 21]
        assert publish.__name__ == "publish"
