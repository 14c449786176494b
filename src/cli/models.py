"""Data models for CLI operations."""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes of the wiki-store command.

    - SUCCESS (0): Operation completed successfully
    - GENERAL_ERROR (1): Configuration, repository or unexpected failure
    - CONFLICT (2): The page changed since the expected hash, or commits
      kept racing after retries
    - NOT_FOUND (3): Requested page, revision or media does not exist
    - INVALID_INPUT (4): Malformed page name, culture, id or rule file
    - OUTCOME_UNKNOWN (5): Interrupted while publishing a commit

    Example:
        >>> raise typer.Exit(ExitCode.NOT_FOUND)
    """
    SUCCESS = 0
    GENERAL_ERROR = 1
    CONFLICT = 2
    NOT_FOUND = 3
    INVALID_INPUT = 4
    OUTCOME_UNKNOWN = 5
