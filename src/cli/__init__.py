"""Command-line interface for the wiki store.

This package provides the `wiki-store` CLI tool used to create a wiki
repository, read and save pages, stage media, manage access rules and
sweep old staged media.
"""

from .config_loader import ConfigLoader
from .models import ExitCode
from .errors import (
    CLIError,
    ConfigError,
    ConfigFilesystemError,
)

__all__ = [
    'ConfigLoader',
    'ExitCode',
    'CLIError',
    'ConfigError',
    'ConfigFilesystemError',
]
