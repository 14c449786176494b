"""Data models for staged media."""

import os
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class TemporaryMediaRecord:
    """A media file uploaded but not yet attached to a page.

    Attributes:
        temporary_id: 32 lowercase hex characters, unguessable
        original_file_name: File name given at upload
        storage_path: Absolute path of the staged bytes
        created_at: Upload time (UTC)
        owner_key: SHA-256 hex of the uploader's private git email
    """
    temporary_id: str
    original_file_name: str
    storage_path: str
    created_at: datetime
    owner_key: str

    @property
    def extension(self) -> str:
        """Extension of the staged file, leading dot included ("" if none)."""
        _, dot, extension = os.path.basename(self.storage_path).partition(".")
        return f"{dot}{extension}" if dot else ""
