"""Per-user staging area for uploaded media.

Media uploaded while a page is being edited is kept here until the page is
saved (and the media promoted into the repository) or the file is swept
for being too old. Each user owns one directory named after a SHA-256 hash
of their private git email:

    <repository_root>/.temp-media/
      <owner_key>/
        <temporary_id>.png          # staged bytes
        <temporary_id>.meta.json    # {"original_file_name": ..., "created_at": ...}

The filesystem is the source of truth. The in-memory index only avoids
rescanning directories and is rebuilt from the sidecar files when cold.
"""

import hashlib
import json
import logging
import os
import re
import threading
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from src.git_backend.errors import OperationCancelledError
from src.media_staging.errors import StagingError
from src.media_staging.models import TemporaryMediaRecord
from src.models.wiki_options import WikiOptions
from src.models.wiki_user import WikiUser
from src.page_store.errors import InvalidIdentifierError
from src.page_store.input_validator import is_valid_temp_media_id, validate_temp_media_id

logger = logging.getLogger(__name__)

OWNER_KEY_PATTERN = re.compile(r'^[a-f0-9]{64}$')
META_SUFFIX = ".meta.json"


def owner_key_for(user: WikiUser) -> str:
    """Return the staging owner key of a user (SHA-256 hex of the git email)."""
    return hashlib.sha256(user.git_email.encode("utf-8")).hexdigest()


def validate_owner_key(owner_key: str) -> None:
    if not owner_key or not OWNER_KEY_PATTERN.match(owner_key):
        raise InvalidIdentifierError(
            "owner_key", owner_key, "expected 64 lowercase hex characters"
        )


class TemporaryMediaStaging:
    """File-backed staging area, one directory per owner.

    Operations on different owners never touch the same files. A file
    deleted by a sweep while being fetched reads as missing.

    Example:
        >>> staging = TemporaryMediaStaging("/srv/wiki-data/.temp-media", [".png"])
        >>> owner = owner_key_for(user)
        >>> temp_id = staging.store(owner, "diagram.png", png_bytes)
        >>> staging.fetch(owner, temp_id) == png_bytes
        True
    """

    def __init__(self, root_dir: str, allowed_extensions: Iterable[str]):
        """Initialize the staging area.

        Args:
            root_dir: Directory holding the owner directories
            allowed_extensions: Accepted file extensions, leading dot included
        """
        self.root_dir = os.path.abspath(root_dir)
        self.allowed_extensions = {ext.lower() for ext in allowed_extensions}
        self._index: Dict[str, Dict[str, TemporaryMediaRecord]] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_options(cls, options: WikiOptions) -> "TemporaryMediaStaging":
        return cls(options.temp_media_root, options.allowed_media_extensions)

    def _owner_dir(self, owner_key: str) -> str:
        validate_owner_key(owner_key)
        return os.path.join(self.root_dir, owner_key)

    def _meta_path(self, owner_key: str, temporary_id: str) -> str:
        return os.path.join(self.root_dir, owner_key, f"{temporary_id}{META_SUFFIX}")

    # ------------------------------------------------------------------
    # Index maintenance
    # ------------------------------------------------------------------

    def _read_record(self, owner_key: str, data_path: str) -> Optional[TemporaryMediaRecord]:
        """Build the record of a staged file from its sidecar (or the file itself)."""
        file_name = os.path.basename(data_path)
        temporary_id = file_name.partition(".")[0]
        if not is_valid_temp_media_id(temporary_id):
            return None

        original_name = file_name
        created_at = None
        try:
            with open(self._meta_path(owner_key, temporary_id), "r", encoding="utf-8") as f:
                metadata = json.load(f)
            original_name = metadata["original_file_name"]
            created_at = datetime.fromisoformat(metadata["created_at"])
        except FileNotFoundError:
            pass
        except (OSError, json.JSONDecodeError, KeyError, ValueError) as e:
            logger.warning(f"Ignoring unreadable metadata for {data_path}: {e}")

        if created_at is None:
            try:
                mtime = os.path.getmtime(data_path)
            except OSError:
                return None
            created_at = datetime.fromtimestamp(mtime, tz=timezone.utc)

        return TemporaryMediaRecord(
            temporary_id=temporary_id,
            original_file_name=original_name,
            storage_path=data_path,
            created_at=created_at,
            owner_key=owner_key,
        )

    def _scan_owner(self, owner_key: str) -> Dict[str, TemporaryMediaRecord]:
        owner_dir = os.path.join(self.root_dir, owner_key)
        records: Dict[str, TemporaryMediaRecord] = {}
        try:
            names = os.listdir(owner_dir)
        except FileNotFoundError:
            return records

        for name in names:
            if name.endswith(META_SUFFIX):
                continue
            record = self._read_record(owner_key, os.path.join(owner_dir, name))
            if record is not None:
                records[record.temporary_id] = record
        return records

    def _owner_index(self, owner_key: str) -> Dict[str, TemporaryMediaRecord]:
        """Return the index of an owner, rebuilding it from disk when cold.

        Owners with nothing staged are not kept in the index. Must be
        called with the lock held.
        """
        index = self._index.get(owner_key)
        if index is None:
            logger.debug(f"Rebuilding staging index for owner {owner_key[:8]}")
            index = self._scan_owner(owner_key)
            if index:
                self._index[owner_key] = index
        return index

    def _remember(self, record: TemporaryMediaRecord) -> None:
        """Add a record to its owner's index. Must be called with the lock held."""
        index = self._owner_index(record.owner_key)
        index[record.temporary_id] = record
        self._index[record.owner_key] = index

    def _find_record(self, owner_key: str, temporary_id: str) -> Optional[TemporaryMediaRecord]:
        with self._lock:
            record = self._owner_index(owner_key).get(temporary_id)
        if record is not None:
            return record

        # Another process may have staged it since the index was built
        owner_dir = os.path.join(self.root_dir, owner_key)
        try:
            names = os.listdir(owner_dir)
        except FileNotFoundError:
            return None
        for name in names:
            if name.startswith(f"{temporary_id}.") and not name.endswith(META_SUFFIX):
                record = self._read_record(owner_key, os.path.join(owner_dir, name))
                if record is not None:
                    with self._lock:
                        self._remember(record)
                    return record
        return None

    def _evict(self, owner_key: str, temporary_id: str) -> None:
        with self._lock:
            index = self._index.get(owner_key)
            if index is not None:
                index.pop(temporary_id, None)

    def _release_owner_if_empty(self, owner_key: str, owner_dir: str) -> None:
        """Forget an owner whose directory no longer holds any file."""
        with self._lock:
            try:
                if os.listdir(owner_dir):
                    return
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Cannot list {owner_dir}: {e}")
                return
            self._index.pop(owner_key, None)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def store(
        self,
        owner_key: str,
        file_name: str,
        data: bytes,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        """Stage an uploaded file.

        Args:
            owner_key: Owner key of the uploader
            file_name: Original file name, its extension must be allowed
            data: File bytes
            cancel_event: Optional cancellation signal

        Returns:
            The new temporary id

        Raises:
            InvalidIdentifierError: If the owner key or extension is invalid
            StagingError: If the file cannot be written
        """
        owner_dir = self._owner_dir(owner_key)
        extension = os.path.splitext(file_name)[1]
        if extension.lower() not in self.allowed_extensions:
            raise InvalidIdentifierError(
                "file_name", file_name, f"extension '{extension}' is not allowed"
            )
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError("store")

        temporary_id = uuid.uuid4().hex
        data_path = os.path.join(owner_dir, f"{temporary_id}{extension}")
        created_at = datetime.now(timezone.utc)

        try:
            os.makedirs(owner_dir, exist_ok=True)
            with open(data_path, "wb") as f:
                f.write(data)
            with open(self._meta_path(owner_key, temporary_id), "w", encoding="utf-8") as f:
                json.dump({
                    "temporary_id": temporary_id,
                    "original_file_name": file_name,
                    "owner_key": owner_key,
                    "created_at": created_at.isoformat(),
                }, f, indent=2)
        except OSError as e:
            raise StagingError(data_path, f"Failed to write staged file: {e}")

        record = TemporaryMediaRecord(
            temporary_id=temporary_id,
            original_file_name=file_name,
            storage_path=data_path,
            created_at=created_at,
            owner_key=owner_key,
        )
        with self._lock:
            self._remember(record)

        logger.debug(f"Staged {file_name} as {temporary_id} ({len(data)} bytes)")
        return temporary_id

    def get_record(self, owner_key: str, temporary_id: str) -> Optional[TemporaryMediaRecord]:
        """Return the record of a staged file, None if it is not staged."""
        validate_owner_key(owner_key)
        validate_temp_media_id(temporary_id)
        return self._find_record(owner_key, temporary_id)

    def fetch(
        self,
        owner_key: str,
        temporary_id: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[bytes]:
        """Return the bytes of a staged file, None if it is not staged.

        Raises:
            InvalidIdentifierError: If the owner key or id is malformed
        """
        record = self.get_record(owner_key, temporary_id)
        if record is None:
            return None
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError("fetch")

        try:
            with open(record.storage_path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            # Swept or cleaned up after the lookup
            self._evict(owner_key, temporary_id)
            return None

    def list_for_owner(self, owner_key: str) -> Dict[str, TemporaryMediaRecord]:
        """Return the staged files of an owner keyed by temporary id."""
        validate_owner_key(owner_key)
        with self._lock:
            return dict(self._owner_index(owner_key))

    def cleanup(self, owner_key: str, temporary_ids: Iterable[str]) -> None:
        """Delete staged files of an owner.

        Every id is validated before anything is deleted. Files already gone
        are ignored and other filesystem errors are logged.
        """
        owner_dir = self._owner_dir(owner_key)
        temporary_ids = list(temporary_ids)
        for temporary_id in temporary_ids:
            validate_temp_media_id(temporary_id)

        for temporary_id in temporary_ids:
            record = self._find_record(owner_key, temporary_id)
            self._evict(owner_key, temporary_id)
            paths = [self._meta_path(owner_key, temporary_id)]
            if record is not None:
                paths.insert(0, record.storage_path)
            for path in paths:
                self._remove_quietly(path)

        self._release_owner_if_empty(owner_key, owner_dir)

        logger.debug(f"Cleaned up {len(temporary_ids)} staged file(s) in {owner_dir}")

    def sweep_older_than(self, max_age: timedelta) -> int:
        """Delete staged files last written before ``now - max_age``.

        Scans every owner directory and evicts the deleted files from the
        index.

        Returns:
            Number of staged media files deleted (sidecars not counted)
        """
        cutoff = time.time() - max_age.total_seconds()
        removed = 0

        try:
            owner_keys = os.listdir(self.root_dir)
        except FileNotFoundError:
            return 0

        for owner_key in owner_keys:
            owner_dir = os.path.join(self.root_dir, owner_key)
            if not OWNER_KEY_PATTERN.match(owner_key) or not os.path.isdir(owner_dir):
                continue
            removed += self._sweep_owner(owner_key, owner_dir, cutoff)

        logger.info(f"Swept {removed} staged media file(s) older than {max_age}")
        return removed

    def _sweep_owner(self, owner_key: str, owner_dir: str, cutoff: float) -> int:
        removed = 0
        try:
            names: List[str] = os.listdir(owner_dir)
        except OSError as e:
            logger.warning(f"Cannot list {owner_dir}: {e}")
            return 0

        for name in names:
            path = os.path.join(owner_dir, name)
            try:
                if os.path.getmtime(path) >= cutoff:
                    continue
                os.remove(path)
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Failed to sweep {path}: {e}")
                continue

            if not name.endswith(META_SUFFIX):
                removed += 1
                self._evict(owner_key, name.partition(".")[0])

        self._release_owner_if_empty(owner_key, owner_dir)
        return removed

    @staticmethod
    def _remove_quietly(path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to delete staged file {path}: {e}")
