"""Temporary staging of media uploaded during page edits."""

from src.media_staging.cleanup_worker import TemporaryMediaCleanupWorker
from src.media_staging.errors import StagingError
from src.media_staging.models import TemporaryMediaRecord
from src.media_staging.staging import TemporaryMediaStaging, owner_key_for

__all__ = [
    'StagingError',
    'TemporaryMediaCleanupWorker',
    'TemporaryMediaRecord',
    'TemporaryMediaStaging',
    'owner_key_for',
]
