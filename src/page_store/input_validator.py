"""Validation of identifiers received from callers.

Every identifier that ends up in a repository path or a filesystem path is
checked here before any I/O happens. Validation failures raise
InvalidIdentifierError naming the field and the reason.
"""

import re

from src.page_store.errors import InvalidIdentifierError

PAGE_NAME_PATTERN = re.compile(r'^[A-Za-z0-9_/-]+$')
CULTURE_PATTERN = re.compile(r'^[a-z]{2}(-[A-Z]{2})?$')
MEDIA_PATH_PATTERN = re.compile(r'^([A-Za-z0-9_-]+/)*[A-Za-z0-9_-]+(\.[A-Za-z0-9]+)+$')
TEMP_MEDIA_ID_PATTERN = re.compile(r'^[a-f0-9]{32}$')
REVISION_ID_PATTERN = re.compile(r'^[a-f0-9]{4,64}$')


def _traversal_reason(value: str) -> str:
    """Return why a slash-separated path is unsafe, or "" if it is safe."""
    if '..' in value:
        return "must not contain '..'"
    if '//' in value:
        return "must not contain empty segments"
    if value.startswith('/') or value.endswith('/'):
        return "must not start or end with '/'"
    return ""


def is_valid_page_name(page_name: str) -> bool:
    if not page_name or not page_name.strip():
        return False
    if not PAGE_NAME_PATTERN.match(page_name):
        return False
    return not _traversal_reason(page_name)


def is_valid_culture(culture: str) -> bool:
    return bool(culture) and CULTURE_PATTERN.match(culture) is not None


def is_valid_media_path(media_path: str) -> bool:
    if not media_path or not media_path.strip():
        return False
    if not MEDIA_PATH_PATTERN.match(media_path):
        return False
    return not _traversal_reason(media_path)


def is_valid_temp_media_id(temporary_id: str) -> bool:
    return bool(temporary_id) and TEMP_MEDIA_ID_PATTERN.match(temporary_id) is not None


def validate_page_name(page_name: str) -> None:
    """Validate a logical page name such as ``docs/setup``.

    Raises:
        InvalidIdentifierError: If the name is blank, uses characters other
            than letters, digits, '_', '-' and '/', or could escape the
            repository root
    """
    if not page_name or not page_name.strip():
        raise InvalidIdentifierError("page_name", page_name, "must not be empty")
    if not PAGE_NAME_PATTERN.match(page_name):
        raise InvalidIdentifierError(
            "page_name", page_name,
            "only letters, digits, '_', '-' and '/' are allowed",
        )
    reason = _traversal_reason(page_name)
    if reason:
        raise InvalidIdentifierError("page_name", page_name, reason)


def validate_culture(culture: str) -> None:
    """Validate a culture tag such as ``fr`` or ``en-US``."""
    if not is_valid_culture(culture):
        raise InvalidIdentifierError(
            "culture", culture, "expected a tag like 'fr' or 'en-US'"
        )


def validate_media_path(media_path: str) -> None:
    """Validate a repository-relative media path such as ``docs/medias/a.png``."""
    if not media_path or not MEDIA_PATH_PATTERN.match(media_path):
        raise InvalidIdentifierError(
            "media_path", media_path,
            "expected '/'-separated segments ending with a file extension",
        )
    reason = _traversal_reason(media_path)
    if reason:
        raise InvalidIdentifierError("media_path", media_path, reason)


def validate_temp_media_id(temporary_id: str) -> None:
    """Validate a temporary media id (32 lowercase hex characters)."""
    if not is_valid_temp_media_id(temporary_id):
        raise InvalidIdentifierError(
            "temporary_id", temporary_id, "expected 32 lowercase hex characters"
        )


def validate_revision_id(revision_id: str) -> None:
    """Validate a commit id, full or abbreviated."""
    if not revision_id or not REVISION_ID_PATTERN.match(revision_id):
        raise InvalidIdentifierError(
            "revision_id", revision_id, "expected 4 to 64 lowercase hex characters"
        )
