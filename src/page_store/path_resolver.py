"""Mapping between page identities and repository paths.

A page is identified by a slash-separated page name and an optional culture.
Pages in the neutral culture are stored as ``<page_name>.md``, other cultures
as ``<page_name>.<culture>.md``. The mapping is pure and invertible.
"""

from typing import Optional, Tuple

from src.page_store.input_validator import (
    is_valid_culture,
    validate_culture,
    validate_page_name,
)

MARKDOWN_EXTENSION = ".md"


def is_neutral(culture: Optional[str], neutral_culture: str) -> bool:
    """Return True if ``culture`` designates the neutral variant of a page."""
    return not culture or culture == neutral_culture


def resolve_path(page_name: str, culture: Optional[str], neutral_culture: str) -> str:
    """Return the repository path storing a page variant.

    Args:
        page_name: Logical page name, e.g. "docs/setup"
        culture: Culture tag, or None for the neutral variant
        neutral_culture: Culture stored without a suffix

    Returns:
        Repository path, e.g. "docs/setup.md" or "docs/setup.fr.md"

    Raises:
        InvalidIdentifierError: If the page name or culture is malformed
    """
    validate_page_name(page_name)
    if is_neutral(culture, neutral_culture):
        return f"{page_name}{MARKDOWN_EXTENSION}"

    validate_culture(culture)
    return f"{page_name}.{culture}{MARKDOWN_EXTENSION}"


def parse_path(path: str, neutral_culture: str) -> Optional[Tuple[str, Optional[str]]]:
    """Return (page name, culture) for a repository path.

    The culture is None for the neutral variant. Paths that are not markdown
    files yield None. The page name is not validated; callers listing the
    tree skip results whose name is not a valid page name.
    """
    if not path.endswith(MARKDOWN_EXTENSION):
        return None

    stem = path[:-len(MARKDOWN_EXTENSION)]
    directory, _, file_stem = stem.rpartition("/")
    base, dot, suffix = file_stem.rpartition(".")
    if dot and base and is_valid_culture(suffix) and suffix != neutral_culture:
        page_name = f"{directory}/{base}" if directory else base
        return page_name, suffix

    return stem, None


def get_directory_name(page_name: str) -> str:
    """Return the parent segment of a page name ("" for root pages)."""
    directory, _, _ = page_name.rpartition("/")
    return directory


def get_base_name(page_name: str) -> str:
    """Return the last segment of a page name."""
    return page_name.rpartition("/")[2]


def localized_culture_of(file_name: str, page_name: str, neutral_culture: str) -> Optional[str]:
    """Return which culture of ``page_name`` a sibling file stores, if any.

    Args:
        file_name: File name (no directory) found next to the page
        page_name: Logical page name
        neutral_culture: Culture stored without a suffix

    Returns:
        The culture tag (``neutral_culture`` for the unsuffixed file), or None
        if the file is not a variant of this page
    """
    if not file_name.endswith(MARKDOWN_EXTENSION):
        return None

    stem = file_name[:-len(MARKDOWN_EXTENSION)]
    base_name = get_base_name(page_name)
    if stem == base_name:
        return neutral_culture

    prefix = base_name + "."
    if stem.startswith(prefix):
        candidate = stem[len(prefix):]
        if is_valid_culture(candidate):
            return candidate
    return None
