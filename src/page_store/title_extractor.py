"""Extraction of display titles from page content."""

import logging
import re
from typing import Optional

from src.page_store.errors import FrontMatterError
from src.page_store.front_matter import parse_front_matter, split_front_matter
from src.page_store.path_resolver import get_base_name

logger = logging.getLogger(__name__)

FIRST_HEADING_PATTERN = re.compile(r'^#\s+(.+)$', re.MULTILINE)


def _front_matter_title(content: str, page_name: str) -> Optional[str]:
    try:
        data, _ = parse_front_matter(content, page_name)
    except FrontMatterError as e:
        logger.debug(f"Ignoring front matter of {page_name}: {e}")
        return None

    title = data.get("title")
    if title is None:
        return None
    title = str(title).strip()
    return title or None


def extract_title(content: str, page_name: str) -> str:
    """Return the title of a page.

    The title is the ``title`` key of the front matter when present, else
    the first level-one heading of the body, else the last segment of the
    page name.

    Example:
        >>> extract_title("# Getting started\\n\\nText", "docs/setup")
        'Getting started'
        >>> extract_title("No heading", "docs/setup")
        'setup'
    """
    if not content or not content.strip():
        return get_base_name(page_name)

    title = _front_matter_title(content, page_name)
    if title:
        return title

    _, body = split_front_matter(content)
    match = FIRST_HEADING_PATTERN.search(body)
    if match:
        heading = match.group(1).strip()
        if heading:
            return heading

    return get_base_name(page_name)
