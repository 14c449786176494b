"""YAML front matter parsing for wiki pages.

Pages may start with a YAML block between ``---`` lines. The wiki reads the
``title`` key for page titles and the template keys (``title``,
``description``, ``location``, ``pattern``) for page templates.
"""

import re
from typing import Any, Dict, Tuple

import yaml

from src.page_store.errors import FrontMatterError

# Regex pattern to match YAML front matter (between --- delimiters)
FRONT_MATTER_PATTERN = re.compile(
    r'^---\s*\r?\n(.*?)\r?\n---\s*(?:\r?\n|$)',
    re.DOTALL
)

# Maximum allowed depth for YAML structures to prevent DoS attacks
MAX_YAML_DEPTH = 10


def _validate_yaml_depth(obj: Any, page_name: str, current_depth: int = 0) -> None:
    if current_depth > MAX_YAML_DEPTH:
        raise FrontMatterError(
            page_name,
            f"YAML structure exceeds maximum depth of {MAX_YAML_DEPTH}"
        )

    if isinstance(obj, dict):
        for value in obj.values():
            _validate_yaml_depth(value, page_name, current_depth + 1)
    elif isinstance(obj, list):
        for item in obj:
            _validate_yaml_depth(item, page_name, current_depth + 1)


def split_front_matter(content: str) -> Tuple[str, str]:
    """Split content into (raw front matter, body).

    The front matter is "" when the content has none.
    """
    match = FRONT_MATTER_PATTERN.match(content)
    if not match:
        return "", content
    return match.group(1), content[match.end():]


def parse_front_matter(content: str, page_name: str = "<page>") -> Tuple[Dict[str, Any], str]:
    """Parse the front matter of a page.

    Args:
        content: Full markdown content
        page_name: Page name used in error messages

    Returns:
        Tuple of (front matter dictionary, markdown body). The dictionary is
        empty when the page has no front matter.

    Raises:
        FrontMatterError: If the front matter is not a valid YAML mapping
    """
    raw, body = split_front_matter(content)
    if not raw.strip():
        return {}, body

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise FrontMatterError(page_name, f"Invalid YAML syntax: {e}")

    if data is None:
        return {}, body
    if not isinstance(data, dict):
        raise FrontMatterError(
            page_name,
            f"Front matter must be a YAML dictionary, got {type(data).__name__}"
        )

    _validate_yaml_depth(data, page_name)
    return data, body
