"""Versioned, localized wiki pages.

This package maps page identities to repository paths, extracts and caches
page titles, and reads and writes pages and media through the git backing
store.
"""

from src.page_store.errors import (
    FrontMatterError,
    InvalidIdentifierError,
    PathConflictError,
)
from src.page_store.models import WikiHistoryItem, WikiPage, WikiPageInfo, WikiTemplate
from src.page_store.page_store import PageStore
from src.page_store.path_resolver import (
    get_directory_name,
    localized_culture_of,
    parse_path,
    resolve_path,
)
from src.page_store.site_map import SiteMapNode, build_site_map
from src.page_store.template_service import TemplateService, resolve_placeholders
from src.page_store.title_cache import TitleCache
from src.page_store.title_extractor import extract_title

__all__ = [
    # Errors
    'FrontMatterError',
    'InvalidIdentifierError',
    'PathConflictError',
    # Components
    'PageStore',
    'TemplateService',
    'TitleCache',
    'build_site_map',
    'extract_title',
    'resolve_placeholders',
    # Path resolution
    'get_directory_name',
    'localized_culture_of',
    'parse_path',
    'resolve_path',
    # Models
    'WikiHistoryItem',
    'WikiPage',
    'WikiPageInfo',
    'WikiTemplate',
    'SiteMapNode',
]
