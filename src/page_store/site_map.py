"""Site map builder for the page hierarchy.

Page names form a directory hierarchy (``docs/setup/linux``). This module
turns a flat page listing into a tree of SiteMapNode objects, one node per
path segment. Directories that contain pages but have no page of their own
become placeholder nodes so the tree has no gaps.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from itertools import groupby
from typing import Dict, Iterable, List, Optional

from src.page_store.models import WikiPageInfo

logger = logging.getLogger(__name__)


@dataclass
class SiteMapNode:
    """Represents a node in the site map tree.

    Attributes:
        page_name: Full page name of the node (``docs/setup``)
        display_name: Title of the neutral variant, else the last path segment
        level: Depth in the tree, 0 for root nodes
        has_page: False for a directory that has no page of its own
        title: Title of the neutral variant, None when it has none
        culture: Culture of the variant used for the node
        last_modified_at: Author date of the variant used for the node
        last_modified_by: Author name of the variant used for the node
        children: Child nodes, sorted by page name
    """
    page_name: str
    display_name: str
    level: int
    has_page: bool = False
    title: Optional[str] = None
    culture: Optional[str] = None
    last_modified_at: Optional[datetime] = None
    last_modified_by: Optional[str] = None
    children: List['SiteMapNode'] = field(default_factory=list)


def _neutral_variant(
    variants: List[WikiPageInfo], neutral_culture: str
) -> Optional[WikiPageInfo]:
    """Pick the variant describing the page in the site map.

    The variant stored without a culture wins over one stored under the
    neutral culture name. Localized variants are never used.
    """
    for variant in variants:
        if variant.culture is None:
            return variant
    for variant in variants:
        if variant.culture == neutral_culture:
            return variant
    return None


def _page_node(
    page_name: str,
    segment: str,
    level: int,
    variant: Optional[WikiPageInfo],
) -> SiteMapNode:
    if variant is None:
        return SiteMapNode(page_name=page_name, display_name=segment, level=level, has_page=True)
    return SiteMapNode(
        page_name=page_name,
        display_name=variant.title or segment,
        level=level,
        has_page=True,
        title=variant.title,
        culture=variant.culture,
        last_modified_at=variant.last_modified_at,
        last_modified_by=variant.last_modified_by,
    )


def build_site_map(pages: Iterable[WikiPageInfo], neutral_culture: str) -> List[SiteMapNode]:
    """Build the site map tree from a page listing.

    Pages are grouped by page name and walked in name order, so a parent
    page is always seen before its children. Each segment of a page name
    gets a node; the last segment carries the page, the others are
    placeholders unless a page of that name exists.

    Args:
        pages: Page variants, typically from PageStore.get_all_pages()
        neutral_culture: Culture name that counts as the neutral variant

    Returns:
        Root nodes of the tree, sorted by page name

    Example:
        >>> roots = build_site_map(store.get_all_pages(), "en")
        >>> [node.page_name for node in roots]
        ['docs', 'home']
    """
    ordered = sorted(pages, key=lambda info: info.page_name)
    roots: List[SiteMapNode] = []
    nodes_by_path: Dict[str, SiteMapNode] = {}

    for page_name, group in groupby(ordered, key=lambda info: info.page_name):
        variants = list(group)
        segments = page_name.split("/")
        parent: Optional[SiteMapNode] = None

        for level, segment in enumerate(segments):
            path = "/".join(segments[:level + 1])
            node = nodes_by_path.get(path)

            if node is None:
                if path == page_name:
                    node = _page_node(
                        path, segment, level, _neutral_variant(variants, neutral_culture)
                    )
                else:
                    node = SiteMapNode(page_name=path, display_name=segment, level=level)
                nodes_by_path[path] = node
                if parent is None:
                    roots.append(node)
                else:
                    parent.children.append(node)

            parent = node

    logger.debug(f"Built site map with {len(nodes_by_path)} node(s) from {len(roots)} root(s)")
    return roots
