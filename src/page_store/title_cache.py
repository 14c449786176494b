"""Process-wide cache of page titles.

Titles are shown wherever pages are listed, and extracting one requires
reading the page from the repository. The cache maps
``(page name, culture)`` to the extracted title. Entries never expire: they
are overwritten whenever a page is saved or re-read, and the repository
stays authoritative.
"""

import logging
import threading
from typing import Dict, Optional, Tuple

from src.git_backend.errors import NotFoundError
from src.git_backend.git_repository import GitBackingStore
from src.page_store.path_resolver import resolve_path
from src.page_store.title_extractor import extract_title

logger = logging.getLogger(__name__)


class TitleCache:
    """Lazily populated title cache backed by the branch tip.

    Attributes:
        store: Backing store pages are read from on a cache miss
        branch: Branch whose tip is read
        neutral_culture: Culture that ``None`` stands for in cache keys
    """

    def __init__(self, store: GitBackingStore, branch: str, neutral_culture: str):
        self.store = store
        self.branch = branch
        self.neutral_culture = neutral_culture
        self._titles: Dict[Tuple[str, str], str] = {}
        self._lock = threading.Lock()

    def _key(self, page_name: str, culture: Optional[str]) -> Tuple[str, str]:
        return page_name, culture or self.neutral_culture

    def get_page_title(
        self,
        page_name: str,
        culture: Optional[str],
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[str]:
        """Return the title of a page, reading it on a cache miss.

        Returns:
            The title, or None if the page does not exist
        """
        key = self._key(page_name, culture)
        with self._lock:
            cached = self._titles.get(key)
        if cached is not None:
            logger.debug(f"Title cache hit for {page_name} ({key[1]})")
            return cached

        logger.debug(f"Title cache miss for {page_name} ({key[1]})")
        path = resolve_path(page_name, culture, self.neutral_culture)
        try:
            file = self.store.read_file_and_hash(path, self.branch, cancel_event)
        except NotFoundError:
            return None

        return self.extract_and_cache_title(
            page_name, culture, file.content.decode("utf-8", errors="replace")
        )

    def extract_and_cache_title(self, page_name: str, culture: Optional[str], content: str) -> str:
        """Extract the title from ``content`` and store it, replacing any entry."""
        title = extract_title(content, page_name)
        with self._lock:
            self._titles[self._key(page_name, culture)] = title
        return title

    def clear(self) -> None:
        """Drop every cached title."""
        with self._lock:
            self._titles.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._titles)
