"""Versioned read/write access to wiki pages.

This module provides the PageStore class, the facade the rest of the wiki
uses to read pages (current, historical, listings) and to commit page
changes together with their media files. Every write is exactly one commit
on the configured branch.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Set, Tuple

from src.content_converter.markdown_renderer import MarkdownRenderer
from src.git_backend.errors import GitPathNotFoundError, NotFoundError
from src.git_backend.git_repository import GitBackingStore
from src.git_backend.models import (
    CommitMetadata,
    CommitOperation,
    CommitSignature,
    PathType,
    Revision,
)
from src.models.wiki_options import WikiOptions
from src.models.wiki_user import UserLookup, WikiUser
from src.page_store.errors import PathConflictError
from src.page_store.input_validator import (
    is_valid_page_name,
    validate_media_path,
    validate_page_name,
    validate_revision_id,
)
from src.page_store.models import WikiHistoryItem, WikiPage, WikiPageInfo
from src.page_store.path_resolver import (
    get_directory_name,
    is_neutral,
    localized_culture_of,
    parse_path,
    resolve_path,
)
from src.page_store.title_cache import TitleCache
from src.page_store.title_extractor import extract_title

logger = logging.getLogger(__name__)

SYSTEM_AUTHOR_NAME = "Wiki System"
SYSTEM_AUTHOR_EMAIL = "wiki@wikistore.local"

INITIAL_HOME_CONTENT = (
    "# Welcome to the Wiki!\n\n"
    "This is the home page of your wiki. Feel free to edit this page "
    "and add new pages as needed.\n"
)


class PageStore:
    """Reads and writes localized wiki pages in the git backing store.

    Page variants are addressed by ``(page_name, culture)``; ``culture`` is
    None (or the neutral culture) for the default variant. Lookups of things
    that may not exist return None or an empty list. Malformed identifiers
    raise InvalidIdentifierError before the repository is touched, and
    backing store errors propagate unchanged.

    Example:
        >>> pages = PageStore(WikiOptions(repository_root="/srv/wiki-data"))
        >>> pages.ensure_repository_created()
        >>> pages.save_page_with_media("guide", None, "# Guide", "Create page guide", user, {})
        >>> pages.get_page("guide", None).title
        'Guide'
    """

    def __init__(
        self,
        options: WikiOptions,
        store: Optional[GitBackingStore] = None,
        title_cache: Optional[TitleCache] = None,
        renderer: Optional[MarkdownRenderer] = None,
        user_lookup: Optional[UserLookup] = None,
    ):
        """Initialize the page store.

        Args:
            options: Wiki settings (repository location, branch, cultures)
            store: Backing store, created from options when omitted
            title_cache: Shared title cache, created when omitted
            renderer: Renderer producing ``rendered_content`` of snapshots
            user_lookup: Resolves git emails in history to display names
        """
        self.options = options
        self.store = store or GitBackingStore(options.repository_path)
        self.title_cache = title_cache or TitleCache(
            self.store, options.branch_name, options.neutral_culture
        )
        self.renderer = renderer
        self.user_lookup = user_lookup

    @property
    def branch(self) -> str:
        return self.options.branch_name

    @property
    def neutral_culture(self) -> str:
        return self.options.neutral_culture

    def _resolve(self, page_name: str, culture: Optional[str]) -> str:
        return resolve_path(page_name, culture, self.neutral_culture)

    def _render(self, content: str, culture: Optional[str], page_name: str) -> Optional[str]:
        if self.renderer is None:
            return None
        return self.renderer.render_to_html(content, culture, page_name)

    def _latest_revision(
        self,
        path: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[Revision]:
        for revision in self.store.get_file_history(path, self.branch, limit=1, cancel_event=cancel_event):
            return revision
        return None

    def ensure_repository_created(self) -> bool:
        """Create the repository with a home page if it does not exist.

        Returns:
            True if the repository was created
        """
        if self.store.exists():
            return False

        self.store.init_if_not_exists(self.branch)
        home_path = self._resolve(self.options.home_page_name, None)
        metadata = CommitMetadata(
            message="Initial commit",
            author=CommitSignature(
                SYSTEM_AUTHOR_NAME, SYSTEM_AUTHOR_EMAIL, datetime.now(timezone.utc)
            ),
        )
        self.store.create_commit(
            self.branch,
            [CommitOperation.add(home_path, INITIAL_HOME_CONTENT.encode("utf-8"))],
            metadata,
        )
        logger.info(f"Created wiki repository at {self.store.repo_path}")
        return True

    def get_page(
        self,
        page_name: str,
        culture: Optional[str],
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[WikiPage]:
        """Return the current snapshot of a page variant.

        Returns:
            The page at the branch tip, or None if it does not exist

        Raises:
            InvalidIdentifierError: If the page name or culture is malformed
        """
        path = self._resolve(page_name, culture)
        try:
            file = self.store.read_file_and_hash(path, self.branch, cancel_event)
        except NotFoundError:
            return None

        content = file.content.decode("utf-8", errors="replace")
        title = self.title_cache.extract_and_cache_title(page_name, culture, content)
        revision = self._latest_revision(path, cancel_event)

        return WikiPage(
            page_name=page_name,
            culture=culture,
            content=content,
            rendered_content=self._render(content, culture, page_name),
            title=title,
            content_hash=file.hash,
            last_modified_by=revision.author_name if revision else None,
            last_modified_at=revision.timestamp if revision else None,
        )

    def get_page_history(
        self,
        page_name: str,
        culture: Optional[str],
        cancel_event: Optional[threading.Event] = None,
    ) -> List[WikiHistoryItem]:
        """Return the revisions of a page variant, newest first.

        A page that never existed has an empty history.
        """
        path = self._resolve(page_name, culture)
        users: Dict[str, Optional[WikiUser]] = {}
        history = []

        for revision in self.store.get_file_history(path, self.branch, cancel_event=cancel_event):
            author_name = revision.author_name
            if self.user_lookup is not None:
                email = revision.author_email
                if email not in users:
                    users[email] = self.user_lookup(email)
                if users[email] is not None:
                    author_name = users[email].display_name

            history.append(WikiHistoryItem(
                commit_id=revision.commit_id,
                message=revision.message,
                author_name=author_name,
                timestamp=revision.timestamp,
            ))

        return history

    def get_page_at_revision(
        self,
        page_name: str,
        culture: Optional[str],
        revision_id: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[WikiPage]:
        """Return a page variant as it was at a given commit.

        Returns:
            The snapshot, or None if the page did not exist at that commit

        Raises:
            InvalidIdentifierError: If an identifier is malformed
            RevisionNotFoundError: If the commit does not exist
        """
        path = self._resolve(page_name, culture)
        validate_revision_id(revision_id)
        try:
            file = self.store.read_file_and_hash(path, revision_id, cancel_event)
        except GitPathNotFoundError:
            return None

        content = file.content.decode("utf-8", errors="replace")
        revision = self.store.get_commit(revision_id, cancel_event)

        return WikiPage(
            page_name=page_name,
            culture=culture,
            content=content,
            rendered_content=self._render(content, culture, page_name),
            title=extract_title(content, page_name),
            content_hash=file.hash,
            last_modified_by=revision.author_name,
            last_modified_at=revision.timestamp,
        )

    def page_exists(
        self,
        page_name: str,
        culture: Optional[str],
        cancel_event: Optional[threading.Event] = None,
    ) -> bool:
        path = self._resolve(page_name, culture)
        return self.store.get_path_type(path, self.branch, cancel_event) == PathType.FILE

    def get_available_cultures(
        self,
        page_name: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[str]:
        """Return the cultures a page exists in, neutral culture first."""
        validate_page_name(page_name)
        directory = get_directory_name(page_name)
        prefix = f"{directory}/" if directory else ""

        cultures: Set[str] = set()
        for entry in self.store.enumerate_tree(self.branch, directory or None, cancel_event):
            if entry.kind != PathType.FILE or not entry.path.startswith(prefix):
                continue
            file_name = entry.path[len(prefix):]
            if "/" in file_name:
                continue
            culture = localized_culture_of(file_name, page_name, self.neutral_culture)
            if culture is not None:
                cultures.add(culture)

        ordered = sorted(cultures - {self.neutral_culture})
        if self.neutral_culture in cultures:
            ordered.insert(0, self.neutral_culture)
        return ordered

    def _iter_page_paths(
        self,
        cancel_event: Optional[threading.Event] = None,
    ) -> Iterator[Tuple[str, str, Optional[str]]]:
        """Yield (path, page name, culture) for every page file at the tip."""
        for entry in self.store.enumerate_tree(self.branch, None, cancel_event):
            if entry.kind != PathType.FILE:
                continue
            parsed = parse_path(entry.path, self.neutral_culture)
            if parsed is None:
                continue
            page_name, culture = parsed
            if not is_valid_page_name(page_name):
                logger.debug(f"Skipping {entry.path}: not a valid page name")
                continue
            yield entry.path, page_name, culture

    def get_all_pages(self, cancel_event: Optional[threading.Event] = None) -> List[WikiPageInfo]:
        """List every page variant at the branch tip.

        Returns:
            Pages sorted by page name, then culture (neutral variant first)
        """
        pages: Dict[Tuple[str, str], WikiPageInfo] = {}

        for path, page_name, culture in self._iter_page_paths(cancel_event):
            key = (page_name, culture or self.neutral_culture)
            if key in pages:
                continue

            revision = self._latest_revision(path, cancel_event)
            pages[key] = WikiPageInfo(
                page_name=page_name,
                culture=culture,
                title=self.title_cache.get_page_title(page_name, culture, cancel_event),
                last_modified_at=revision.timestamp if revision else None,
                last_modified_by=revision.author_name if revision else None,
            )

        return sorted(pages.values(), key=lambda p: (p.page_name, p.culture or ""))

    def get_page_title(
        self,
        page_name: str,
        culture: Optional[str],
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[str]:
        return self.title_cache.get_page_title(page_name, culture, cancel_event)

    def save_page_with_media(
        self,
        page_name: str,
        culture: Optional[str],
        content: str,
        message: str,
        author: WikiUser,
        media_files: Optional[Dict[str, bytes]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        """Commit a page variant and its media files in one commit.

        Args:
            page_name: Logical page name
            culture: Culture of the variant, None for neutral
            content: New markdown content
            message: Commit message
            author: User the commit is attributed to
            media_files: Repository path -> bytes of media to add
            cancel_event: Optional cancellation signal

        Returns:
            Id of the new commit

        Raises:
            InvalidIdentifierError: If the page name, culture or a media path
                is malformed
            PathConflictError: If a directory occupies the page or a media path
            ConcurrentCommitError: If another commit landed concurrently
            CommitOutcomeUnknownError: If cancelled while publishing
        """
        media_files = media_files or {}
        path = self._resolve(page_name, culture)
        for media_path in media_files:
            validate_media_path(media_path)

        page_type = self.store.get_path_type(path, self.branch, cancel_event)
        if page_type == PathType.DIRECTORY:
            raise PathConflictError(path)

        operations = [
            CommitOperation.update(path, content.encode("utf-8"))
            if page_type == PathType.FILE
            else CommitOperation.add(path, content.encode("utf-8"))
        ]
        for media_path, data in media_files.items():
            media_type = self.store.get_path_type(media_path, self.branch, cancel_event)
            if media_type == PathType.DIRECTORY:
                raise PathConflictError(media_path)
            if media_type == PathType.FILE:
                operations.append(CommitOperation.update(media_path, data))
            else:
                operations.append(CommitOperation.add(media_path, data))

        metadata = CommitMetadata(
            message=message,
            author=CommitSignature(author.git_name, author.git_email, datetime.now(timezone.utc)),
        )
        commit_id = self.store.create_commit(self.branch, operations, metadata, cancel_event)

        self.title_cache.extract_and_cache_title(page_name, culture, content)
        variant = "neutral" if is_neutral(culture, self.neutral_culture) else culture
        logger.info(
            f"Saved page {page_name} ({variant}) with {len(media_files)} media file(s)"
        )
        return commit_id

    def get_media_file(
        self,
        path: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[bytes]:
        """Return the bytes of a media file at the branch tip, None if absent."""
        validate_media_path(path)
        try:
            return self.store.read_file_and_hash(path, self.branch, cancel_event).content
        except NotFoundError:
            return None
