"""Combines wiki-wide user rights with page-level access rules."""

import threading
from typing import TYPE_CHECKING, List, Optional

from src.models.wiki_options import WikiOptions
from src.models.wiki_user import WikiUserWithPermissions

if TYPE_CHECKING:
    from src.access_control.engine import AccessControlEngine
    from src.page_store.models import WikiPageInfo
    from src.page_store.page_store import PageStore


class PagePermissionHelper:
    """Answers whether a user may view or edit a given page.

    A user must first hold the wiki-wide right (``can_view`` unless anonymous
    viewing is allowed, ``can_edit`` for edits). Page-level rules then apply
    when enabled in the options. ``None`` stands for an anonymous caller.
    """

    def __init__(
        self,
        page_store: "PageStore",
        engine: "AccessControlEngine",
        options: WikiOptions,
    ):
        self.page_store = page_store
        self.engine = engine
        self.options = options

    def can_view(
        self,
        user: Optional[WikiUserWithPermissions],
        page_name: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> bool:
        if not self.options.allow_anonymous_viewing and (user is None or not user.can_view):
            return False

        if self.options.use_page_level_permissions:
            groups = user.groups if user is not None else []
            access = self.engine.check_page_access(page_name, groups, cancel_event)
            if not access.can_read:
                return False

        return True

    def can_edit(
        self,
        user: Optional[WikiUserWithPermissions],
        page_name: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> bool:
        if user is None or not user.can_edit:
            return False

        if self.options.use_page_level_permissions:
            access = self.engine.check_page_access(page_name, user.groups, cancel_event)
            if not access.can_edit:
                return False

        return True

    def get_all_accessible_pages(
        self,
        user: Optional[WikiUserWithPermissions],
        cancel_event: Optional[threading.Event] = None,
    ) -> List["WikiPageInfo"]:
        """List every page the user may read under page-level rules."""
        pages = self.page_store.get_all_pages(cancel_event)
        if not self.options.use_page_level_permissions:
            return pages

        groups = user.groups if user is not None else []
        return [
            page for page in pages
            if self.engine.check_page_access(page.page_name, groups, cancel_event).can_read
        ]
