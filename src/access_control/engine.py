"""Page-level access control.

This module provides the AccessControlEngine class, which loads the ordered
rule list from the ``.wikipermissions`` file at the branch tip, caches it
for a bounded time and answers whether a set of groups may read or edit a
page. The first rule (by order) whose pattern matches the page decides; a
page matched by no rule is readable and editable by everyone.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from src.access_control.models import ALLOW_ALL, AccessRule, PageAccessPermissions
from src.access_control.rules_cache import TimedCache
from src.access_control.serializer import parse_rules, serialize_rules
from src.git_backend.errors import CommitOutcomeUnknownError, NotFoundError
from src.git_backend.git_repository import GitBackingStore
from src.git_backend.models import (
    CommitMetadata,
    CommitOperation,
    CommitSignature,
    PathType,
)
from src.models.wiki_options import WikiOptions
from src.models.wiki_user import WikiUser
from src.page_store.errors import PathConflictError

logger = logging.getLogger(__name__)

RULES_FILE_NAME = ".wikipermissions"

_RULES_KEY = "rules"


def check_access(
    rules: Sequence[AccessRule],
    page_name: str,
    groups: Iterable[str],
) -> PageAccessPermissions:
    """Evaluate rules for a page and a set of groups.

    Args:
        rules: Rules in any order; they are checked by ascending ``order``
        page_name: Page being accessed
        groups: Groups of the caller (compared case-insensitively)

    Returns:
        The permissions granted by the first matching rule, or full access
        when no rule matches

    Example:
        >>> rules = [AccessRule("admin/**", ("admin",), ("admin",), 0),
        ...          AccessRule("*", (), ("users",), 1)]
        >>> check_access(rules, "admin/settings", ["users"]).can_read
        False
        >>> check_access(rules, "docs", ["users"]).can_edit
        True
    """
    caller_groups = {group.casefold() for group in groups}

    for rule in sorted(rules, key=lambda r: r.order):
        if not rule.matches(page_name):
            continue
        can_read = not rule.read_groups or any(
            group.casefold() in caller_groups for group in rule.read_groups
        )
        can_edit = not rule.write_groups or any(
            group.casefold() in caller_groups for group in rule.write_groups
        )
        return PageAccessPermissions(can_read, can_edit, rule.pattern)

    return ALLOW_ALL


class AccessControlEngine:
    """Loads, caches, evaluates and saves page access rules.

    The parsed rule list is owned by this engine's cache and lives at most
    ``options.rules_cache_ttl_seconds``. Saving rules through the engine
    invalidates the cache as soon as the commit succeeds.

    Attributes:
        store: Backing store holding the rule file
        options: Wiki settings
    """

    def __init__(
        self,
        store: GitBackingStore,
        options: WikiOptions,
        cache: Optional[TimedCache] = None,
    ):
        self.store = store
        self.options = options
        self._cache = cache or TimedCache(options.rules_cache_ttl_seconds)

    def get_rules(self, cancel_event: Optional[threading.Event] = None) -> List[AccessRule]:
        """Return the current rule list, from cache when fresh.

        A missing rule file is an empty rule list.

        Raises:
            RuleFormatError: If the committed rule file is malformed
        """
        if not self.options.use_page_level_permissions:
            return []

        cached = self._cache.get(_RULES_KEY)
        if cached is not None:
            logger.debug("Access rules cache hit")
            return cached

        logger.debug("Access rules cache miss, reading rule file")
        try:
            file = self.store.read_file_and_hash(
                RULES_FILE_NAME, self.options.branch_name, cancel_event
            )
        except NotFoundError:
            rules: List[AccessRule] = []
        else:
            rules = parse_rules(file.content.decode("utf-8"))

        self._cache.set(_RULES_KEY, rules)
        return rules

    def check_page_access(
        self,
        page_name: str,
        groups: Iterable[str],
        cancel_event: Optional[threading.Event] = None,
    ) -> PageAccessPermissions:
        """Return what ``groups`` may do on ``page_name``.

        Everything is allowed when page-level permissions are disabled; the
        rule file is not read in that case.
        """
        if not self.options.use_page_level_permissions:
            return ALLOW_ALL
        return check_access(self.get_rules(cancel_event), page_name, groups)

    def save_rules(
        self,
        rules: Sequence[AccessRule],
        message: str,
        author: WikiUser,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        """Commit a new rule file and drop the cached rules.

        Returns:
            Id of the new commit

        Raises:
            PathConflictError: If a directory is named like the rule file
        """
        content = serialize_rules(rules).encode("utf-8")
        branch = self.options.branch_name

        path_type = self.store.get_path_type(RULES_FILE_NAME, branch, cancel_event)
        if path_type == PathType.DIRECTORY:
            raise PathConflictError(RULES_FILE_NAME)
        operation = (
            CommitOperation.update(RULES_FILE_NAME, content)
            if path_type == PathType.FILE
            else CommitOperation.add(RULES_FILE_NAME, content)
        )
        metadata = CommitMetadata(
            message=message,
            author=CommitSignature(author.git_name, author.git_email, datetime.now(timezone.utc)),
        )

        try:
            commit_id = self.store.create_commit(branch, [operation], metadata, cancel_event)
        except CommitOutcomeUnknownError:
            # The new rules may be live already
            self.clear_cache()
            raise

        self.clear_cache()
        logger.info(f"Saved {len(rules)} access rule(s) in commit {commit_id[:8]}")
        return commit_id

    def clear_cache(self) -> None:
        self._cache.invalidate()
