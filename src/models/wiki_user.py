"""Wiki user data models.

Users are resolved by the hosting application and handed to the wiki store;
the store never inspects identity providers itself. Git identities are kept
private: the email written into commits is derived from a stable external
identifier with SHA-256 and is never shown to readers.
"""

import hashlib
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from src.git_backend.git_repository import sanitize_git_name_or_email

GIT_EMAIL_DOMAIN = "wikistore.local"


@dataclass(frozen=True)
class WikiUser:
    """Identity of someone writing to the wiki.

    Attributes:
        git_name: Name written into commits
        git_email: Private, stable email written into commits
        display_name: Name shown in page history
    """
    git_name: str
    git_email: str
    display_name: str


@dataclass(frozen=True)
class WikiUserWithPermissions:
    """A user together with the wiki-wide rights granted by the host.

    Attributes:
        user: The wiki identity
        groups: Groups matched against page access rules
        can_view: Whether the user may read the wiki at all
        can_edit: Whether the user may edit the wiki at all
        can_admin: Whether the user may edit access rules
    """
    user: WikiUser
    groups: List[str] = field(default_factory=list)
    can_view: bool = True
    can_edit: bool = False
    can_admin: bool = False


# Maps a host principal to a wiki user, None for anonymous callers
UserResolver = Callable[[object], Optional[WikiUserWithPermissions]]

# Maps a git email found in history to a user, None when unknown
UserLookup = Callable[[str], Optional[WikiUser]]


def git_email_from_external_identifier(identifier: str) -> str:
    """Derive a stable git email from an external account identifier.

    Example:
        >>> git_email_from_external_identifier("alice")
        '2bd806c97f0e00af1a1fc3328fa763a9269723c8db8fac4f93af71db186d6e90@wikistore.local'
    """
    digest = hashlib.sha256(identifier.encode("utf-8")).hexdigest()
    return f"{digest}@{GIT_EMAIL_DOMAIN}"


__all__ = [
    "WikiUser",
    "WikiUserWithPermissions",
    "UserResolver",
    "UserLookup",
    "git_email_from_external_identifier",
    "sanitize_git_name_or_email",
]
