"""Data models for page-level access control."""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from src.access_control.pattern import GlobPattern


@dataclass(frozen=True)
class AccessRule:
    """One line of the rule file.

    An empty group tuple means every user is granted that permission.

    Attributes:
        pattern: Wildcard pattern matched against page names
        read_groups: Groups allowed to read matching pages
        write_groups: Groups allowed to edit matching pages
        order: Position of the rule; lower orders are checked first
    """
    pattern: str
    read_groups: Tuple[str, ...] = ()
    write_groups: Tuple[str, ...] = ()
    order: int = 0
    compiled: GlobPattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "read_groups", tuple(self.read_groups))
        object.__setattr__(self, "write_groups", tuple(self.write_groups))
        object.__setattr__(self, "compiled", GlobPattern(self.pattern))

    def matches(self, page_name: str) -> bool:
        return self.compiled.matches(page_name)


@dataclass(frozen=True)
class PageAccessPermissions:
    """Verdict of an access check.

    Attributes:
        can_read: Whether the groups may read the page
        can_edit: Whether the groups may edit the page
        matched_pattern: Pattern of the deciding rule, None if no rule matched
    """
    can_read: bool
    can_edit: bool
    matched_pattern: Optional[str] = None


ALLOW_ALL = PageAccessPermissions(can_read=True, can_edit=True)
