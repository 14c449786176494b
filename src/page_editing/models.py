"""Data models returned by page edits."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class PromotionResult:
    """Outcome of saving a page together with its staged media.

    Attributes:
        content: Page content as committed, temporary URLs rewritten
        media_paths: Repository paths of the media added by the commit
        promoted_ids: Temporary ids whose files were promoted; the caller
            may clean them up from the staging area once the save succeeded
        commit_id: Id of the commit, None if nothing was committed
    """
    content: str
    media_paths: List[str] = field(default_factory=list)
    promoted_ids: List[str] = field(default_factory=list)
    commit_id: Optional[str] = None


@dataclass(frozen=True)
class StaleWrite:
    """A page changed since the editor loaded it.

    Carries the current version so it can be shown to the editor, who then
    resubmits with ``current_hash``.
    """
    page_name: str
    culture: Optional[str]
    expected_hash: str
    current_hash: str
    current_content: str
    last_modified_by: Optional[str] = None
    last_modified_at: Optional[datetime] = None

    def describe(self) -> str:
        who = self.last_modified_by or "another user"
        return (
            f"This page has been modified by {who} since you started editing. "
            "Please review the current version before saving."
        )


@dataclass(frozen=True)
class SaveOutcome:
    """Result of a save guarded by a content hash: exactly one field is set."""
    promotion: Optional[PromotionResult] = None
    stale_write: Optional[StaleWrite] = None

    @property
    def saved(self) -> bool:
        return self.promotion is not None
