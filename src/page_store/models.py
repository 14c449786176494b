"""Data models returned by the page store."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class WikiPage:
    """Snapshot of one page variant at one revision.

    Snapshots are derived from the repository on every read and are never
    stored themselves.

    Attributes:
        page_name: Logical page name
        culture: Culture of the variant, None for the neutral variant
        content: Raw markdown as stored
        rendered_content: HTML from the configured renderer, None without one
        title: Display title extracted from the content
        content_hash: Blob id of the stored content, the token compared
            before saving to detect concurrent edits
        last_modified_by: Author name of the revision
        last_modified_at: Author date of the revision
    """
    page_name: str
    culture: Optional[str]
    content: str
    rendered_content: Optional[str]
    title: str
    content_hash: str
    last_modified_by: Optional[str] = None
    last_modified_at: Optional[datetime] = None


@dataclass(frozen=True)
class WikiHistoryItem:
    """One revision in the history of a page variant."""
    commit_id: str
    message: str
    author_name: str
    timestamp: datetime


@dataclass(frozen=True)
class WikiPageInfo:
    """Summary of a page variant used in page listings."""
    page_name: str
    culture: Optional[str]
    title: Optional[str]
    last_modified_at: Optional[datetime] = None
    last_modified_by: Optional[str] = None


@dataclass(frozen=True)
class WikiTemplate:
    """A page that serves as a starting point for new pages.

    Attributes:
        template_name: Page name of the template (its id)
        content: Template body without front matter
        display_name: Front matter ``title``, else the page title
        description: Front matter ``description``
        default_location: Front matter ``location``, directory for new pages
        name_pattern: Front matter ``pattern``, may contain date placeholders
    """
    template_name: str
    content: str
    display_name: str
    description: Optional[str] = None
    default_location: Optional[str] = None
    name_pattern: Optional[str] = None
