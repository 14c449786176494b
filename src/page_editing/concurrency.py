"""Detection of concurrent edits through content hashes.

When an editor opens a page it receives the page's ``content_hash``. Before
saving, the page is read again: a different hash means someone else saved
in between, and the save is refused with the current version so the editor
can merge by hand. This is a compare-and-swap done by the caller; the page
store itself always writes at the branch tip.
"""

import logging
import threading
from typing import Optional

from src.models.wiki_user import WikiUser
from src.page_editing.edit_orchestrator import EditOrchestrator
from src.page_editing.models import SaveOutcome, StaleWrite
from src.page_store.page_store import PageStore

logger = logging.getLogger(__name__)


def detect_stale_write(
    page_store: PageStore,
    page_name: str,
    culture: Optional[str],
    original_hash: Optional[str],
    cancel_event: Optional[threading.Event] = None,
) -> Optional[StaleWrite]:
    """Compare the hash an editor started from with the current one.

    Args:
        page_store: Store to read the current page from
        page_name: Page being saved
        culture: Culture of the variant
        original_hash: ``content_hash`` the editor loaded, None for a new page
        cancel_event: Optional cancellation signal

    Returns:
        A StaleWrite describing the current version if the page changed,
        None if the save may proceed (new page, unchanged page, or page no
        longer present)
    """
    if not original_hash:
        return None

    current = page_store.get_page(page_name, culture, cancel_event)
    if current is None or current.content_hash == original_hash:
        return None

    logger.info(
        f"Page {page_name} changed since editing started "
        f"({original_hash[:8]} -> {current.content_hash[:8]})"
    )
    return StaleWrite(
        page_name=page_name,
        culture=culture,
        expected_hash=original_hash,
        current_hash=current.content_hash,
        current_content=current.content,
        last_modified_by=current.last_modified_by,
        last_modified_at=current.last_modified_at,
    )


def save_if_unchanged(
    orchestrator: EditOrchestrator,
    page_name: str,
    culture: Optional[str],
    content: str,
    message: str,
    author: WikiUser,
    original_hash: Optional[str],
    cancel_event: Optional[threading.Event] = None,
) -> SaveOutcome:
    """Save a page unless it changed since ``original_hash`` was read.

    Returns:
        SaveOutcome with ``promotion`` set when saved, ``stale_write`` set
        when the save was refused
    """
    stale = detect_stale_write(
        orchestrator.page_store, page_name, culture, original_hash, cancel_event
    )
    if stale is not None:
        return SaveOutcome(stale_write=stale)

    promotion = orchestrator.save_page(page_name, culture, content, message, author, cancel_event)
    return SaveOutcome(promotion=promotion)
