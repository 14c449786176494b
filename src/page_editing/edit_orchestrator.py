"""Saving pages together with the media staged while editing them.

While a page is edited, uploaded media is served from a temporary URL such
as ``/wiki/temp-media/<id>``. On save, every temporary URL found in the
content whose file is still staged for the author is replaced by the
permanent relative path ``medias/<id><ext>``, and the page and the media
files are committed together so no revision shows the page with broken
media links.
"""

import logging
import re
import threading
from dataclasses import replace
from typing import Dict, List, Optional, Pattern, Tuple

from src.media_staging.staging import TemporaryMediaStaging, owner_key_for
from src.models.wiki_options import TEMP_MEDIA_ID_TOKEN
from src.models.wiki_user import WikiUser
from src.page_editing.models import PromotionResult
from src.page_store.page_store import PageStore
from src.page_store.path_resolver import get_directory_name

logger = logging.getLogger(__name__)

DEFAULT_TEMP_MEDIA_URL_TEMPLATE = "/wiki/temp-media/{id}"

MEDIA_DIRECTORY = "medias"


def compile_temp_media_pattern(url_template: str) -> Pattern[str]:
    """Build the regex finding temporary media URLs of ``url_template``.

    The template must contain the ``{id}`` token exactly once; the rest is
    matched literally and the id is captured as group 1.

    Raises:
        ValueError: If the template does not contain exactly one ``{id}``
    """
    if url_template.count(TEMP_MEDIA_ID_TOKEN) != 1:
        raise ValueError(
            f"Temporary media URL template must contain {TEMP_MEDIA_ID_TOKEN} "
            f"exactly once: {url_template!r}"
        )
    before, after = url_template.split(TEMP_MEDIA_ID_TOKEN)
    return re.compile(re.escape(before) + r"([a-f0-9]{32})(?![a-f0-9])" + re.escape(after))


class EditOrchestrator:
    """Promotes staged media into the repository as part of a page save.

    The orchestrator writes at the branch tip without checking for
    concurrent edits; see ``page_editing.concurrency`` for the hash check
    callers run first.
    """

    def __init__(
        self,
        page_store: PageStore,
        staging: TemporaryMediaStaging,
        url_template: str = DEFAULT_TEMP_MEDIA_URL_TEMPLATE,
    ):
        self.page_store = page_store
        self.staging = staging
        self.url_template = url_template
        self._pattern = compile_temp_media_pattern(url_template)

    def temp_media_url(self, temporary_id: str) -> str:
        """Return the temporary URL under which a staged file is served."""
        return self.url_template.replace(TEMP_MEDIA_ID_TOKEN, temporary_id)

    def find_temp_media_ids(self, content: str) -> List[str]:
        """Return the distinct temporary ids referenced by ``content``, in order."""
        return list(dict.fromkeys(m.group(1) for m in self._pattern.finditer(content)))

    def promote_media(
        self,
        page_name: str,
        content: str,
        author: WikiUser,
        cancel_event: Optional[threading.Event] = None,
    ) -> Tuple[PromotionResult, Dict[str, bytes]]:
        """Rewrite temporary URLs and collect the media to commit.

        References to files no longer staged for the author are left as
        they are.

        Returns:
            The promotion result (without commit id) and the media files
            keyed by repository path
        """
        owner_key = owner_key_for(author)
        page_directory = get_directory_name(page_name)
        media_files: Dict[str, bytes] = {}
        promoted_ids: List[str] = []

        for temporary_id in self.find_temp_media_ids(content):
            record = self.staging.get_record(owner_key, temporary_id)
            if record is None:
                logger.debug(f"Temporary media {temporary_id} is not staged, leaving link")
                continue
            data = self.staging.fetch(owner_key, temporary_id, cancel_event)
            if data is None:
                continue

            relative_path = f"{MEDIA_DIRECTORY}/{temporary_id}{record.extension}"
            media_path = f"{page_directory}/{relative_path}" if page_directory else relative_path
            media_files[media_path] = data
            promoted_ids.append(temporary_id)
            content = content.replace(self.temp_media_url(temporary_id), relative_path)

        result = PromotionResult(
            content=content,
            media_paths=list(media_files),
            promoted_ids=promoted_ids,
        )
        return result, media_files

    def save_page(
        self,
        page_name: str,
        culture: Optional[str],
        content: str,
        message: str,
        author: WikiUser,
        cancel_event: Optional[threading.Event] = None,
    ) -> PromotionResult:
        """Save a page and the staged media it references in one commit.

        Staged files are not deleted: a retried save promotes them again.
        Call ``TemporaryMediaStaging.cleanup`` with ``promoted_ids`` once the
        edit session is over.

        Returns:
            The committed content, media paths, promoted ids and commit id
        """
        result, media_files = self.promote_media(page_name, content, author, cancel_event)
        commit_id = self.page_store.save_page_with_media(
            page_name,
            culture,
            result.content,
            message,
            author,
            media_files,
            cancel_event,
        )
        if result.promoted_ids:
            logger.info(
                f"Promoted {len(result.promoted_ids)} staged media file(s) into {page_name}"
            )
        return replace(result, commit_id=commit_id)
