"""Page templates.

Templates are ordinary pages named ``_template``, ``<dir>/_template`` or
stored below ``_templates/``. Their front matter describes how to create a
page from them:

    ---
    title: Meeting notes
    description: Agenda and decisions of a meeting
    location: meetings
    pattern: meeting-{date}
    ---
    # Meeting of {date}
"""

import logging
import re
import threading
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from src.models.wiki_user import WikiUserWithPermissions
from src.page_store.errors import FrontMatterError, InvalidIdentifierError
from src.page_store.front_matter import parse_front_matter
from src.page_store.input_validator import validate_page_name
from src.page_store.models import WikiTemplate

if TYPE_CHECKING:
    from src.access_control.permission_helper import PagePermissionHelper
    from src.page_store.page_store import PageStore

logger = logging.getLogger(__name__)

TEMPLATES_DIRECTORY = "_templates"
TEMPLATE_PAGE_NAME = "_template"


def is_template_page_name(page_name: str) -> bool:
    lowered = page_name.lower()
    return (
        lowered.startswith(f"{TEMPLATES_DIRECTORY}/")
        or lowered.endswith(f"/{TEMPLATE_PAGE_NAME}")
        or lowered == TEMPLATE_PAGE_NAME
    )


def resolve_placeholders(text: str, now: Optional[datetime] = None) -> str:
    """Replace date placeholders in a page name pattern or template body.

    Supported placeholders (case-insensitive): ``{date}`` (2024-05-17),
    ``{datetime}`` (2024-05-17-093000), ``{year}``, ``{month}``, ``{day}``.
    """
    if not text or not text.strip():
        return ""

    now = now or datetime.now(timezone.utc)
    replacements = {
        "date": now.strftime("%Y-%m-%d"),
        "datetime": now.strftime("%Y-%m-%d-%H%M%S"),
        "year": str(now.year),
        "month": f"{now.month:02d}",
        "day": f"{now.day:02d}",
    }
    return re.sub(
        r"\{(date|datetime|year|month|day)\}",
        lambda m: replacements[m.group(1).lower()],
        text,
        flags=re.IGNORECASE,
    )


def _front_matter_value(front_matter: Dict[str, Any], key: str) -> Optional[str]:
    value = front_matter.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class TemplateService:
    """Lists and loads the templates a user may see."""

    def __init__(self, page_store: "PageStore", permissions: "PagePermissionHelper"):
        self.page_store = page_store
        self.permissions = permissions

    def get_all_templates(
        self,
        user: Optional[WikiUserWithPermissions],
        cancel_event: Optional[threading.Event] = None,
    ) -> List[WikiTemplate]:
        """Return the readable templates sorted by display name.

        Templates whose front matter cannot be parsed are skipped.
        """
        templates = []
        for page in self.permissions.get_all_accessible_pages(user, cancel_event):
            if page.culture is not None or not is_template_page_name(page.page_name):
                continue
            try:
                template = self._load_template(page.page_name, cancel_event)
            except FrontMatterError as e:
                logger.warning(f"Skipping template {page.page_name}: {e}")
                continue
            if template is not None:
                templates.append(template)

        return sorted(templates, key=lambda t: t.display_name)

    def get_template(
        self,
        user: Optional[WikiUserWithPermissions],
        template_id: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[WikiTemplate]:
        """Return one template, or None if it is missing or not readable.

        Raises:
            InvalidIdentifierError: If ``template_id`` is not a template page name
        """
        if not template_id:
            return None

        validate_page_name(template_id)
        if not is_template_page_name(template_id):
            raise InvalidIdentifierError(
                "template_id", template_id, "not a template page name"
            )

        # An unreadable template is reported like a missing one
        if not self.permissions.can_view(user, template_id, cancel_event):
            return None

        return self._load_template(template_id, cancel_event)

    def _load_template(
        self,
        page_name: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[WikiTemplate]:
        page = self.page_store.get_page(page_name, None, cancel_event)
        if page is None:
            return None

        front_matter, body = parse_front_matter(page.content, page_name)
        display_name = _front_matter_value(front_matter, "title") or page.title or page_name

        return WikiTemplate(
            template_name=page_name,
            content=body,
            display_name=display_name,
            description=_front_matter_value(front_matter, "description"),
            default_location=_front_matter_value(front_matter, "location"),
            name_pattern=_front_matter_value(front_matter, "pattern"),
        )
