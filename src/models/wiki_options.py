"""Wiki configuration data model."""

import os
from dataclasses import dataclass, field
from typing import List

DEFAULT_MEDIA_EXTENSIONS = [
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp",
    ".mp4", ".webm", ".ogg", ".pdf",
]

TEMP_MEDIA_ID_TOKEN = "{id}"


@dataclass
class WikiOptions:
    """Settings shared by every wiki-store component.

    Attributes:
        repository_root: Directory holding the wiki repository and the
            temporary media staging area
        wiki_repository_name: Name of the bare repository under repository_root
        branch_name: Branch that wiki content is committed to
        neutral_culture: Culture whose pages are stored without a suffix
        home_page_name: Page created with the repository
        use_page_level_permissions: Whether .wikipermissions rules apply
        allow_anonymous_viewing: Whether users without an account can read
        allowed_media_extensions: Extensions (with leading dot) accepted for media
        temp_media_url_template: URL of a staged media file, with one "{id}" token
        rules_cache_ttl_seconds: How long parsed access rules are reused
        temp_media_cleanup_interval_seconds: Delay between staging sweeps
        temp_media_max_age_seconds: Age after which staged media is deleted
    """
    repository_root: str
    wiki_repository_name: str = "wiki"
    branch_name: str = "main"
    neutral_culture: str = "en"
    home_page_name: str = "Home"
    use_page_level_permissions: bool = True
    allow_anonymous_viewing: bool = False
    allowed_media_extensions: List[str] = field(
        default_factory=lambda: list(DEFAULT_MEDIA_EXTENSIONS)
    )
    temp_media_url_template: str = "/wiki/temp-media/{id}"
    rules_cache_ttl_seconds: float = 900
    temp_media_cleanup_interval_seconds: float = 3600
    temp_media_max_age_seconds: float = 86400

    @property
    def repository_path(self) -> str:
        """Path of the bare wiki repository."""
        return os.path.join(self.repository_root, self.wiki_repository_name)

    @property
    def temp_media_root(self) -> str:
        """Directory holding per-user staged media."""
        return os.path.join(self.repository_root, ".temp-media")

    def is_allowed_media_extension(self, extension: str) -> bool:
        return extension.lower() in {ext.lower() for ext in self.allowed_media_extensions}
