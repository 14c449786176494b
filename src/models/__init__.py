"""Data models for wiki configuration and users."""

from src.models.wiki_options import WikiOptions
from src.models.wiki_user import (
    UserLookup,
    UserResolver,
    WikiUser,
    WikiUserWithPermissions,
    git_email_from_external_identifier,
)

__all__ = [
    'WikiOptions',
    'WikiUser',
    'WikiUserWithPermissions',
    'UserLookup',
    'UserResolver',
    'git_email_from_external_identifier',
]
