"""Root pytest configuration for all tests.

This conftest applies to all test types (unit, integration) and provides
the wiki settings, users and components most tests start from.
"""

import pytest

from src.models.wiki_options import WikiOptions
from src.models.wiki_user import WikiUser, git_email_from_external_identifier


@pytest.fixture
def wiki_options(tmp_path) -> WikiOptions:
    """WikiOptions pointing at an empty directory under tmp_path."""
    return WikiOptions(repository_root=str(tmp_path / "wiki-data"))


@pytest.fixture
def alice() -> WikiUser:
    return WikiUser(
        git_name="Alice",
        git_email=git_email_from_external_identifier("alice"),
        display_name="Alice Martin",
    )


@pytest.fixture
def bob() -> WikiUser:
    return WikiUser(
        git_name="Bob",
        git_email=git_email_from_external_identifier("bob"),
        display_name="Bob Durand",
    )
