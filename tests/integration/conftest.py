"""Pytest configuration and fixtures for integration tests.

Integration tests run real git commands against bare repositories created
under pytest's tmp_path. Every test gets its own repository.
"""

import shutil

import pytest

from src.access_control.engine import AccessControlEngine
from src.git_backend.git_repository import GitBackingStore
from src.media_staging.staging import TemporaryMediaStaging
from src.models.wiki_options import WikiOptions
from src.page_editing.edit_orchestrator import EditOrchestrator
from src.page_store.page_store import PageStore


def pytest_collection_modifyitems(config, items):
    """Mark every test in this directory as an integration test."""
    for item in items:
        if "tests/integration" in str(item.fspath).replace("\\", "/"):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def require_git():
    if shutil.which("git") is None:
        pytest.skip("git executable not available")


@pytest.fixture
def backing_store(wiki_options: WikiOptions) -> GitBackingStore:
    store = GitBackingStore(wiki_options.repository_path)
    store.init_if_not_exists(wiki_options.branch_name)
    return store


@pytest.fixture
def page_store(wiki_options: WikiOptions) -> PageStore:
    """PageStore on a freshly created repository holding only the home page."""
    pages = PageStore(wiki_options)
    pages.ensure_repository_created()
    return pages


@pytest.fixture
def staging(wiki_options: WikiOptions) -> TemporaryMediaStaging:
    return TemporaryMediaStaging.from_options(wiki_options)


@pytest.fixture
def orchestrator(page_store: PageStore, staging: TemporaryMediaStaging) -> EditOrchestrator:
    return EditOrchestrator(page_store, staging)


@pytest.fixture
def access_engine(wiki_options: WikiOptions, page_store: PageStore) -> AccessControlEngine:
    return AccessControlEngine(page_store.store, wiki_options)
