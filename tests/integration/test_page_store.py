"""Integration tests for PageStore on a real repository."""

from datetime import datetime, timezone

import pytest

from src.git_backend.errors import RevisionNotFoundError
from src.git_backend.models import CommitMetadata, CommitOperation, CommitSignature
from src.page_store.errors import InvalidIdentifierError, PathConflictError
from src.page_store.page_store import (
    INITIAL_HOME_CONTENT,
    SYSTEM_AUTHOR_EMAIL,
    SYSTEM_AUTHOR_NAME,
    PageStore,
)
from tests.fixtures.sample_pages import FRENCH_PAGE, PAGE_WITH_FRONT_MATTER, PAGE_WITH_HEADING
from tests.helpers.git_test_utils import commit_author, commit_count, read_blob


class TestRepositoryCreation:
    """Test cases for ensure_repository_created."""

    def test_creates_home_page(self, wiki_options):
        pages = PageStore(wiki_options)

        assert pages.ensure_repository_created() is True

        home = pages.get_page("Home", None)
        assert home.content == INITIAL_HOME_CONTENT
        assert home.title == "Welcome to the Wiki!"
        assert home.last_modified_by == SYSTEM_AUTHOR_NAME
        repo = wiki_options.repository_path
        assert commit_count(repo) == 1
        assert commit_author(repo, "main") == f"{SYSTEM_AUTHOR_NAME} <{SYSTEM_AUTHOR_EMAIL}>"

    def test_existing_repository_is_kept(self, page_store, alice, wiki_options):
        page_store.save_page_with_media("guide", None, PAGE_WITH_HEADING, "Create page guide", alice)

        again = PageStore(wiki_options)

        assert again.ensure_repository_created() is False
        assert commit_count(wiki_options.repository_path) == 2


class TestReadWrite:
    """Test cases for saving and reading page variants."""

    def test_save_and_get(self, page_store, alice):
        commit_id = page_store.save_page_with_media(
            "docs/setup", None, PAGE_WITH_HEADING, "Create page docs/setup", alice
        )

        page = page_store.get_page("docs/setup", None)

        assert page.content == PAGE_WITH_HEADING
        assert page.title == "Getting started"
        assert page.last_modified_by == "Alice"
        assert page.last_modified_at is not None
        assert read_blob(page_store.store.repo_path, commit_id, "docs/setup.md") == PAGE_WITH_HEADING.encode()

    def test_culture_variants_are_separate_files(self, page_store, alice):
        page_store.save_page_with_media("guide", None, PAGE_WITH_HEADING, "en", alice)
        page_store.save_page_with_media("guide", "fr", FRENCH_PAGE, "fr", alice)

        assert page_store.get_page("guide", "fr").title == "Premiers pas"
        assert page_store.get_page("guide", None).title == "Getting started"
        # The neutral culture addresses the unsuffixed file
        assert page_store.get_page("guide", "en").content == PAGE_WITH_HEADING
        assert page_store.page_exists("guide", "fr")
        assert not page_store.page_exists("guide", "de")

    def test_missing_page_is_none(self, page_store):
        assert page_store.get_page("nothing", None) is None
        assert page_store.get_page("nothing", "fr") is None

    def test_invalid_identifiers_raise_before_io(self, page_store, alice):
        with pytest.raises(InvalidIdentifierError):
            page_store.get_page("../etc/passwd", None)
        with pytest.raises(InvalidIdentifierError):
            page_store.get_page("guide", "french")
        with pytest.raises(InvalidIdentifierError):
            page_store.save_page_with_media(
                "guide", None, "x", "m", alice, {"../outside.png": b"x"}
            )

    def test_content_hash_tracks_content(self, page_store, alice):
        page_store.save_page_with_media("guide", None, "v1", "v1", alice)
        first = page_store.get_page("guide", None).content_hash
        page_store.save_page_with_media("guide", None, "v1", "same", alice)
        same = page_store.get_page("guide", None).content_hash
        page_store.save_page_with_media("guide", None, "v2", "v2", alice)

        assert same == first
        assert page_store.get_page("guide", None).content_hash != first

    def test_directory_in_the_way(self, page_store, alice):
        page_store.store.create_commit("main", [
            CommitOperation.add("notes.md/readme.md", b"x"),
        ], CommitMetadata("odd", CommitSignature("x", "x@x", datetime.now(timezone.utc))))

        with pytest.raises(PathConflictError):
            page_store.save_page_with_media("notes", None, "# Notes", "Create page notes", alice)

    def test_media_file(self, page_store, alice):
        page_store.save_page_with_media(
            "docs/setup", None, "![](medias/a.png)", "m", alice, {"docs/medias/a.png": b"PNG"}
        )

        assert page_store.get_media_file("docs/medias/a.png") == b"PNG"
        assert page_store.get_media_file("docs/medias/b.png") is None


class TestHistory:
    """Test cases for page history and historical snapshots."""

    def test_history_newest_first(self, page_store, alice, bob):
        page_store.save_page_with_media("guide", None, "v1", "Create page guide", alice)
        page_store.save_page_with_media("other", None, "x", "Create page other", alice)
        page_store.save_page_with_media("guide", None, "v2", "Update page guide", bob)

        history = page_store.get_page_history("guide", None)

        assert [h.message for h in history] == ["Update page guide", "Create page guide"]
        assert [h.author_name for h in history] == ["Bob", "Alice"]

    def test_history_of_unknown_page_is_empty(self, page_store):
        assert page_store.get_page_history("nothing", None) == []

    def test_history_uses_user_lookup(self, wiki_options, alice, bob):
        users = {alice.git_email: alice}
        pages = PageStore(wiki_options, user_lookup=users.get)
        pages.ensure_repository_created()
        pages.save_page_with_media("guide", None, "v1", "v1", alice)
        pages.save_page_with_media("guide", None, "v2", "v2", bob)

        history = pages.get_page_history("guide", None)

        # Unknown authors keep their git name
        assert [h.author_name for h in history] == ["Bob", "Alice Martin"]

    def test_page_at_revision(self, page_store, alice, bob):
        old = page_store.save_page_with_media("guide", None, "# Old", "v1", alice)
        page_store.save_page_with_media("guide", None, "# New", "v2", bob)

        page = page_store.get_page_at_revision("guide", None, old)

        assert page.content == "# Old"
        assert page.title == "Old"
        assert page.last_modified_by == "Alice"

    def test_page_absent_at_revision(self, page_store, alice):
        before = page_store.store.get_branch_tip("main")
        page_store.save_page_with_media("guide", None, "# Guide", "v1", alice)

        assert page_store.get_page_at_revision("guide", None, before) is None

    def test_unknown_revision(self, page_store):
        with pytest.raises(RevisionNotFoundError):
            page_store.get_page_at_revision("Home", None, "0" * 40)

    def test_malformed_revision(self, page_store):
        with pytest.raises(InvalidIdentifierError):
            page_store.get_page_at_revision("Home", None, "main")


class TestListings:
    """Test cases for culture and page listings."""

    def test_available_cultures(self, page_store, alice):
        page_store.save_page_with_media("docs/guide", "fr", FRENCH_PAGE, "fr", alice)
        page_store.save_page_with_media("docs/guide", None, PAGE_WITH_HEADING, "en", alice)
        page_store.save_page_with_media("docs/guide", "de", "# Anleitung", "de", alice)
        page_store.save_page_with_media("docs/guide/sub", "it", "# Sub", "it", alice)
        page_store.save_page_with_media("docs/guidebook", "es", "# Libro", "es", alice)

        assert page_store.get_available_cultures("docs/guide") == ["en", "de", "fr"]

    def test_cultures_without_neutral_variant(self, page_store, alice):
        page_store.save_page_with_media("guide", "fr", FRENCH_PAGE, "fr", alice)

        assert page_store.get_available_cultures("guide") == ["fr"]
        assert page_store.get_available_cultures("nothing") == []

    def test_all_pages_sorted(self, page_store, alice):
        page_store.save_page_with_media("guide", "fr", FRENCH_PAGE, "fr", alice)
        page_store.save_page_with_media("guide", None, PAGE_WITH_HEADING, "en", alice)
        page_store.save_page_with_media(
            "docs/setup", None, PAGE_WITH_FRONT_MATTER, "m", alice, {"docs/medias/a.png": b"x"}
        )

        pages = page_store.get_all_pages()

        assert [(p.page_name, p.culture) for p in pages] == [
            ("Home", None),
            ("docs/setup", None),
            ("guide", None),
            ("guide", "fr"),
        ]
        assert pages[1].title == "Front matter title"
        assert pages[3].title == "Premiers pas"
        assert all(p.last_modified_by for p in pages)

    def test_titles_are_cached_across_reads(self, page_store, alice):
        page_store.save_page_with_media("guide", None, PAGE_WITH_HEADING, "en", alice)
        page_store.title_cache.clear()

        assert page_store.get_page_title("guide", None) == "Getting started"
        assert page_store.get_page_title("missing", None) is None
