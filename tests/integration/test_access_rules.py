"""Integration tests for access rules stored in the repository."""

from datetime import datetime, timezone

import pytest

from src.access_control.engine import RULES_FILE_NAME, AccessControlEngine
from src.access_control.errors import RuleFormatError
from src.access_control.models import AccessRule
from src.access_control.rules_cache import TimedCache
from src.git_backend.models import CommitMetadata, CommitOperation, CommitSignature
from tests.fixtures.sample_pages import RULES_FILE
from tests.helpers.git_test_utils import read_blob


class TestAccessRules:
    """Test cases for loading and saving the rule file."""

    def test_no_rule_file_allows_everything(self, access_engine):
        assert access_engine.get_rules() == []
        permissions = access_engine.check_page_access("admin/settings", [])
        assert permissions.can_read and permissions.can_edit

    def test_committed_rules_are_enforced(self, access_engine, page_store, alice):
        page_store.store.create_commit(
            "main",
            [CommitOperation.add(RULES_FILE_NAME, RULES_FILE.encode())],
            CommitMetadata("Add rules", CommitSignature(alice.git_name, alice.git_email, _now())),
        )

        assert not access_engine.check_page_access("admin/settings", ["users"]).can_read
        assert access_engine.check_page_access("admin/settings", ["Admin"]).can_edit
        private = access_engine.check_page_access("private/notes", ["users"])
        assert private.can_read and not private.can_edit
        anyone = access_engine.check_page_access("guide", [])
        assert anyone.can_read and not anyone.can_edit
        assert anyone.matched_pattern == "*"
        # "*" stops at "/", so nested pages fall through to no rule
        assert access_engine.check_page_access("docs/setup", []).matched_pattern is None

    def test_save_rules_invalidates_cache(self, access_engine, alice, wiki_options):
        access_engine.get_rules()  # cache the empty list
        rules = [
            AccessRule("secret/**", ("staff",), ("staff",), 0),
            AccessRule("*", (), (), 1),
        ]

        commit_id = access_engine.save_rules(rules, "Update access rules", alice)

        assert [r.pattern for r in access_engine.get_rules()] == ["secret/**", "*"]
        assert not access_engine.check_page_access("secret/plan", ["guests"]).can_read
        stored = read_blob(wiki_options.repository_path, commit_id, RULES_FILE_NAME).decode()
        assert "secret/** | staff | staff" in stored

    def test_other_engine_sees_change_after_ttl(self, page_store, alice, wiki_options):
        clock = [0.0]
        reader = AccessControlEngine(
            page_store.store, wiki_options, TimedCache(60, clock=lambda: clock[0])
        )
        writer = AccessControlEngine(page_store.store, wiki_options)
        assert reader.get_rules() == []

        writer.save_rules([AccessRule("*", ("staff",), ("staff",), 0)], "Lock down", alice)

        assert reader.get_rules() == []
        clock[0] = 61
        assert [r.pattern for r in reader.get_rules()] == ["*"]

    def test_malformed_rule_file(self, access_engine, page_store, alice):
        page_store.store.create_commit(
            "main",
            [CommitOperation.add(RULES_FILE_NAME, b"admin/** | admin\n")],
            CommitMetadata("Broken rules", CommitSignature(alice.git_name, alice.git_email, _now())),
        )

        with pytest.raises(RuleFormatError):
            access_engine.get_rules()


def _now() -> datetime:
    return datetime.now(timezone.utc)
