"""Unit tests for access_control.serializer module."""

import pytest

from src.access_control.errors import RuleFormatError
from src.access_control.models import AccessRule
from src.access_control.serializer import HEADER_LINES, parse_rules, serialize_rules
from tests.fixtures.sample_pages import RULES_FILE


class TestParseRules:
    """Test cases for parse_rules."""

    def test_parses_rules_in_order(self):
        rules = parse_rules(RULES_FILE)

        assert [r.pattern for r in rules] == ["admin/**", "private/*", "*"]
        assert [r.order for r in rules] == [0, 1, 2]
        assert rules[1].read_groups == ("users", "editors")
        assert rules[1].write_groups == ("editors",)
        assert rules[2].read_groups == ()
        assert rules[2].write_groups == ("users",)

    def test_comments_and_blank_lines_ignored(self):
        assert parse_rules("# only a comment\n\n   \n  # indented comment\n") == []

    def test_empty_group_entries_dropped(self):
        rules = parse_rules("docs/* | users, , editors, | \n")

        assert rules[0].read_groups == ("users", "editors")
        assert rules[0].write_groups == ()

    @pytest.mark.parametrize("line", [
        "docs/* | users",
        "docs/* | users | editors | extra",
        "no separators at all",
    ])
    def test_wrong_field_count(self, line):
        with pytest.raises(RuleFormatError) as exc_info:
            parse_rules(f"# header\n{line}\n")
        assert exc_info.value.line == line

    def test_empty_pattern(self):
        with pytest.raises(RuleFormatError):
            parse_rules(" | users | editors\n")

    def test_windows_line_endings(self):
        rules = parse_rules("a/* | x | y\r\nb/* | | \r\n")
        assert [r.pattern for r in rules] == ["a/*", "b/*"]


class TestSerializeRules:
    """Test cases for serialize_rules."""

    def test_round_trip(self):
        rules = parse_rules(RULES_FILE)

        assert parse_rules(serialize_rules(rules)) == rules

    def test_sorted_by_order(self):
        rules = [AccessRule("b/*", (), (), order=1), AccessRule("a/*", (), (), order=0)]

        lines = serialize_rules(rules).splitlines()

        assert lines[:len(HEADER_LINES)] == HEADER_LINES
        assert lines[-2:] == ["a/* |  | ", "b/* |  | "]

    def test_empty_rules_with_examples_parse_to_nothing(self):
        content = serialize_rules([], include_examples=True)

        assert "# Examples:" in content
        assert parse_rules(content) == []

    def test_empty_rules_without_examples(self):
        assert "Examples" not in serialize_rules([])

    def test_newline_terminated(self):
        assert serialize_rules([AccessRule("*", ("users",), ())]).endswith("\n")
