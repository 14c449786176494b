"""Unit tests for page_store.title_extractor and front_matter modules."""

import pytest

from src.page_store.errors import FrontMatterError
from src.page_store.front_matter import parse_front_matter, split_front_matter
from src.page_store.title_extractor import extract_title
from tests.fixtures.sample_pages import (
    PAGE_WITH_FRONT_MATTER,
    PAGE_WITH_HEADING,
    PAGE_WITHOUT_TITLE,
)


class TestExtractTitle:
    """Test cases for extract_title."""

    def test_first_heading(self):
        assert extract_title(PAGE_WITH_HEADING, "docs/setup") == "Getting started"

    def test_front_matter_title_wins(self):
        assert extract_title(PAGE_WITH_FRONT_MATTER, "docs/setup") == "Front matter title"

    def test_falls_back_to_base_name(self):
        assert extract_title(PAGE_WITHOUT_TITLE, "docs/setup") == "setup"

    def test_empty_content(self):
        assert extract_title("", "Home") == "Home"

    def test_level_two_heading_ignored(self):
        assert extract_title("## Section\n\ntext", "guide") == "guide"

    def test_heading_after_text(self):
        assert extract_title("intro\n\n# Real title\n", "guide") == "Real title"

    def test_heading_in_front_matter_ignored(self):
        content = "---\nauthor: x\n---\n# Body title\n"
        assert extract_title(content, "guide") == "Body title"

    def test_invalid_front_matter_falls_back_to_heading(self):
        content = "---\ntitle: [unclosed\n---\n# Heading\n"
        assert extract_title(content, "guide") == "Heading"

    def test_non_string_title(self):
        assert extract_title("---\ntitle: 2024\n---\n", "guide") == "2024"


class TestFrontMatter:
    """Test cases for front matter parsing."""

    def test_split_without_front_matter(self):
        assert split_front_matter("# Title\n") == ("", "# Title\n")

    def test_parse(self):
        data, body = parse_front_matter(PAGE_WITH_FRONT_MATTER, "guide")

        assert data["title"] == "Front matter title"
        assert data["tags"] == ["setup", "guide"]
        assert body.startswith("# Heading title")

    def test_not_a_mapping(self):
        with pytest.raises(FrontMatterError) as exc_info:
            parse_front_matter("---\n- a\n- b\n---\nbody", "guide")
        assert "dictionary" in str(exc_info.value)

    def test_invalid_yaml(self):
        with pytest.raises(FrontMatterError):
            parse_front_matter("---\nkey: [unclosed\n---\nbody", "guide")

    def test_too_deep(self):
        nested = "a:\n" + "".join(f"{'  ' * i}b{i}:\n" for i in range(1, 13)) + f"{'  ' * 13}x: 1"
        with pytest.raises(FrontMatterError) as exc_info:
            parse_front_matter(f"---\n{nested}\n---\nbody", "guide")
        assert "maximum depth" in str(exc_info.value)

    def test_python_tags_rejected(self):
        with pytest.raises(FrontMatterError):
            parse_front_matter("---\nx: !!python/object/apply:os.system ['ls']\n---\n", "guide")
