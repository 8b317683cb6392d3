"""
Tests for the doc tag grammar.
"""

import pytest

from react_annotation.core.exceptions import MalformedTagError
from react_annotation.parsing.doc_tags import (
    is_doc_comment,
    parse_doc_comment,
    parse_render_target,
)


class TestParseDocComment:
    """Splitting doc blocks into tags."""

    def test_multi_line_block(self):
        text = "/**\n * Layout shell.\n * @component\n * @renders Header - the page header\n */"

        tags = parse_doc_comment(text)

        assert [tag.name for tag in tags] == ["component", "renders"]
        assert tags[0].body == ""
        assert tags[0].line_offset == 2
        assert tags[0].column == 3
        assert tags[1].body == "Header - the page header"
        assert tags[1].line_offset == 3

    def test_single_line_block(self):
        tags = parse_doc_comment("/** @renders Header */")

        assert len(tags) == 1
        assert tags[0].name == "renders"
        assert tags[0].body == "Header"
        assert tags[0].line_offset == 0
        assert tags[0].column == 4

    def test_body_continues_until_next_tag(self):
        text = "/**\n * @renders Header\n *   shown above the fold\n * @deprecated\n */"

        tags = parse_doc_comment(text)

        assert [tag.name for tag in tags] == ["renders", "deprecated"]
        assert tags[0].body == "Header\nshown above the fold"

    def test_repeated_tags_are_kept_in_order(self):
        text = "/**\n * @renders Header\n * @renders Header\n */"

        tags = parse_doc_comment(text)

        assert [tag.body for tag in tags] == ["Header", "Header"]

    def test_free_text_before_first_tag_is_ignored(self):
        tags = parse_doc_comment("/**\n * Just a description with an email a@b.c\n */")

        assert tags == []

    def test_non_doc_comments(self):
        assert parse_doc_comment("/* @component */") == []
        assert parse_doc_comment("// @component") == []
        assert not is_doc_comment("/*** banner ***/")
        assert is_doc_comment("/** @component */")


class TestParseRenderTarget:
    """The render tag body grammar."""

    @pytest.mark.parametrize("body", ["", "   ", "*", "* anything goes here"])
    def test_wildcard_forms(self, body):
        parsed = parse_render_target(body)

        assert parsed.is_wildcard
        assert parsed.target == ""

    def test_target_and_description(self):
        parsed = parse_render_target("Header - the page header")

        assert parsed.target == "Header"
        assert parsed.description == "the page header"
        assert not parsed.is_wildcard

    @pytest.mark.parametrize(
        "body,target",
        [
            ("{Header}", "Header"),
            ("{ Header } with braces", "Header"),
            ("UI.Header", "UI.Header"),
            ("header", "header"),
            ("my-widget", "my-widget"),
            ("$Slot", "$Slot"),
        ],
    )
    def test_valid_targets(self, body, target):
        assert parse_render_target(body).target == target

    @pytest.mark.parametrize("body", ["<Header/>", "123", "{Header", "Header()", "UI..Header"])
    def test_malformed_targets(self, body):
        with pytest.raises(MalformedTagError) as exc_info:
            parse_render_target(body)

        assert exc_info.value.tag_name == "renders"
        assert exc_info.value.raw_text == body

    def test_custom_tag_name_in_error(self):
        with pytest.raises(MalformedTagError) as exc_info:
            parse_render_target("<Header/>", tag_name="composes")

        assert "@composes" in exc_info.value.message
