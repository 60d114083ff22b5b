# ============================================================================
# ANNOTATION PARSING TESTS
# ============================================================================
# STATUS: Tests - #migrator: comment lexing
# PURPOSE: Verify verbose, shorthand, merged and malformed attribute handling
# CREATED: 19 OCT 2026
# ============================================================================
"""
Annotation Parsing Tests

Covers:
1. Directive recognition (table, field, index, embed, embedded)
2. Verbose key="value" and key=value attributes
3. Shorthand flags and merging with verbose values
4. platform.<dialect>.<key> overrides
5. Malformed input raising AnnotationSyntaxError

Run with:
    pytest tests/test_annotations.py -v
"""

import pytest

from core.contracts import AnnotationKind
from core.errors import AnnotationSyntaxError
from core.schema.annotations import (
    is_annotation,
    parse_annotation,
    parse_attributes,
    split_overrides,
)


# ============================================================================
# DIRECTIVES
# ============================================================================

class TestDirectives:

    @pytest.mark.parametrize("comment,kind", [
        ('#migrator:schema:table name="users"', AnnotationKind.TABLE),
        ('#migrator:schema:field name="id" type="SERIAL"', AnnotationKind.FIELD),
        ('#migrator:schema:index name="idx" fields="a"', AnnotationKind.INDEX),
        ("#migrator:embed", AnnotationKind.EMBED),
        ('#migrator:embedded mode="json"', AnnotationKind.EMBEDDED),
    ])
    def test_kind_detected(self, comment, kind):
        assert parse_annotation(comment).kind == kind

    def test_embedded_not_read_as_embed(self):
        ann = parse_annotation('#migrator:embedded prefix="addr_"')
        assert ann.kind == AnnotationKind.EMBEDDED
        assert ann.get("prefix") == "addr_"

    def test_plain_comment_is_not_annotation(self):
        assert parse_annotation("# just a comment") is None
        assert not is_annotation("# TODO something")

    def test_leading_whitespace_allowed(self):
        assert is_annotation('   #migrator:schema:table name="t"')

    def test_unknown_directive_raises(self):
        with pytest.raises(AnnotationSyntaxError, match="unknown annotation directive"):
            parse_annotation('#migrator:schema:view name="v"')

    def test_line_number_kept(self):
        ann = parse_annotation('#migrator:schema:table name="t"', line=12)
        assert ann.line == 12


# ============================================================================
# ATTRIBUTES
# ============================================================================

class TestAttributes:

    def test_verbose_quoted_and_unquoted(self):
        attrs, flags = parse_attributes(' name="email" type=VARCHAR(255)')
        assert attrs == {"name": "email", "type": "VARCHAR(255)"}
        assert flags == []

    def test_quoted_value_keeps_spaces(self):
        attrs, _ = parse_attributes(' comment="the user table"')
        assert attrs["comment"] == "the user table"

    def test_escaped_quote_in_value(self):
        attrs, _ = parse_attributes(r' check="status <> \"x\""')
        assert attrs["check"] == 'status <> "x"'

    def test_shorthand_flags(self):
        ann = parse_annotation('#migrator:schema:field name="id" type="INTEGER" primary not_null unique')
        assert ann.flags == ["primary", "not_null", "unique"]
        assert ann.flag("primary")
        assert ann.flag("not_null")
        assert not ann.flag("index")

    def test_verbose_wins_over_flag(self):
        attrs, flags = parse_attributes(' unique unique="false"')
        assert flags == ["unique"]
        assert attrs["unique"] == "false"

    def test_false_value_is_not_flag(self):
        ann = parse_annotation('#migrator:schema:field name="a" type="INT" primary="false"')
        assert not ann.flag("primary")

    def test_get_list(self):
        ann = parse_annotation('#migrator:schema:index name="idx" fields="a, b ,,c"')
        assert ann.get_list("fields") == ["a", "b", "c"]

    def test_empty_value_reads_as_default(self):
        ann = parse_annotation('#migrator:schema:field name="a" type="INT" comment=""')
        assert ann.get("comment", "none") == "none"


# ============================================================================
# OVERRIDES
# ============================================================================

class TestOverrides:

    def test_platform_keys_split_out(self):
        ann = parse_annotation(
            '#migrator:schema:field name="data" type="JSONB" '
            'platform.mysql.type="JSON" platform.mariadb.type="LONGTEXT"'
        )
        assert ann.attrs == {"name": "data", "type": "JSONB"}
        assert ann.overrides == {"mysql": {"type": "JSON"}, "mariadb": {"type": "LONGTEXT"}}

    def test_dialect_lowercased(self):
        plain, overrides = split_overrides({"platform.MySQL.engine": "InnoDB"})
        assert plain == {}
        assert overrides == {"mysql": {"engine": "InnoDB"}}

    def test_two_part_key_is_plain(self):
        plain, overrides = split_overrides({"platform.mysql": "x"})
        assert plain == {"platform.mysql": "x"}
        assert overrides == {}


# ============================================================================
# MALFORMED INPUT
# ============================================================================

class TestMalformed:

    @pytest.mark.parametrize("text,message", [
        (' name="unterminated', "unterminated quote"),
        (" name=", "missing value"),
        (' name="a"b', "unexpected text after quoted value"),
        (" name=a\"b", "unexpected quote"),
        (" @oops", "unexpected character"),
        (" flag! other", "unexpected character"),
    ])
    def test_errors(self, text, message):
        with pytest.raises(AnnotationSyntaxError, match=message):
            parse_attributes(text)
