# tests/test_lexer.py
"""
Tests for the lexer: source text → token tree.
"""

import pytest

from sonic_spin.errors import ErrorKind, LexicalError
from sonic_spin.lexer import tokenize
from sonic_spin.tokens import (
    Delimiter,
    Token,
    TokenGroup,
    TokenKind,
    render,
    render_compact,
)
from tests.conftest import COMMENTED, NESTED_LOOPS


def _kinds(source):
    return [(t.kind, t.text) for t in tokenize(source).children]


class TestTokenClasses:

    def test_empty_source(self):
        root = tokenize("")
        assert root.delimiter is Delimiter.NONE
        assert root.children == []

    def test_identifiers_and_literals(self):
        assert _kinds('foo 42 "s" \'c\' 1.5e3') == [
            (TokenKind.IDENT, "foo"),
            (TokenKind.LITERAL, "42"),
            (TokenKind.LITERAL, '"s"'),
            (TokenKind.LITERAL, "'c'"),
            (TokenKind.LITERAL, "1.5e3"),
        ]

    def test_lifetime_is_not_a_char(self):
        assert _kinds("'outer: loop") == [
            (TokenKind.LIFETIME, "'outer"),
            (TokenKind.PUNCT, ":"),
            (TokenKind.IDENT, "loop"),
        ]

    def test_path_separator_is_one_token(self):
        texts = [t.text for t in tokenize("a::b").children]
        assert texts == ["a", "::", "b"]

    def test_longest_punct_wins(self):
        texts = [t.text for t in tokenize("a <<= b => c .. d").children]
        assert texts == ["a", "<<=", "b", "=>", "c", "..", "d"]

    def test_range_is_not_a_float(self):
        texts = [t.text for t in tokenize("0..3").children]
        assert texts == ["0", "..", "3"]

    def test_raw_string(self):
        root = tokenize('r#"quote " inside"#')
        assert len(root.children) == 1
        assert root.children[0].kind is TokenKind.LITERAL

    def test_suffixed_number(self):
        assert _kinds("10u32") == [(TokenKind.LITERAL, "10u32")]


class TestGroups:

    def test_nested_groups(self):
        root = tokenize("f(a, [b, {c}])")
        call = root.children[1]
        assert isinstance(call, TokenGroup)
        assert call.delimiter is Delimiter.PAREN
        bracket = call.children[2]
        assert bracket.delimiter is Delimiter.BRACKET
        assert bracket.children[2].delimiter is Delimiter.BRACE

    def test_group_locations(self):
        root = tokenize("x\n  (a)")
        group = root.children[1]
        assert (group.loc.line, group.loc.col) == (2, 3)
        assert (group.end_loc.line, group.end_loc.col) == (2, 5)

    def test_token_location(self):
        root = tokenize("let\n  value", file="f.rs")
        tok = root.children[1]
        assert isinstance(tok, Token)
        assert str(tok.loc) == "f.rs:2:3"


class TestTrivia:

    def test_render_round_trips(self):
        for source in (COMMENTED, NESTED_LOOPS, "  a /* x */ ( b )  // end\n"):
            assert render(tokenize(source)) == source

    def test_comments_are_leading_trivia(self):
        root = tokenize("// note\nx")
        assert root.children[0].leading == "// note\n"

    def test_compact_render_ignores_layout(self):
        assert render_compact(tokenize("f( a,\n  b )")) == "f ( a , b )"


class TestLexicalErrors:

    def test_unclosed_delimiter(self):
        with pytest.raises(LexicalError) as info:
            tokenize("f(a, {b)")
        assert info.value.kind is ErrorKind.UNBALANCED_DELIMITER

    def test_unexpected_closer(self):
        with pytest.raises(LexicalError) as info:
            tokenize("a)")
        assert info.value.kind is ErrorKind.UNBALANCED_DELIMITER
        assert info.value.span.column == 2

    def test_unclosed_reports_innermost_opener(self):
        with pytest.raises(LexicalError) as info:
            tokenize("ok()\nf(a, [b")
        assert info.value.span.line == 2
        assert info.value.span.column == 6

    def test_invalid_character(self):
        with pytest.raises(LexicalError) as info:
            tokenize("a \\ b")
        assert info.value.kind is ErrorKind.INVALID_CHARACTER
        assert "\\" in info.value.message

    def test_nesting_too_deep(self):
        with pytest.raises(LexicalError) as info:
            tokenize("x = " + "[" * 2000 + "]" * 2000)
        assert info.value.kind is ErrorKind.NESTING_TOO_DEEP
        assert (info.value.span.line, info.value.span.column) == (1, 5)
