# tests/test_body_synth.py
"""
Tests for body capture and replacement synthesis.
"""

import pytest

from sonic_spin.body import parse_body
from sonic_spin.config import RewriteConfig
from sonic_spin.constructs import parse_head
from sonic_spin.errors import ErrorKind, ExpectedBodyError
from sonic_spin.synth import needs_parens, synthesize
from sonic_spin.tokens import Delimiter, TokenGroup, render, render_compact
from tests.conftest import children_of


def _capture(source):
    """Head and body of the first marker (at index 1) of *source*."""
    children = children_of(source)
    head = parse_head(children[2], children[1])
    tail, end = parse_body(children, 2, head)
    return children, head, tail, end


class TestParseBody:

    def test_match_body(self):
        children, _, tail, end = _capture("x::(match) { _ => 0 } rest")
        assert len(tail) == 1
        assert tail[0].delimiter is Delimiter.BRACE
        assert end == 4

    def test_prefix_kind_consumes_nothing(self):
        children, _, tail, end = _capture("x::(box) { 1 }")
        assert tail == []
        assert end == 3

    def test_else_block(self):
        _, _, tail, end = _capture("x::(if) { 1 } else { 2 };")
        assert [render_compact(t) for t in tail] == ["{ 1 }", "else", "{ 2 }"]
        assert end == 6

    def test_else_if_chain(self):
        _, _, tail, _ = _capture("x::(if) {1} else if y > 0 {2} else {3}")
        assert " ".join(render_compact(t) for t in tail) == (
            "{ 1 } else if y > 0 { 2 } else { 3 }"
        )

    def test_else_not_absorbed_by_match(self):
        _, _, tail, end = _capture("x::(match) {} else {}")
        assert len(tail) == 1
        assert end == 4

    def test_missing_body(self):
        with pytest.raises(ExpectedBodyError) as info:
            _capture("x::(match);")
        assert info.value.kind is ErrorKind.EXPECTED_BODY

    def test_body_at_end_of_input(self):
        with pytest.raises(ExpectedBodyError):
            _capture("x::(for v in)")

    def test_dangling_else(self):
        with pytest.raises(ExpectedBodyError):
            _capture("x::(if) {1} else 2")

    def test_else_if_without_block(self):
        with pytest.raises(ExpectedBodyError):
            _capture("x::(if) {1} else if y")


class TestSynthesize:

    def test_prefix_form(self):
        children, head, tail, _ = _capture("x::(match) { _ => 0 }")
        out = synthesize(children[0:1], head, tail)
        assert out.delimiter is Delimiter.NONE
        assert render_compact(out) == "match x { _ => 0 }"
        assert render(out) == "match x { _ => 0 }"

    def test_compound_operand_is_parenthesized(self):
        children = children_of("a + b::(match) {}")
        head = parse_head(children[4], children[3])
        out = synthesize(children[0:3], head, [children[5]])
        assert render_compact(out) == "match ( a + b ) { }"

    def test_parens_can_be_disabled(self):
        children = children_of("a + b::(match) {}")
        head = parse_head(children[4], children[3])
        config = RewriteConfig(parenthesize_operands=False)
        out = synthesize(children[0:3], head, [children[5]], config)
        assert render_compact(out) == "match a + b { }"

    def test_operand_trivia_moves_to_front(self):
        children = children_of("let v =  /* c */ x::(box)")
        head = parse_head(children[5], children[4])
        out = synthesize(children[3:4], head)
        assert out.leading == "  /* c */ "
        assert out.children[0].leading == ""

    def test_tokens_do_not_fuse(self):
        children = children_of("x::(for i in){}")
        head = parse_head(children[2], children[1])
        out = synthesize(children[0:1], head, [children[3]])
        assert render(out) == "for i in x {}"

    def test_needs_parens(self):
        single = children_of("x")
        assert not needs_parens(single)
        assert needs_parens(children_of("a.b"))
        assert needs_parens([TokenGroup(Delimiter.NONE, single)])
