# tests/test_constructs.py
"""
Tests for the construct-head parser.
"""

import pytest

from sonic_spin.constructs import ConstructKind, parse_head
from sonic_spin.errors import (
    ErrorKind,
    ExpectedHeadGroupError,
    MalformedHeadError,
    UnknownConstructError,
)
from tests.conftest import children_of


def _head(source):
    """Parse the head of ``x::<source>``."""
    children = children_of("x::" + source)
    head = children[2] if len(children) > 2 else None
    return parse_head(head, children[1])


def _texts(trees):
    return [t.text for t in trees]


class TestSimpleHeads:

    @pytest.mark.parametrize("head,kind", [
        ("(match)", ConstructKind.MATCH),
        ("(if)", ConstructKind.IF),
        ("(while)", ConstructKind.WHILE),
        ("(loop)", ConstructKind.LOOP),
        ("(unsafe)", ConstructKind.UNSAFE),
        ("(try)", ConstructKind.TRY_BLOCK),
        ("(box)", ConstructKind.BOX),
        ("(return)", ConstructKind.RETURN),
        ("(yield)", ConstructKind.YIELD),
        ("(async)", ConstructKind.ASYNC),
        ("(&)", ConstructKind.REFERENCE),
        ("(*)", ConstructKind.UNARY),
        ("(break)", ConstructKind.BREAK),
    ])
    def test_kind(self, head, kind):
        assert _head(head).kind is kind

    def test_match_carries_no_binding(self):
        head = _head("(match)")
        assert head.pattern == ()
        assert head.link is None
        assert _texts(head.prefix()) == ["match"]

    def test_body_kinds(self):
        assert _head("(match)").kind.takes_body
        assert _head("(if)").kind.takes_else
        assert not _head("(loop)").kind.takes_body
        assert not _head("(box)").kind.takes_body


class TestBindingHeads:

    def test_for_in(self):
        head = _head("(for x in)")
        assert head.kind is ConstructKind.FOR_IN
        assert _texts(head.pattern) == ["x"]
        assert head.link.text == "in"

    def test_for_tuple_pattern(self):
        head = _head("(for (a, b) in)")
        assert len(head.pattern) == 1
        assert head.pattern[0].children[1].text == ","

    def test_while_let(self):
        head = _head("(while let Some(v) =)")
        assert head.kind is ConstructKind.WHILE_LET
        assert _texts(head.keywords) == ["while", "let"]
        assert head.pattern[0].text == "Some"
        assert head.link.text == "="

    def test_if_let(self):
        head = _head("(if let Ok(v) =)")
        assert head.kind is ConstructKind.IF_LET
        assert head.kind.takes_else

    def test_let(self):
        head = _head("(let (a, b) =)")
        assert head.kind is ConstructKind.LET
        assert not head.kind.takes_body

    def test_reference_mut(self):
        head = _head("(&mut)")
        assert _texts(head.keywords) == ["&", "mut"]

    def test_async_move(self):
        assert _texts(_head("(async move)").keywords) == ["async", "move"]

    def test_break_with_label(self):
        head = _head("(break 'outer)")
        assert _texts(head.argument) == ["'outer"]
        assert _texts(head.prefix()) == ["break", "'outer"]


class TestLabels:

    def test_labelled_for(self):
        head = _head("('outer: for x in)")
        assert head.kind is ConstructKind.FOR_IN
        assert _texts(head.label) == ["'outer", ":"]
        assert _texts(head.prefix()) == ["'outer", ":", "for", "x", "in"]

    def test_labelled_loop(self):
        assert _head("('l: loop)").kind is ConstructKind.LOOP

    def test_label_alone_is_block(self):
        head = _head("('res:)")
        assert head.kind is ConstructKind.BLOCK
        assert head.keywords == ()

    def test_label_on_match_is_rejected(self):
        with pytest.raises(UnknownConstructError):
            _head("('l: match)")


class TestHeadErrors:

    def test_unknown_keyword(self):
        with pytest.raises(UnknownConstructError) as info:
            _head("(frobnicate)")
        assert info.value.keyword == "frobnicate"
        assert info.value.kind is ErrorKind.UNKNOWN_CONSTRUCT

    def test_empty_head(self):
        with pytest.raises(UnknownConstructError):
            _head("()")

    def test_bracket_head(self):
        with pytest.raises(ExpectedHeadGroupError) as info:
            _head("[match]")
        assert info.value.kind is ErrorKind.EXPECTED_HEAD_GROUP

    def test_missing_head(self):
        with pytest.raises(ExpectedHeadGroupError):
            _head("")

    def test_for_without_in(self):
        with pytest.raises(MalformedHeadError):
            _head("(for x)")

    def test_for_without_pattern(self):
        with pytest.raises(MalformedHeadError):
            _head("(for in)")

    def test_condition_in_head(self):
        with pytest.raises(MalformedHeadError):
            _head("(if x > 0)")

    def test_extra_tokens(self):
        with pytest.raises(MalformedHeadError):
            _head("(match x)")

    def test_lifetime_without_colon(self):
        with pytest.raises(UnknownConstructError):
            _head("('l loop)")
