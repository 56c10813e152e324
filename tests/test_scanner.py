# tests/test_scanner.py
"""
Tests for marker recognition.
"""

from sonic_spin.lexer import tokenize
from sonic_spin.scanner import count_markers, find_marker, is_marker_at
from tests.conftest import NESTED_LOOPS, children_of


class TestFindMarker:

    def test_simple_marker(self):
        children = children_of("x::(match) {}")
        assert find_marker(children) == 1

    def test_path_is_not_a_marker(self):
        for source in ("a::b", "Vec::<u8>::new()", "use a::*;", "use a::{b, c};"):
            assert find_marker(children_of(source)) is None, source

    def test_marker_after_path(self):
        children = children_of("a::b::(match) {}")
        assert find_marker(children) == 3

    def test_start_offset(self):
        children = children_of("a::(if) {} b::(if) {}")
        first = find_marker(children)
        assert find_marker(children, first + 1) == 5

    def test_marker_without_head_still_counts(self):
        children = children_of("x:: 5")
        assert is_marker_at(children, 1)

    def test_trailing_marker(self):
        children = children_of("x::")
        assert is_marker_at(children, 1)

    def test_does_not_descend(self):
        children = children_of("f(x::(match) {})")
        assert find_marker(children) is None


class TestCountMarkers:

    def test_counts_nested(self):
        assert count_markers(tokenize(NESTED_LOOPS)) == 2

    def test_no_markers(self):
        assert count_markers(tokenize("let v = Vec::new();")) == 0
