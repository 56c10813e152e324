# tests/test_rewrites.py
"""
Per-construct rewrites: postfix source → expected prefix form.
"""

import pytest

from sonic_spin.api import spin
from tests.conftest import canon


REWRITES = [
    # match
    ("0::(match) { x => x + 2 }",
     "match 0 { x => x + 2 }"),
    ("0::(match) { x => x + 2 }::(match) { x => x + 10 }",
     "match (match 0 { x => x + 2 }) { x => x + 10 }"),
    ("v.len()::(match) { 0 => a, _ => b }",
     "match (v.len()) { 0 => a, _ => b }"),

    # if / else
    ("true::(if) { 3 } else { 4 }",
     "if true { 3 } else { 4 }"),
    ("false::(if) { 3 } else if true { 4 } else { 5 }",
     "if false { 3 } else if true { 4 } else { 5 }"),
    ("false::(if) { 0 } else { 1 }.pipe(|n| n == 1)::(if) { 2 } else { 3 }",
     "if (if false { 0 } else { 1 }.pipe(|n| n == 1)) { 2 } else { 3 }"),
    ("true::(if) { true::(if) { acc += 1; } }",
     "if true { if true { acc += 1; } }"),
    ("opt::(if let Some(v) =) { v } else { 0 }",
     "if let Some(v) = opt { v } else { 0 }"),

    # loops
    ("(0..3)::(for x in) { acc += x; }",
     "for x in (0..3) { acc += x; }"),
    ("(0..3)::('outer: for x in) { (0..x)::(for y in) { break 'outer; } }",
     "'outer: for x in (0..3) { for y in (0..x) { break 'outer; } }"),
    ("(rep > 0)::(while) { rep -= 1; }",
     "while (rep > 0) { rep -= 1; }"),
    ("(rep > 0)::('l: while) { rep -= 1; }",
     "'l: while (rep > 0) { rep -= 1; }"),
    ("it.next()::(while let Some(x) =) { use_it(x); }",
     "while let Some(x) = (it.next()) { use_it(x); }"),
    ("{ break 5; }::(loop)",
     "loop { break 5; }"),
    ("{ break; }::('inner: loop)",
     "'inner: loop { break; }"),

    # blocks
    ("{ 8 }::(try)",
     "try { 8 }"),
    ("{ (); }::(async)",
     "async { (); }"),
    ("{ x }::(async move)",
     "async move { x }"),
    ("{ *p }::(unsafe)",
     "unsafe { *p }"),
    ("{ break 'res_label 1; }::('res_label:)",
     "'res_label: { break 'res_label 1; }"),

    # prefix operators
    ("4::(&)",
     "& 4"),
    ("4::(&)::(&)::(&)",
     "& (& (& 4))"),
    ("v::(&mut)",
     "&mut v"),
    ("x::(*)",
     "* x"),
    ("flag::(!)",
     "! flag"),
    ("n::(-)",
     "- n"),
    ("2::(box)",
     "box 2"),

    # bindings and control flow
    ("2::(box)::(let res =);",
     "let res = (box 2);"),
    ("4::(let res =);",
     "let res = 4;"),
    ("(3, 4)::(let (res0, res1) =);",
     "let (res0, res1) = (3, 4);"),
    ("loop { 777::(break); }",
     "loop { break 777; }"),
    ("'outer: loop { 'inner: loop { 555::(break 'outer); } }",
     "'outer: loop { 'inner: loop { break 'outer 555; } }"),
    ("fn f() -> u8 { 444::(return); }",
     "fn f() -> u8 { return 444; }"),
    ("|| { 1::(yield); }",
     "|| { yield 1; }"),
]


class TestConstructRewrites:

    @pytest.mark.parametrize("source,expected", REWRITES)
    def test_rewrite(self, source, expected):
        assert canon(spin(source)) == canon(expected)


class TestStatementContext:

    def test_while_in_block(self):
        source = """\
let mut rep = 3;
let mut acc = 0;
(rep > 0)::(while) {
    let mut rep_ = 3;
    (rep_ > 0)::(while) {
        acc += 1;
        rep_ -= 1;
    };
    rep -= 1;
};
"""
        expected = """\
let mut rep = 3;
let mut acc = 0;
while (rep > 0) {
    let mut rep_ = 3;
    while (rep_ > 0) {
        acc += 1;
        rep_ -= 1;
    };
    rep -= 1;
};
"""
        assert canon(spin(source)) == canon(expected)

    def test_match_arm_operand(self):
        source = "match k { A => v::(box), B => w::(box) }"
        assert canon(spin(source)) == canon("match k { A => box v, B => box w }")
