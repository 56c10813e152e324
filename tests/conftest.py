# tests/conftest.py
"""
Shared sources and helpers for the sonic_spin test-suite.
"""

from sonic_spin.lexer import tokenize
from sonic_spin.tokens import render_compact


def canon(source: str) -> str:
    """Layout-insensitive form of *source* for comparing rewrites."""
    return render_compact(tokenize(source))


def children_of(source: str):
    """Top-level trees of *source*."""
    return tokenize(source).children


# ---------------------------------------------------------------------------
#  Sample fragments
# ---------------------------------------------------------------------------

CHAINED_MATCH = """\
let res = 0::(match) {
    x => x + 2,
}::(match) {
    x => x + 10,
};
"""

CHAINED_MATCH_EXPECTED = """\
let res = match (match 0 { x => x + 2, }) {
    x => x + 10,
};
"""

NESTED_LOOPS = """\
let mut v = Vec::new();
(0..3)::('outer: for x in) {
    (0..x).map(|b| (b,))::(for (a,) in) {
        if a == 2 { break 'outer; }
        v.push((x, a));
    }
}
"""

NESTED_LOOPS_EXPECTED = """\
let mut v = Vec::new();
'outer: for x in (0..3) {
    for (a,) in ((0..x).map(|b| (b,))) {
        if a == 2 { break 'outer; }
        v.push((x, a));
    }
}
"""

IF_ELSE_CHAIN = """\
let n = flag::(if) { 1 } else if other { 2 } else { 3 };
"""

IF_ELSE_CHAIN_EXPECTED = """\
let n = if flag { 1 } else if other { 2 } else { 3 };
"""

COMMENTED = """\
// compute the answer
let answer = input::(match) {
    /* the only case */
    _ => 42,
};
"""

UNKNOWN_CONSTRUCT = """\
let a = 1;
let b = x::(frobnicate) { y };
"""

MACRO_PROGRAM = """\
fn main() {
    let keep = a::b::c();
    let res = sonic_spin!(0::(match) { x => x + 2 });
    println!("{}", res);
}
"""

MACRO_PROGRAM_EXPECTED = """\
fn main() {
    let keep = a::b::c();
    let res = match 0 { x => x + 2 };
    println!("{}", res);
}
"""
