"""sonic_spin/operand.py – Operand extractor.

Given the index of a marker, scan backward over the siblings that precede
it and find where the operand expression starts.  The rule is a syntactic
heuristic, not a parser for the whole expression grammar.  The scan stops
at, in priority order:

(a) a statement or list terminator (``;`` ``,``),
(b) an assignment or binding introducer (``=``, compound assignments,
    ``=>``) or a keyword that introduces an expression position
    (``return``, ``in``, ``match`` ...),
(c) the start of the sibling sequence, or the *floor* the caller passes
    (the end of an occurrence that was left untouched),
(d) a previously synthesized replacement, which is *included* in the
    operand so that rewrites chain left to right.

A block statement that needs no ``;`` (``for .. { }``, ``while .. { }``,
``if .. { } else { }``, ``loop { }``, ``unsafe { }``, ``match .. { }``)
also ends the scan when a new expression, rather than ``.`` ``?`` or an
operator, follows its closing brace::

    for x in v { f(x) }
    y::(match) { _ => 1 }     // operand is `y`, not `v { f(x) } y`

Bracketed sub-expressions are single sibling trees, so they are always
taken whole.
"""

from __future__ import annotations

import logging
from typing import FrozenSet, List, Sequence, Tuple

from .errors import MalformedOperandError, SourceSpan
from .tokens import (
    Delimiter,
    Token,
    TokenGroup,
    Tree,
    is_group,
    is_keyword,
    is_lifetime,
    is_punct,
)

logger = logging.getLogger(__name__)

TERMINATORS: FrozenSet[str] = frozenset({";", ","})

BINDING_INTRODUCERS: FrozenSet[str] = frozenset({
    "=", "+=", "-=", "*=", "/=", "%=", "^=", "&=", "|=", "<<=", ">>=", "=>",
})

BOUNDARY_KEYWORDS: FrozenSet[str] = frozenset({
    "return", "break", "yield", "in", "match", "if", "while", "let",
})

# Keywords that open a statement ending in a brace block.
BLOCK_KEYWORDS: FrozenSet[str] = frozenset({
    "for", "while", "if", "else", "loop", "unsafe", "match",
})

# An operand may not end in one of these: the expression would be missing
# its right-hand side.
DANGLING: FrozenSet[str] = frozenset({
    "+", "-", "*", "/", "%", "^", "&", "|", "&&", "||", "!",
    "==", "!=", "<", "<=", ">", ">=", "<<", ">>",
    ".", "::", "->", ":", "@", "#",
})


def _is_boundary(tree: Tree) -> bool:
    if isinstance(tree, TokenGroup):
        return False
    return (
        (is_punct(tree) and (tree.text in TERMINATORS or tree.text in BINDING_INTRODUCERS))
        or (is_keyword(tree) and tree.text in BOUNDARY_KEYWORDS)
    )


def _starts_statement(children: Sequence[Tree], index: int) -> bool:
    """True when ``children[index]`` is the first tree of a statement."""
    if index >= 2 and is_punct(children[index - 1], ":") and is_lifetime(children[index - 2]):
        index -= 2                                  # 'label: loop { .. }
    if index == 0:
        return True
    prev = children[index - 1]
    return is_punct(prev, ";") or is_group(prev, Delimiter.BRACE)


def closes_block_statement(children: Sequence[Tree], index: int) -> bool:
    """True when the brace group at *index* ends a block-like statement.

    Walks back to the nearest block keyword and checks that it opens the
    statement: ``for x in v { .. }`` does, ``let a = S { .. }`` does not.
    """
    if not is_group(children[index], Delimiter.BRACE):
        return False
    if index + 1 < len(children) and is_punct(children[index + 1]):
        return False                # `.len()`, `?` or an operator follows
    for j in range(index - 1, -1, -1):
        tree = children[j]
        if is_punct(tree) and tree.text in TERMINATORS:
            return False
        if is_keyword(tree) and tree.text in BLOCK_KEYWORDS:
            return _starts_statement(children, j)
    return False


def find_operand_start(
    children: Sequence[Tree],
    marker_index: int,
    floor: int = 0,
) -> int:
    """Smallest index such that ``children[start:marker_index]`` is the operand.

    The scan never goes below *floor*.

    Raises:
        MalformedOperandError: when no expression precedes the marker.
    """
    start = marker_index
    for index in range(marker_index - 1, floor - 1, -1):
        tree = children[index]
        if _is_boundary(tree):
            break
        if index < marker_index - 1 and closes_block_statement(children, index):
            break
        start = index
        if isinstance(tree, TokenGroup) and tree.is_invisible:
            break

    marker = children[marker_index]
    if start == marker_index:
        raise MalformedOperandError(
            "expected an expression before the postfix marker",
            span=SourceSpan.from_tree(marker),
        ).with_hint("write the operand directly in front of '::(...)'")

    last = children[marker_index - 1]
    if isinstance(last, Token) and is_punct(last) and last.text in DANGLING:
        raise MalformedOperandError(
            f"operand ends with dangling operator {last.text!r}",
            span=SourceSpan.from_tree(last),
        )
    return start


def extract_operand(
    children: Sequence[Tree],
    marker_index: int,
    floor: int = 0,
) -> Tuple[int, List[Tree]]:
    """Return ``(start, operand_trees)`` for the marker at *marker_index*."""
    start = find_operand_start(children, marker_index, floor)
    operand = list(children[start:marker_index])
    logger.debug(
        "operand for marker at %d spans [%d, %d): %d trees",
        marker_index, start, marker_index, len(operand),
    )
    return start, operand
