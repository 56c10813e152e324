"""sonic_spin/synth.py – Replacement synthesis.

Builds the prefix-form token sequence for one resolved occurrence::

    <label> <keywords> <argument> <pattern> <link>  <operand>  <body> <else ...>

and returns it as a single invisible group.  The group carries the trivia
that preceded the operand in the source, so the rewritten fragment keeps
its indentation and comments.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from .config import DEFAULT_CONFIG, RewriteConfig
from .constructs import ConstructHead
from .tokens import (
    Delimiter,
    TokenGroup,
    Tree,
    ensure_separated,
    first_loc,
    with_leading,
)


def needs_parens(operand: Sequence[Tree]) -> bool:
    """A compound operand must be wrapped to keep its precedence."""
    if len(operand) > 1:
        return True
    only = operand[0]
    return isinstance(only, TokenGroup) and only.is_invisible


def wrap_operand(operand: Sequence[Tree], config: RewriteConfig) -> Tree:
    """Return the operand as one tree with no leading trivia."""
    trees = list(operand)
    trees[0] = with_leading(trees[0], "")
    if config.parenthesize_operands and needs_parens(trees):
        return TokenGroup(
            delimiter=Delimiter.PAREN,
            children=trees,
            loc=first_loc(trees),
            end_loc=trees[-1].loc,
        )
    if len(trees) == 1:
        return trees[0]
    return TokenGroup(delimiter=Delimiter.NONE, children=trees, loc=first_loc(trees))


def synthesize(
    operand: Sequence[Tree],
    head: ConstructHead,
    tail: Sequence[Tree] = (),
    config: Optional[RewriteConfig] = None,
) -> TokenGroup:
    """Splice *operand* into the prefix form described by *head*.

    *tail* holds the body and ``else`` chain captured after the head; it is
    moved verbatim.  The result is an invisible group.
    """
    config = config or DEFAULT_CONFIG
    leading = operand[0].leading

    parts: List[Tree] = list(head.prefix())
    parts.append(wrap_operand(operand, config))
    parts.extend(tail)

    children: List[Tree] = [with_leading(parts[0], "")]
    children.extend(ensure_separated(part) for part in parts[1:])

    return TokenGroup(
        delimiter=Delimiter.NONE,
        children=children,
        loc=first_loc(operand),
        leading=leading,
    )
