"""sonic_spin/scanner.py – Marker scanner.

The postfix marker is the ``::`` token immediately followed by a
parenthesized construct head::

    value::(match) { ... }

``::`` is also the path separator of the host grammar, so a ``::`` that is
followed by a path continuation (an identifier, a turbofish ``<``, a glob
``*`` or a use-tree brace group) is *not* a marker.  Every other ``::`` is
one; those that are not followed by a parenthesis group are reported as
malformed by the driver.

The scan never descends into child groups.  Nested occurrences are found
when the driver recurses into each group.
"""

from __future__ import annotations

from typing import Optional, Sequence

from .tokens import Delimiter, TokenGroup, Tree, is_group, is_ident, is_punct

MARKER = "::"


def _continues_path(tree: Optional[Tree]) -> bool:
    return (
        is_ident(tree)
        or is_punct(tree, "<")
        or is_punct(tree, "*")
        or is_group(tree, Delimiter.BRACE)
    )


def is_marker_at(children: Sequence[Tree], index: int) -> bool:
    """True when ``children[index]`` is a postfix marker."""
    if not is_punct(children[index], MARKER):
        return False
    following = children[index + 1] if index + 1 < len(children) else None
    return not _continues_path(following)


def find_marker(children: Sequence[Tree], start: int = 0) -> Optional[int]:
    """Index of the first marker in ``children[start:]``, or ``None``."""
    for index in range(start, len(children)):
        if is_marker_at(children, index):
            return index
    return None


def count_markers(group: TokenGroup) -> int:
    """Number of markers anywhere below *group*."""
    total = 0
    stack = [group]
    while stack:
        node = stack.pop()
        for index, child in enumerate(node.children):
            if isinstance(child, TokenGroup):
                stack.append(child)
            elif is_marker_at(node.children, index):
                total += 1
    return total
