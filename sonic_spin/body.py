"""sonic_spin/body.py – Body parser.

Constructs such as ``match`` or ``for`` need a brace-delimited body right
after their head.  The body is captured as an opaque group and moved into
the replacement unchanged; markers inside it are resolved later, when the
driver recurses into the group.

``if`` and ``if let`` additionally absorb their ``else`` chain so the whole
conditional becomes one replacement::

    flag::(if) { a } else if other { b } else { c }
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

from .constructs import ConstructHead
from .errors import ExpectedBodyError, SourceSpan
from .tokens import Delimiter, Tree, is_group, is_keyword

logger = logging.getLogger(__name__)


def _expected_body(found: Tree | None, after: Tree, message: str) -> ExpectedBodyError:
    culprit = found if found is not None else after
    return ExpectedBodyError(message, span=SourceSpan.from_tree(culprit))


def _else_chain(children: Sequence[Tree], index: int) -> Tuple[List[Tree], int]:
    """Consume ``else { .. }`` / ``else if <cond> { .. }`` links from *index*."""
    chain: List[Tree] = []
    while index < len(children) and is_keyword(children[index], "else"):
        else_token = children[index]
        following = children[index + 1] if index + 1 < len(children) else None

        if is_group(following, Delimiter.BRACE):
            chain.extend((else_token, following))
            return chain, index + 2

        if not is_keyword(following, "if"):
            raise _expected_body(
                following, else_token, "expected a block or 'if' after 'else'",
            )

        # else if <cond> { .. }: the condition runs up to the next block
        cursor = index + 2
        while cursor < len(children) and not is_group(children[cursor], Delimiter.BRACE):
            cursor += 1
        if cursor >= len(children) or cursor == index + 2:
            raise _expected_body(
                None, following, "expected a condition and a block after 'else if'",
            )
        chain.extend(children[index:cursor + 1])
        index = cursor + 1
    return chain, index


def parse_body(
    children: Sequence[Tree],
    head_index: int,
    construct: ConstructHead,
) -> Tuple[List[Tree], int]:
    """Capture the body that follows the head at *head_index*.

    Returns ``(trees, end)``: the trees that belong after the operand in the
    replacement, and the index just past them.  Prefix constructs consume
    nothing.

    Raises:
        ExpectedBodyError: a required block is missing, or an ``else``
            link is not followed by a block or ``if``.
    """
    start = head_index + 1
    if not construct.kind.takes_body:
        return [], start

    body = children[start] if start < len(children) else None
    if not is_group(body, Delimiter.BRACE):
        raise _expected_body(
            body,
            children[head_index],
            f"expected a block after '{construct.keyword_text}' construct head",
        ).with_hint(f"write e.g. value::({construct.keyword_text}) {{ ... }}")

    trees: List[Tree] = [body]
    end = start + 1
    if construct.kind.takes_else:
        chain, end = _else_chain(children, end)
        trees.extend(chain)
        if chain:
            logger.debug("absorbed else chain of %d trees", len(chain))
    return trees, end
