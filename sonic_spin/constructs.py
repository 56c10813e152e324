"""sonic_spin/constructs.py – Construct-head parser.

The parenthesized group after a marker names the prefix construct the
operand is moved into.  This module classifies that group into a closed
set of :class:`ConstructKind` tags and extracts the binding tokens the
prefix form interleaves between keyword and operand.

Recognized heads
----------------
::

    (match)                    match <operand> { body }
    (if)                       if <operand> { body } [else ...]
    (if let <pat> =)           if let <pat> = <operand> { body } [else ...]
    ('l: while)                'l: while <operand> { body }
    ('l: while let <pat> =)    'l: while let <pat> = <operand> { body }
    ('l: for <pat> in)         'l: for <pat> in <operand> { body }
    ('l: loop)                 'l: loop <operand>
    ('l:)                      'l: <operand>
    (unsafe) (try) (box)       unsafe <operand> ...
    (async [move])             async move <operand>
    (& [mut]) (&&)             &mut <operand>
    (*) (!) (-)                * <operand>
    (let <pat> =)              let <pat> = <operand>
    (break ['l]) (return)      break 'l <operand>
    (yield)                    yield <operand>

Labels (``'l:``) are optional wherever they are shown.  Only the first six
rows consume a brace-delimited body after the head; the rest are prefix
operators whose argument is the operand itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import FrozenSet, List, Optional, Sequence, Tuple

from .errors import (
    ExpectedHeadGroupError,
    MalformedHeadError,
    SourceSpan,
    UnknownConstructError,
)
from .tokens import (
    Delimiter,
    Token,
    Tree,
    is_group,
    is_keyword,
    is_lifetime,
    is_punct,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# CONSTRUCT KINDS
# ═══════════════════════════════════════════════════════════════════════════

class ConstructKind(Enum):
    MATCH = auto()
    IF = auto()
    IF_LET = auto()
    WHILE = auto()
    WHILE_LET = auto()
    FOR_IN = auto()
    LOOP = auto()
    BLOCK = auto()
    UNSAFE = auto()
    ASYNC = auto()
    TRY_BLOCK = auto()
    REFERENCE = auto()
    BOX = auto()
    UNARY = auto()
    LET = auto()
    BREAK = auto()
    RETURN = auto()
    YIELD = auto()

    @property
    def takes_body(self) -> bool:
        """Whether a brace-delimited body must follow the head."""
        return self in _BODY_KINDS

    @property
    def takes_else(self) -> bool:
        return self in (ConstructKind.IF, ConstructKind.IF_LET)

    @property
    def allows_label(self) -> bool:
        return self in _LABEL_KINDS


_BODY_KINDS: FrozenSet[ConstructKind] = frozenset({
    ConstructKind.MATCH,
    ConstructKind.IF,
    ConstructKind.IF_LET,
    ConstructKind.WHILE,
    ConstructKind.WHILE_LET,
    ConstructKind.FOR_IN,
})

_LABEL_KINDS: FrozenSet[ConstructKind] = frozenset({
    ConstructKind.WHILE,
    ConstructKind.WHILE_LET,
    ConstructKind.FOR_IN,
    ConstructKind.LOOP,
    ConstructKind.BLOCK,
})

# Single-keyword heads that take nothing else.
_BARE_KEYWORDS = {
    "match": ConstructKind.MATCH,
    "loop": ConstructKind.LOOP,
    "unsafe": ConstructKind.UNSAFE,
    "try": ConstructKind.TRY_BLOCK,
    "box": ConstructKind.BOX,
    "return": ConstructKind.RETURN,
    "yield": ConstructKind.YIELD,
}

_UNARY_OPS: FrozenSet[str] = frozenset({"*", "!", "-"})


# ═══════════════════════════════════════════════════════════════════════════
# CONSTRUCT HEAD
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ConstructHead:
    """A classified construct head.

    ``kind`` is the tag; the other fields hold the tokens that tag needs
    and are empty otherwise:

    * ``label`` – the lifetime and colon of a labelled loop or block
    * ``keywords`` – the construct keyword(s), e.g. ``while let`` or ``&mut``
    * ``pattern`` – the binding pattern of ``for``/``let``/``if let``/``while let``
    * ``link`` – the token joining pattern and operand (``in`` or ``=``)
    * ``argument`` – trailing data of the keyword, e.g. the label of ``break``
    """

    kind: ConstructKind
    keywords: Tuple[Token, ...]
    label: Tuple[Tree, ...] = ()
    pattern: Tuple[Tree, ...] = ()
    link: Optional[Token] = None
    argument: Tuple[Tree, ...] = ()

    def prefix(self) -> List[Tree]:
        """Tokens that precede the operand, in source order."""
        parts: List[Tree] = list(self.label)
        parts.extend(self.keywords)
        parts.extend(self.argument)
        parts.extend(self.pattern)
        if self.link is not None:
            parts.append(self.link)
        return parts

    @property
    def keyword_text(self) -> str:
        return " ".join(tok.text for tok in self.keywords)

    # ── factories ───────────────────────────────────────────────────────

    @staticmethod
    def simple(kind: ConstructKind, keyword: Token, label: Sequence[Tree] = ()) -> "ConstructHead":
        return ConstructHead(kind=kind, keywords=(keyword,), label=tuple(label))

    @staticmethod
    def binding(
        kind: ConstructKind,
        keywords: Sequence[Token],
        pattern: Sequence[Tree],
        link: Token,
        label: Sequence[Tree] = (),
    ) -> "ConstructHead":
        return ConstructHead(
            kind=kind,
            keywords=tuple(keywords),
            label=tuple(label),
            pattern=tuple(pattern),
            link=link,
        )

    @staticmethod
    def block(label: Sequence[Tree]) -> "ConstructHead":
        return ConstructHead(kind=ConstructKind.BLOCK, keywords=(), label=tuple(label))


# ═══════════════════════════════════════════════════════════════════════════
# PARSER
# ═══════════════════════════════════════════════════════════════════════════

def _describe(tree: Tree) -> str:
    if isinstance(tree, Token):
        return tree.text
    return f"{tree.delimiter.open}...{tree.delimiter.close}"


def _unexpected(tree: Tree, what: str) -> MalformedHeadError:
    return MalformedHeadError(
        f"unexpected {_describe(tree)!r} in {what} head",
        span=SourceSpan.from_tree(tree),
    )


def _expect_end(rest: Sequence[Tree], index: int, what: str) -> None:
    if index < len(rest):
        raise _unexpected(rest[index], what)


def _binding(
    kind: ConstructKind,
    keywords: Sequence[Token],
    rest: Sequence[Tree],
    link_text: str,
    label: Sequence[Tree],
) -> ConstructHead:
    """Parse ``<keywords> <pattern> <link>`` where *rest* follows the keywords."""
    what = " ".join(tok.text for tok in keywords)
    if not rest:
        raise MalformedHeadError(
            f"expected a pattern after {what!r}",
            span=SourceSpan.from_tree(keywords[-1]),
        )
    link = rest[-1]
    if not (is_keyword(link, link_text) or is_punct(link, link_text)):
        raise MalformedHeadError(
            f"expected {link_text!r} at the end of the {what!r} head",
            span=SourceSpan.from_tree(link),
        ).with_hint(f"write it as ({what} <pattern> {link_text})")
    pattern = rest[:-1]
    if not pattern:
        raise MalformedHeadError(
            f"expected a pattern between {what!r} and {link_text!r}",
            span=SourceSpan.from_tree(link),
        )
    return ConstructHead.binding(kind, keywords, pattern, link, label)


def parse_head(head: Optional[Tree], marker: Token) -> ConstructHead:
    """Classify the construct head *head* that follows *marker*.

    Raises:
        ExpectedHeadGroupError: *head* is missing or not a parenthesis group.
        UnknownConstructError: the leading keyword is not recognized.
        MalformedHeadError: the keyword is known but its bindings are not.
    """
    if not is_group(head, Delimiter.PAREN):
        culprit = head if head is not None else marker
        raise ExpectedHeadGroupError(
            "expected a parenthesized construct head after the postfix marker",
            span=SourceSpan.from_tree(culprit),
        ).with_hint("write e.g. value::(match) { ... }")

    items = head.children
    if not items:
        raise UnknownConstructError(
            "empty construct head",
            keyword="",
            span=SourceSpan.from_tree(head),
        )

    # ── optional label ──────────────────────────────────────────────────
    label: Tuple[Tree, ...] = ()
    rest: Sequence[Tree] = items
    if is_lifetime(items[0]):
        if len(items) < 2 or not is_punct(items[1], ":"):
            raise UnknownConstructError(
                f"unknown construct {items[0].text!r}",
                keyword=items[0].text,
                span=SourceSpan.from_tree(items[0]),
            ).with_hint("a label must be followed by ':'")
        label = (items[0], items[1])
        rest = items[2:]
        if not rest:
            return ConstructHead.block(label)

    first = rest[0]
    word = first.text if isinstance(first, Token) else _describe(first)
    construct = _classify(first, rest, label)
    if construct is None:
        raise UnknownConstructError(
            f"unknown construct {word!r}",
            keyword=word,
            span=SourceSpan.from_tree(first),
        )
    if label and not construct.kind.allows_label:
        raise UnknownConstructError(
            f"expected 'loop', 'while', 'for' or a block after label, found {word!r}",
            keyword=word,
            span=SourceSpan.from_tree(first),
        )
    logger.debug("classified construct head %r as %s", word, construct.kind.name)
    return construct


def _classify(
    first: Tree,
    rest: Sequence[Tree],
    label: Tuple[Tree, ...],
) -> Optional[ConstructHead]:
    if not isinstance(first, Token):
        return None

    text = first.text

    if is_keyword(first) and text in _BARE_KEYWORDS:
        _expect_end(rest, 1, text)
        return ConstructHead.simple(_BARE_KEYWORDS[text], first, label)

    if is_keyword(first, "if") or is_keyword(first, "while"):
        plain, with_let = (
            (ConstructKind.IF, ConstructKind.IF_LET) if text == "if"
            else (ConstructKind.WHILE, ConstructKind.WHILE_LET)
        )
        if len(rest) == 1:
            return ConstructHead.simple(plain, first, label)
        if is_keyword(rest[1], "let"):
            return _binding(with_let, (first, rest[1]), rest[2:], "=", label)
        raise _unexpected(rest[1], text).with_hint(
            f"the condition is the operand; write ({text}) or ({text} let <pattern> =)"
        )

    if is_keyword(first, "for"):
        return _binding(ConstructKind.FOR_IN, (first,), rest[1:], "in", label)

    if is_keyword(first, "let"):
        return _binding(ConstructKind.LET, (first,), rest[1:], "=", label)

    if is_keyword(first, "async"):
        keywords = [first]
        if len(rest) > 1 and is_keyword(rest[1], "move"):
            keywords.append(rest[1])
        _expect_end(rest, len(keywords), "async")
        return ConstructHead(kind=ConstructKind.ASYNC, keywords=tuple(keywords), label=label)

    if is_keyword(first, "break"):
        argument: Tuple[Tree, ...] = ()
        if len(rest) > 1 and is_lifetime(rest[1]):
            argument = (rest[1],)
        _expect_end(rest, 1 + len(argument), "break")
        return ConstructHead(
            kind=ConstructKind.BREAK, keywords=(first,), label=label, argument=argument,
        )

    if is_punct(first, "&") or is_punct(first, "&&"):
        keywords = [first]
        if len(rest) > 1 and is_keyword(rest[1], "mut"):
            keywords.append(rest[1])
        _expect_end(rest, len(keywords), "reference")
        return ConstructHead(kind=ConstructKind.REFERENCE, keywords=tuple(keywords), label=label)

    if is_punct(first) and text in _UNARY_OPS:
        _expect_end(rest, 1, "unary")
        return ConstructHead.simple(ConstructKind.UNARY, first, label)

    return None
