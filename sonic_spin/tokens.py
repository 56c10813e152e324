"""sonic_spin/tokens.py – Token tree model.

The rewriter never looks at raw characters.  It operates on a tree of
tokens in which every bracketed region of the source has already been
grouped into a :class:`TokenGroup`, exactly like a procedural-macro token
stream.

Design invariants
-----------------
* A :class:`Token` is an immutable leaf (identifier, lifetime, literal or
  punctuation).  Whitespace and comments are not tokens; they are kept as
  the ``leading`` trivia of the token that follows them.
* A :class:`TokenGroup` exclusively owns its ordered ``children``.  The
  tree has no sharing and no cycles, so it can be mutated in place by the
  driver and deep-copied safely.
* ``Delimiter.NONE`` marks both the root of a fragment and *invisible*
  groups.  The rewriter splices every synthesized replacement as one
  invisible group so that it behaves as a single atom for later markers.
  Invisible groups render without delimiters.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import FrozenSet, Iterator, List, Optional, Sequence, Tuple, Union

# ════════════════════════════════════════════════════════════════════════
# §1  Source locations
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SourceLoc:
    """A position in the source fragment (1-based line and column)."""

    file: str = "<unknown>"
    line: int = 0
    col: int = 0
    offset: int = -1

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.col}"


#: Sentinel for tokens synthesised by the rewriter (no source position).
NO_LOC = SourceLoc()


# ════════════════════════════════════════════════════════════════════════
# §2  Tokens and groups
# ════════════════════════════════════════════════════════════════════════


class Delimiter(Enum):
    PAREN = auto()
    BRACE = auto()
    BRACKET = auto()
    NONE = auto()

    @property
    def open(self) -> str:
        return _OPEN[self]

    @property
    def close(self) -> str:
        return _CLOSE[self]


_OPEN = {
    Delimiter.PAREN: "(",
    Delimiter.BRACE: "{",
    Delimiter.BRACKET: "[",
    Delimiter.NONE: "",
}
_CLOSE = {
    Delimiter.PAREN: ")",
    Delimiter.BRACE: "}",
    Delimiter.BRACKET: "]",
    Delimiter.NONE: "",
}


class TokenKind(Enum):
    IDENT = auto()
    LIFETIME = auto()
    LITERAL = auto()
    PUNCT = auto()


#: Reserved words of the host grammar.  Identifiers in this set are still
#: ``TokenKind.IDENT``; use :func:`is_keyword` to test for them.
KEYWORDS: FrozenSet[str] = frozenset({
    "as", "async", "await", "box", "break", "const", "continue", "crate",
    "dyn", "else", "enum", "extern", "false", "fn", "for", "if", "impl",
    "in", "let", "loop", "match", "mod", "move", "mut", "pub", "ref",
    "return", "self", "Self", "static", "struct", "super", "trait", "true",
    "try", "type", "unsafe", "use", "where", "while", "yield",
})


@dataclass(frozen=True)
class Token:
    """An atomic lexical unit."""

    kind: TokenKind
    text: str
    loc: SourceLoc = field(default=NO_LOC, compare=False)
    leading: str = field(default="", compare=False)

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"Token({self.kind.name}, {self.text!r}, {self.loc.line}:{self.loc.col})"


@dataclass
class TokenGroup:
    """A delimited region of the source owning its child trees."""

    delimiter: Delimiter
    children: List["Tree"] = field(default_factory=list)
    loc: SourceLoc = field(default=NO_LOC, compare=False)
    end_loc: SourceLoc = field(default=NO_LOC, compare=False)
    leading: str = field(default="", compare=False)
    close_leading: str = field(default="", compare=False)

    @property
    def is_invisible(self) -> bool:
        return self.delimiter is Delimiter.NONE

    def __len__(self) -> int:
        return len(self.children)

    def __iter__(self) -> Iterator["Tree"]:
        return iter(self.children)

    def __repr__(self) -> str:
        return f"TokenGroup({self.delimiter.name}, {len(self.children)} children)"


Tree = Union[Token, TokenGroup]


# ════════════════════════════════════════════════════════════════════════
# §3  Predicates
# ════════════════════════════════════════════════════════════════════════


def is_punct(tree: Optional[Tree], text: Optional[str] = None) -> bool:
    if not isinstance(tree, Token) or tree.kind is not TokenKind.PUNCT:
        return False
    return text is None or tree.text == text


def is_ident(tree: Optional[Tree], text: Optional[str] = None) -> bool:
    if not isinstance(tree, Token) or tree.kind is not TokenKind.IDENT:
        return False
    return text is None or tree.text == text


def is_keyword(tree: Optional[Tree], text: Optional[str] = None) -> bool:
    if not is_ident(tree) or tree.text not in KEYWORDS:
        return False
    return text is None or tree.text == text


def is_lifetime(tree: Optional[Tree]) -> bool:
    return isinstance(tree, Token) and tree.kind is TokenKind.LIFETIME


def is_group(tree: Optional[Tree], delimiter: Optional[Delimiter] = None) -> bool:
    if not isinstance(tree, TokenGroup):
        return False
    return delimiter is None or tree.delimiter is delimiter


# ════════════════════════════════════════════════════════════════════════
# §4  Construction helpers
# ════════════════════════════════════════════════════════════════════════


def with_leading(tree: Tree, leading: str) -> Tree:
    """Return *tree* with its leading trivia replaced."""
    if tree.leading == leading:
        return tree
    return replace(tree, leading=leading)


def ensure_separated(tree: Tree) -> Tree:
    """Give *tree* a single space of leading trivia if it has none."""
    if tree.leading:
        return tree
    return replace(tree, leading=" ")


def first_loc(trees: Sequence[Tree]) -> SourceLoc:
    for tree in trees:
        if tree.loc.line > 0:
            return tree.loc
    return NO_LOC


def flatten_invisible(group: TokenGroup) -> TokenGroup:
    """Dissolve every invisible group below *group* into its parent, in place.

    The trivia of a dissolved group is prepended to its first child so the
    rendered layout is unchanged.
    """
    # descendants are flattened before their ancestors
    order: List[TokenGroup] = []
    stack = [group]
    while stack:
        node = stack.pop()
        order.append(node)
        stack.extend(c for c in node.children if isinstance(c, TokenGroup))

    for node in reversed(order):
        flat: List[Tree] = []
        for child in node.children:
            if isinstance(child, TokenGroup) and child.is_invisible:
                inner = list(child.children)
                if inner:
                    inner[0] = with_leading(inner[0], child.leading + inner[0].leading)
                flat.extend(inner)
            else:
                flat.append(child)
        node.children = flat
    return group


def iter_tokens(tree: Tree) -> Iterator[Token]:
    """Yield every leaf token of *tree*, depth first, left to right."""
    stack: List[Tree] = [tree]
    while stack:
        node = stack.pop()
        if isinstance(node, Token):
            yield node
        else:
            stack.extend(reversed(node.children))


# ════════════════════════════════════════════════════════════════════════
# §5  Rendering
# ════════════════════════════════════════════════════════════════════════
#
# Chained rewrites nest one group per link, so the walkers below keep an
# explicit stack instead of recursing.


def _is_wordy(ch: str) -> bool:
    return ch.isalnum() or ch in "_'\""


def render(tree: Tree) -> str:
    """Render *tree* back to source text, preserving recorded trivia.

    Tokens that were moved next to each other by a rewrite may have no
    trivia between them; a space is inserted wherever two word-like
    tokens would otherwise fuse (``match`` + ``x`` -> ``matchx``).
    """
    out: List[str] = []

    def emit(leading: str, text: str) -> None:
        if not leading and text and out:
            prev = out[-1]
            if prev and _is_wordy(prev[-1]) and _is_wordy(text[0]):
                leading = " "
        if leading:
            out.append(leading)
        if text:
            out.append(text)

    # (node, closing) pairs; a group is pushed again to emit its close
    stack: List[Tuple[Tree, bool]] = [(tree, False)]
    while stack:
        node, closing = stack.pop()
        if isinstance(node, Token):
            emit(node.leading, node.text)
            continue
        if closing:
            emit(node.close_leading, node.delimiter.close)
            continue
        # the root's own trivia is rendered by whoever embeds it
        emit("" if node is tree else node.leading, node.delimiter.open)
        stack.append((node, True))
        stack.extend((child, False) for child in reversed(node.children))
    return "".join(out)


def render_compact(tree: Tree) -> str:
    """Render *tree* with exactly one space between tokens.

    This canonical form ignores comments and layout, which makes it the
    right thing to compare in tests and to print in debug output.
    """
    parts: List[str] = []
    stack: List[Tuple[Tree, bool]] = [(tree, False)]
    while stack:
        node, closing = stack.pop()
        if isinstance(node, Token):
            parts.append(node.text)
        elif closing:
            if node.delimiter.close:
                parts.append(node.delimiter.close)
        else:
            if node.delimiter.open:
                parts.append(node.delimiter.open)
            stack.append((node, True))
            stack.extend((child, False) for child in reversed(node.children))
    return " ".join(parts)


def dump_tree(tree: Tree, indent: int = 0, show_locations: bool = False) -> str:
    """Indented, one-node-per-line dump of *tree* for debugging."""
    pad = "  " * indent
    if isinstance(tree, Token):
        where = f"  @{tree.loc.line}:{tree.loc.col}" if show_locations else ""
        return f"{pad}{tree.kind.name} {tree.text!r}{where}"
    where = f"  @{tree.loc.line}:{tree.loc.col}" if show_locations else ""
    lines = [f"{pad}GROUP {tree.delimiter.name}{where}"]
    for child in tree.children:
        lines.append(dump_tree(child, indent + 1, show_locations))
    return "\n".join(lines)
