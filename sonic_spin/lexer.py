"""
lexer.py: Token ingestion
==========================

Turns source text into the :class:`~sonic_spin.tokens.TokenGroup` tree the
rewriter consumes.  A Parsimonious PEG grammar recognizes the token classes
and enforces bracket matching; a ``NodeVisitor`` builds the tree directly,
attaching whitespace and comments to the token that follows them.

Usage::

    from sonic_spin.lexer import tokenize

    root = tokenize("let res = 0::(match) { x => x + 2 };")
    root.children[3]        # Token(LITERAL, '0', 1:11)

Depends on:
    - parsimonious (PEG parser)
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import replace
from typing import List, Tuple

from parsimonious.exceptions import IncompleteParseError, ParseError
from parsimonious.grammar import Grammar
from parsimonious.nodes import Node, NodeVisitor

from .errors import LexicalError, SourceSpan, SpinErrorCodes
from .tokens import Delimiter, SourceLoc, Token, TokenGroup, TokenKind, Tree

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  PART 1: TOKEN GRAMMAR (Parsimonious PEG)
# ═══════════════════════════════════════════════════════════════════

TOKEN_GRAMMAR = Grammar(r'''
    # ─────────────────────────────────────────────────────────────
    # Token trees
    # ─────────────────────────────────────────────────────────────

    stream              = trivia tree_trivia*
    tree_trivia         = tree trivia
    tree                = paren_group / brace_group / bracket_group / token

    paren_group         = "(" stream ")"
    brace_group         = "{" stream "}"
    bracket_group       = "[" stream "]"

    # ─────────────────────────────────────────────────────────────
    # Leaf tokens (order matters: chars before lifetimes, raw strings
    # before identifiers)
    # ─────────────────────────────────────────────────────────────

    token               = char_lit / lifetime / raw_string / string_lit
                        / number / ident / punct

    char_lit            = ~r"b?'(?:[^'\\\r\n]|\\(?:x[0-9a-fA-F]{2}|u\{[0-9a-fA-F_]{1,6}\}|[nrt0\\'\"]))'"
    lifetime            = ~r"'(?:r#)?[A-Za-z_][A-Za-z0-9_]*"
    raw_string          = ~r"[bc]?r(#*)\".*?\"\1"s
    string_lit          = ~r"[bc]?\"(?:[^\"\\]|\\.)*\""s
    number              = ~r"[0-9][0-9_]*(?:\.[0-9][0-9_]*)?(?:[eE][+-]?[0-9_]+)?(?:[A-Za-z_][A-Za-z0-9_]*)?"
    ident               = ~r"(?:r#)?[A-Za-z_][A-Za-z0-9_]*"
    punct               = ~r"<<=|>>=|\.\.\.|\.\.=|::|->|=>|==|!=|<=|>=|&&|\|\||\+=|-=|\*=|/=|%=|\^=|&=|\|=|<<|>>|\.\.|[-+*/%^!&|=<>@.,;:#$?~]"

    # ─────────────────────────────────────────────────────────────
    # Trivia
    # ─────────────────────────────────────────────────────────────

    trivia              = ~r"(?:\s+|//[^\n]*|/\*.*?\*/)*"s
''')


# ═══════════════════════════════════════════════════════════════════
#  PART 2: PARSE TREE → TOKEN TREE
# ═══════════════════════════════════════════════════════════════════

class TokenTreeBuilder(NodeVisitor):
    """Transforms the Parsimonious parse tree into a token tree."""

    # let stack exhaustion reach tokenize() instead of a VisitationError
    unwrapped_exceptions = (RecursionError,)

    def __init__(self, source: str, file: str = "<input>"):
        self.source = source
        self.file = file
        self._line_starts = [0]
        for i, ch in enumerate(source):
            if ch == "\n":
                self._line_starts.append(i + 1)

    def loc(self, offset: int) -> SourceLoc:
        line = bisect.bisect_right(self._line_starts, offset)
        col = offset - self._line_starts[line - 1] + 1
        return SourceLoc(file=self.file, line=line, col=col, offset=offset)

    def generic_visit(self, node, visited_children):
        return visited_children

    # ─────────────────────────────────────────────────────────────
    # Streams and groups
    # ─────────────────────────────────────────────────────────────

    def visit_stream(self, node, visited_children) -> Tuple[List[Tree], str]:
        leading, pairs = visited_children
        items: List[Tree] = []
        for tree, trailing in pairs:
            items.append(replace(tree, leading=leading))
            leading = trailing
        return items, leading

    def visit_tree_trivia(self, node, visited_children):
        tree, trivia = visited_children
        return tree, trivia

    def visit_tree(self, node, visited_children):
        return visited_children[0]

    def visit_token(self, node, visited_children):
        return visited_children[0]

    def visit_trivia(self, node, visited_children) -> str:
        return node.text

    def _group(self, delimiter: Delimiter, node: Node, visited_children) -> TokenGroup:
        _, (items, trailing), _ = visited_children
        return TokenGroup(
            delimiter=delimiter,
            children=items,
            loc=self.loc(node.start),
            end_loc=self.loc(node.end - 1),
            close_leading=trailing,
        )

    def visit_paren_group(self, node, visited_children):
        return self._group(Delimiter.PAREN, node, visited_children)

    def visit_brace_group(self, node, visited_children):
        return self._group(Delimiter.BRACE, node, visited_children)

    def visit_bracket_group(self, node, visited_children):
        return self._group(Delimiter.BRACKET, node, visited_children)

    # ─────────────────────────────────────────────────────────────
    # Leaves
    # ─────────────────────────────────────────────────────────────

    def _leaf(self, kind: TokenKind, node: Node) -> Token:
        return Token(kind=kind, text=node.text, loc=self.loc(node.start))

    def visit_char_lit(self, node, visited_children):
        return self._leaf(TokenKind.LITERAL, node)

    def visit_lifetime(self, node, visited_children):
        return self._leaf(TokenKind.LIFETIME, node)

    def visit_raw_string(self, node, visited_children):
        return self._leaf(TokenKind.LITERAL, node)

    def visit_string_lit(self, node, visited_children):
        return self._leaf(TokenKind.LITERAL, node)

    def visit_number(self, node, visited_children):
        return self._leaf(TokenKind.LITERAL, node)

    def visit_ident(self, node, visited_children):
        return self._leaf(TokenKind.IDENT, node)

    def visit_punct(self, node, visited_children):
        return self._leaf(TokenKind.PUNCT, node)


# ═══════════════════════════════════════════════════════════════════
#  PART 3: PUBLIC API
# ═══════════════════════════════════════════════════════════════════

def _lexical_error(builder: TokenTreeBuilder, source: str, pos: int) -> LexicalError:
    """Explain why lexing stopped at *pos*."""
    loc = builder.loc(pos)
    span = SourceSpan(file=loc.file, line=loc.line, column=loc.col)
    ch = source[pos] if pos < len(source) else ""

    if ch and ch in _CLOSERS:
        err = LexicalError(
            f"unexpected closing delimiter {ch!r}",
            code=SpinErrorCodes.UNBALANCED_DELIMITER,
            span=span,
        )
    elif ch and ch in _OPENERS:
        err = LexicalError(
            f"unclosed delimiter {ch!r}",
            code=SpinErrorCodes.UNBALANCED_DELIMITER,
            span=span,
        ).with_hint("every opening delimiter needs a matching closing one")
    elif ch == '"':
        err = LexicalError(
            "unterminated string literal",
            code=SpinErrorCodes.INVALID_CHARACTER,
            span=span,
        )
    else:
        err = LexicalError(
            f"unrecognized character {ch!r}" if ch else "unexpected end of input",
            code=SpinErrorCodes.INVALID_CHARACTER,
            span=span,
        )
    return err.with_source(source)


def _nesting_error(builder: TokenTreeBuilder, source: str) -> LexicalError:
    """Nesting overflow, reported at the first opening bracket."""
    pos = next((i for i, ch in enumerate(source) if ch in _OPENERS), 0)
    loc = builder.loc(pos)
    return LexicalError(
        "brackets are nested too deeply",
        code=SpinErrorCodes.NESTING_TOO_DEEP,
        span=SourceSpan(file=loc.file, line=loc.line, column=loc.col),
    ).with_hint("split the fragment into smaller pieces").with_source(source)


_PAIRS = {"(": ")", "[": "]", "{": "}"}
_OPENERS = "([{"
_CLOSERS = ")]}"


def _failure_offset(source: str, exc: ParseError) -> int:
    """Offset of the first character that keeps the input from lexing.

    Parsimonious reports where the top-level stream stopped, which for an
    unclosed group is the opening delimiter itself.  The real culprit may
    be further inside that group, so walk it group by group.
    """
    pos = exc.pos
    if pos >= len(source) or source[pos] not in _OPENERS:
        return pos

    stream = TOKEN_GRAMMAR["stream"]
    stack: List[int] = []
    i = pos
    while True:
        if i < len(source) and source[i] in _OPENERS:
            stack.append(i)
            i += 1
        i = stream.match(source, pos=i).end
        if i >= len(source):
            return stack[-1] if stack else pos
        ch = source[i]
        if ch in _CLOSERS:
            if not stack or _PAIRS[source[stack[-1]]] != ch:
                return i
            stack.pop()
            i += 1
        elif ch not in _OPENERS:
            return i


def tokenize(source: str, file: str = "<input>") -> TokenGroup:
    """Lex *source* into a token tree rooted at an invisible group.

    Raises:
        LexicalError: on unbalanced delimiters, unrecognized characters or
            brackets nested deeper than the parser can follow.
    """
    builder = TokenTreeBuilder(source, file)
    try:
        node = TOKEN_GRAMMAR.parse(source)
        items, trailing = builder.visit(node)
    except IncompleteParseError as exc:
        raise _lexical_error(builder, source, _failure_offset(source, exc)) from None
    except ParseError as exc:
        raise _lexical_error(builder, source, exc.pos) from None
    except RecursionError:
        raise _nesting_error(builder, source) from None

    root = TokenGroup(
        delimiter=Delimiter.NONE,
        children=items,
        loc=builder.loc(0),
        close_leading=trailing,
    )
    logger.debug("tokenized %s: %d top-level trees", file, len(items))
    return root
