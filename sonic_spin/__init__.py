"""
sonic_spin – postfix control constructs for token streams.

Rewrites ``value::(construct) { body }`` into the equivalent prefix form
``construct value { body }``, e.g.::

    >>> from sonic_spin import spin
    >>> spin("x::(match) { _ => 0 }")
    'match x { _ => 0 }'

Public API
----------
- :func:`spin`, :func:`expand_macros` – rewrite source text
- :func:`spin_tree`, :func:`expand_tree` – rewrite token trees
- :func:`tokenize`, :func:`render`, :func:`render_compact` – lexing/printing
- :class:`Rewriter`, :class:`RewriteConfig`, :class:`RewriteResult`
- :class:`SpinError` and its subclasses
"""

from .api import expand_macros, expand_tree, spin, spin_tree
from .config import DEFAULT_CONFIG, RewriteConfig
from .constructs import ConstructHead, ConstructKind, parse_head
from .driver import Rewriter, RewriteResult
from .errors import (
    ErrorKind,
    ErrorSeverity,
    ExpectedBodyError,
    ExpectedHeadGroupError,
    LexicalError,
    MalformedHeadError,
    MalformedOperandError,
    RewriteError,
    RewriteLimitExceededError,
    SpinError,
    SpinErrorCodes,
    UnknownConstructError,
)
from .lexer import tokenize
from .tokens import Delimiter, Token, TokenGroup, TokenKind, render, render_compact

__version__ = "0.1.0"

__all__ = [
    "spin",
    "spin_tree",
    "expand_macros",
    "expand_tree",
    "tokenize",
    "render",
    "render_compact",
    "Rewriter",
    "RewriteResult",
    "RewriteConfig",
    "DEFAULT_CONFIG",
    "ConstructHead",
    "ConstructKind",
    "parse_head",
    "Token",
    "TokenGroup",
    "TokenKind",
    "Delimiter",
    "ErrorKind",
    "ErrorSeverity",
    "SpinErrorCodes",
    "SpinError",
    "LexicalError",
    "RewriteError",
    "MalformedOperandError",
    "ExpectedHeadGroupError",
    "UnknownConstructError",
    "MalformedHeadError",
    "ExpectedBodyError",
    "RewriteLimitExceededError",
]
