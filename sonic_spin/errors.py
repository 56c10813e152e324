# sonic_spin/errors.py
"""
Error Types and Reporting for the postfix-construct rewriter

This module provides the diagnostic infrastructure shared by the lexer and
the rewriting engine.  Every failure is detected at the point of parsing,
raised immediately, and carries enough structure (error code, kind, span,
message) for the host to report it at the original source position.

Architecture Overview:
──────────────────────
┌─────────────────────────────────────────────────────────────────────────────┐
│                          Error Hierarchy                                    │
├─────────────────────────────────────────────────────────────────────────────┤
│  SpinError (base)                                                           │
│  ├── LexicalError                - Source text cannot be tokenized          │
│  └── RewriteError                - A marker occurrence cannot be rewritten  │
│      ├── MalformedOperandError   - No expression before the marker          │
│      ├── ExpectedHeadGroupError  - Marker not followed by ( ... )           │
│      ├── UnknownConstructError   - Head keyword not recognized              │
│      ├── MalformedHeadError      - Recognized keyword, broken bindings      │
│      ├── ExpectedBodyError       - Head not followed by { ... }             │
│      └── RewriteLimitExceededError - Rewriting did not converge             │
└─────────────────────────────────────────────────────────────────────────────┘

Error Codes:
────────────
Each error has a unique code following the pattern SPIN-XXXX where XXXX is
a 4-digit number in ranges:
  - 0001-0999: Lexical errors
  - 1000-1999: Rewrite errors
  - 9000-9999: Internal errors

Example Usage:
──────────────
    from sonic_spin.errors import RewriteError

    try:
        output = spin(source)
    except RewriteError as exc:
        print(exc.to_gcc_format())
        print(exc.kind, exc.span.line, exc.span.column)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto, unique
from typing import Any, Dict, List, Optional


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR SEVERITY AND CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════════

@unique
class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""

    # Aborts the whole rewrite
    ERROR = "error"

    # Tolerated occurrence, left untouched
    WARNING = "warning"

    # Informational messages
    NOTE = "note"


@unique
class ErrorPhase(Enum):
    """Phase where the error occurred."""

    LEXICAL = "lexical"        # Tokenization
    REWRITE = "rewrite"        # Marker scanning, parsing and synthesis
    INTERNAL = "internal"      # Rewriter internals


@unique
class ErrorKind(Enum):
    """
    The kind of failure, independent of the numeric code.

    The rewrite kinds correspond one-to-one to the exception subclasses
    below; callers that only care about *why* a rewrite failed should match
    on this rather than on the exception type.
    """

    # Lexical
    UNBALANCED_DELIMITER = auto()
    INVALID_CHARACTER = auto()
    NESTING_TOO_DEEP = auto()

    # Rewrite
    MALFORMED_OPERAND = auto()
    EXPECTED_HEAD_GROUP = auto()
    UNKNOWN_CONSTRUCT = auto()
    MALFORMED_HEAD = auto()
    EXPECTED_BODY = auto()
    REWRITE_LIMIT_EXCEEDED = auto()

    # Internal
    INTERNAL_ERROR = auto()


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CODES
# ═══════════════════════════════════════════════════════════════════════════════

class ErrorCode:
    """
    Structured error code of the form ``SPIN-NNNN``.

    Ranges:
      - 0001-0999: Lexical errors
      - 1000-1999: Rewrite errors
      - 9000-9999: Internal errors
    """

    __slots__ = ("prefix", "number", "kind", "phase", "default_severity")

    def __init__(
        self,
        prefix: str,
        number: int,
        kind: ErrorKind,
        phase: ErrorPhase,
        default_severity: ErrorSeverity = ErrorSeverity.ERROR,
    ) -> None:
        self.prefix = prefix
        self.number = number
        self.kind = kind
        self.phase = phase
        self.default_severity = default_severity

    @property
    def code(self) -> str:
        """Get the full error code string."""
        return f"{self.prefix}-{self.number:04d}"

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code}, {self.kind.name})"

    def __hash__(self) -> int:
        return hash((self.prefix, self.number))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.prefix == other.prefix and self.number == other.number
        if isinstance(other, str):
            return self.code == other
        return False


class SpinErrorCodes:
    """Predefined error codes."""

    # ═══════════════════════════════════════════════════════════════════════════
    # LEXICAL ERRORS (0001-0999)
    # ═══════════════════════════════════════════════════════════════════════════

    INVALID_CHARACTER = ErrorCode(
        "SPIN", 1, ErrorKind.INVALID_CHARACTER, ErrorPhase.LEXICAL
    )
    UNBALANCED_DELIMITER = ErrorCode(
        "SPIN", 2, ErrorKind.UNBALANCED_DELIMITER, ErrorPhase.LEXICAL
    )
    NESTING_TOO_DEEP = ErrorCode(
        "SPIN", 3, ErrorKind.NESTING_TOO_DEEP, ErrorPhase.LEXICAL
    )

    # ═══════════════════════════════════════════════════════════════════════════
    # REWRITE ERRORS (1000-1999)
    # ═══════════════════════════════════════════════════════════════════════════

    MALFORMED_OPERAND = ErrorCode(
        "SPIN", 1000, ErrorKind.MALFORMED_OPERAND, ErrorPhase.REWRITE
    )
    EXPECTED_HEAD_GROUP = ErrorCode(
        "SPIN", 1001, ErrorKind.EXPECTED_HEAD_GROUP, ErrorPhase.REWRITE
    )
    UNKNOWN_CONSTRUCT = ErrorCode(
        "SPIN", 1002, ErrorKind.UNKNOWN_CONSTRUCT, ErrorPhase.REWRITE
    )
    MALFORMED_HEAD = ErrorCode(
        "SPIN", 1003, ErrorKind.MALFORMED_HEAD, ErrorPhase.REWRITE
    )
    EXPECTED_BODY = ErrorCode(
        "SPIN", 1004, ErrorKind.EXPECTED_BODY, ErrorPhase.REWRITE
    )
    REWRITE_LIMIT_EXCEEDED = ErrorCode(
        "SPIN", 1005, ErrorKind.REWRITE_LIMIT_EXCEEDED, ErrorPhase.REWRITE
    )

    # ═══════════════════════════════════════════════════════════════════════════
    # INTERNAL ERRORS (9000-9999)
    # ═══════════════════════════════════════════════════════════════════════════

    INTERNAL_ERROR = ErrorCode(
        "SPIN", 9000, ErrorKind.INTERNAL_ERROR, ErrorPhase.INTERNAL
    )


# ═══════════════════════════════════════════════════════════════════════════════
# SOURCE LOCATION TYPES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SourceSpan:
    """
    A span of source code with start and end positions.

    Lines and columns are 1-based; a zero line means "unknown".
    """

    file: str = ""
    line: int = 0
    column: int = 0
    end_line: int = 0
    end_column: int = 0

    def __post_init__(self) -> None:
        # Normalize: if end not specified, use start
        if self.end_line == 0:
            object.__setattr__(self, "end_line", self.line)
        if self.end_column == 0:
            object.__setattr__(self, "end_column", self.column)

    @classmethod
    def from_tree(cls, tree: Any) -> "SourceSpan":
        """Create a SourceSpan from a token or token group.

        Tokens span their own text; groups span from the opening delimiter
        to the position of their closing delimiter when it is known.
        """
        loc = getattr(tree, "loc", None)
        if loc is None or loc.line == 0:
            return cls(file=getattr(loc, "file", "") or "")

        end_loc = getattr(tree, "end_loc", None)
        if end_loc is not None and end_loc.line > 0:
            return cls(
                file=loc.file,
                line=loc.line,
                column=loc.col,
                end_line=end_loc.line,
                end_column=end_loc.col + 1,
            )

        text = getattr(tree, "text", "")
        if "\n" in text:
            lines = text.split("\n")
            return cls(
                file=loc.file,
                line=loc.line,
                column=loc.col,
                end_line=loc.line + len(lines) - 1,
                end_column=len(lines[-1]) + 1,
            )
        return cls(
            file=loc.file,
            line=loc.line,
            column=loc.col,
            end_line=loc.line,
            end_column=loc.col + max(1, len(text)),
        )

    def __str__(self) -> str:
        if not self.file and self.line == 0:
            return "<unknown location>"

        parts = []
        if self.file:
            parts.append(self.file)
        if self.line > 0:
            parts.append(str(self.line))
            if self.column > 0:
                parts.append(str(self.column))

        return ":".join(parts)


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR MESSAGE FORMATTING
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class ErrorNote:
    """Additional note attached to an error."""

    message: str
    span: Optional[SourceSpan] = None
    label: str = ""  # e.g., "note", "help"

    def __str__(self) -> str:
        prefix = f"{self.label}: " if self.label else ""
        if self.span:
            return f"{self.span}: {prefix}{self.message}"
        return f"{prefix}{self.message}"


@dataclass
class ErrorMessage:
    """
    A complete error message with all context.

    This is the internal representation of an error before it is printed
    or serialized.
    """

    code: ErrorCode
    message: str
    span: SourceSpan = field(default_factory=SourceSpan)
    severity: Optional[ErrorSeverity] = None  # None means use code's default
    notes: List[ErrorNote] = field(default_factory=list)
    hint: str = ""
    source_line: str = ""  # The actual source code line, if available

    def __post_init__(self) -> None:
        if self.severity is None:
            self.severity = self.code.default_severity

    @property
    def kind(self) -> ErrorKind:
        return self.code.kind

    def add_note(
        self,
        message: str,
        span: Optional[SourceSpan] = None,
        label: str = "note",
    ) -> "ErrorMessage":
        """Add a note to this error message."""
        self.notes.append(ErrorNote(message=message, span=span, label=label))
        return self

    def with_hint(self, hint: str) -> "ErrorMessage":
        """Add a hint to this error message."""
        self.hint = hint
        return self

    def with_source(self, line: str) -> "ErrorMessage":
        """Add the source line for display."""
        self.source_line = line
        return self

    def to_gcc_format(self) -> str:
        """Format as a GCC-style error message."""
        severity = self.severity.value if self.severity else "error"
        main = f"{self.span}: {severity}: {self.message} [{self.code}]"

        lines = [main]

        # Add source line with caret if available
        if self.source_line:
            lines.append(f"    {self.source_line}")
            if self.span.column > 0:
                caret_pos = self.span.column - 1
                if self.span.end_line == self.span.line:
                    caret_len = max(1, self.span.end_column - self.span.column)
                else:
                    caret_len = max(1, len(self.source_line) - caret_pos)
                lines.append(f"    {' ' * caret_pos}{'^' * caret_len}")

        for note in self.notes:
            lines.append(str(note))

        if self.hint:
            lines.append(f"hint: {self.hint}")

        return "\n".join(lines)

    def to_json(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "code": self.code.code,
            "kind": self.code.kind.name,
            "message": self.message,
            "severity": self.severity.value if self.severity else "error",
            "location": {
                "file": self.span.file,
                "line": self.span.line,
                "column": self.span.column,
                "end_line": self.span.end_line,
                "end_column": self.span.end_column,
            },
            "phase": self.code.phase.value,
            "notes": [
                {
                    "message": note.message,
                    "label": note.label,
                    "location": {
                        "file": note.span.file,
                        "line": note.span.line,
                        "column": note.span.column,
                    } if note.span else None,
                }
                for note in self.notes
            ],
            "hint": self.hint,
        }

    def __str__(self) -> str:
        return self.to_gcc_format()


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTION CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class SpinError(Exception):
    """
    Base exception for all rewriter errors.

    This exception carries structured error information that can be
    pretty-printed or serialized.
    """

    default_code: ErrorCode = SpinErrorCodes.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        span: Optional[SourceSpan] = None,
        severity: Optional[ErrorSeverity] = None,
        notes: Optional[List[ErrorNote]] = None,
        hint: str = "",
    ) -> None:
        super().__init__(message)
        self.error_message = ErrorMessage(
            code=code or self.default_code,
            message=message,
            span=span or SourceSpan(),
            severity=severity,
            notes=notes or [],
            hint=hint,
        )

    @property
    def code(self) -> ErrorCode:
        return self.error_message.code

    @property
    def kind(self) -> ErrorKind:
        return self.error_message.code.kind

    @property
    def span(self) -> SourceSpan:
        return self.error_message.span

    @property
    def message(self) -> str:
        return self.error_message.message

    @property
    def severity(self) -> ErrorSeverity:
        return self.error_message.severity or ErrorSeverity.ERROR

    def add_note(
        self,
        message: str,
        span: Optional[SourceSpan] = None,
        label: str = "note",
    ) -> "SpinError":
        """Add a note to this error."""
        self.error_message.add_note(message, span, label)
        return self

    def with_hint(self, hint: str) -> "SpinError":
        """Add a hint to this error."""
        self.error_message.with_hint(hint)
        return self

    def with_source(self, source: str) -> "SpinError":
        """Attach the offending line of *source* for caret display."""
        line = self.span.line
        if line > 0:
            lines = source.splitlines()
            if line <= len(lines):
                self.error_message.with_source(lines[line - 1])
        return self

    def to_gcc_format(self) -> str:
        """Format as a GCC-style error message."""
        return self.error_message.to_gcc_format()

    def to_json(self) -> Dict[str, Any]:
        return self.error_message.to_json()

    def __str__(self) -> str:
        return self.to_gcc_format()


# ───────────────────────────────────────────────────────────────────────────────
# LEXICAL ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class LexicalError(SpinError):
    """Error during tokenization."""

    default_code = SpinErrorCodes.INVALID_CHARACTER


# ───────────────────────────────────────────────────────────────────────────────
# REWRITE ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class RewriteError(SpinError):
    """Error while resolving a postfix marker occurrence."""

    default_code = SpinErrorCodes.INTERNAL_ERROR


class MalformedOperandError(RewriteError):
    """No valid expression was found to the left of the marker."""

    default_code = SpinErrorCodes.MALFORMED_OPERAND


class ExpectedHeadGroupError(RewriteError):
    """The marker is not followed by a parenthesized construct head."""

    default_code = SpinErrorCodes.EXPECTED_HEAD_GROUP


class UnknownConstructError(RewriteError):
    """The construct head starts with an unrecognized keyword."""

    default_code = SpinErrorCodes.UNKNOWN_CONSTRUCT

    def __init__(self, message: str, keyword: str = "", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.keyword = keyword


class MalformedHeadError(RewriteError):
    """The construct keyword is known but its bindings are ill-formed."""

    default_code = SpinErrorCodes.MALFORMED_HEAD


class ExpectedBodyError(RewriteError):
    """A brace-delimited body was required but not found."""

    default_code = SpinErrorCodes.EXPECTED_BODY


class RewriteLimitExceededError(RewriteError):
    """Rewriting did not reach a fixpoint within the configured bounds."""

    default_code = SpinErrorCodes.REWRITE_LIMIT_EXCEEDED

    def __init__(self, message: str, limit: int = 0, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.limit = limit
