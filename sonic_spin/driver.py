"""sonic_spin/driver.py – Rewrite driver.

Resolves every postfix-marker occurrence in a token tree.

Algorithm
---------
Within one sibling sequence the driver scans left to right.  For each
marker it extracts the operand (backward scan), parses the construct head
and body (forward), synthesizes the prefix form and splices it back as one
invisible group at the operand's start.  Scanning resumes right after the
spliced group, so a following marker on the same level sees the
replacement as its operand and chains left to right::

    x::(match) {A}::(match) {B}
      -> [match x {A}]::(match) {B}
      -> match ([match x {A}]) {B}

When a sequence holds no more markers, the driver descends into each child
group, keeping an explicit stack since chains nest one group per link.
This covers bodies, parenthesized sub-expressions and the operands moved
into replacements.  A pass is repeated until it performs no
rewrites.  Every rewrite consumes exactly one marker, so the marker count
must shrink by the number of rewrites per pass; together with the
``max_passes`` and ``max_rewrites`` bounds this guarantees termination.

An occurrence left untouched in tolerate mode bounds the operand scan of the
markers after it, so it is never pulled into a later operand.

Failure is atomic.  The driver works on a deep copy of the input tree and
raises before returning any of it, unless ``tolerate_malformed`` is set, in
which case malformed occurrences are left as written and reported as
warnings on the :class:`RewriteResult`.
"""

from __future__ import annotations

import copy
import logging
import sys
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set, Tuple

from .body import parse_body
from .config import DEFAULT_CONFIG, RewriteConfig
from .constructs import ConstructHead, parse_head
from .errors import (
    ErrorSeverity,
    RewriteError,
    RewriteLimitExceededError,
    SourceSpan,
    SpinError,
)
from .operand import extract_operand
from .scanner import count_markers, find_marker
from .synth import synthesize
from .tokens import (
    Delimiter,
    Token,
    TokenGroup,
    Tree,
    flatten_invisible,
    is_group,
    render_compact,
)

logger = logging.getLogger(__name__)


@dataclass
class Occurrence:
    """One resolved marker occurrence within a sibling sequence.

    ``children[start:end]`` is replaced; ``marker`` indexes the ``::``.
    """

    start: int
    marker: int
    end: int
    operand: List[Tree]
    head: ConstructHead
    tail: List[Tree]


@dataclass
class RewriteResult:
    """Outcome of :meth:`Rewriter.try_rewrite`."""

    tree: Optional[TokenGroup] = None
    error: Optional[SpinError] = None
    rewrites: int = 0
    passes: int = 0
    warnings: List[SpinError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


def resolve_occurrence(
    children: Sequence[Tree],
    marker: int,
    floor: int = 0,
) -> Occurrence:
    """Extract, classify and capture the occurrence whose marker is at *marker*.

    The operand scan stops at *floor*.  Raises the :class:`RewriteError`
    subclass describing the first problem, with a note pointing at the
    marker when the problem lies elsewhere.
    """
    marker_token = children[marker]
    assert isinstance(marker_token, Token)
    head_tree = children[marker + 1] if marker + 1 < len(children) else None
    try:
        start, operand = extract_operand(children, marker, floor)
        head = parse_head(head_tree, marker_token)
        tail, end = parse_body(children, marker + 1, head)
    except RewriteError as exc:
        marker_span = SourceSpan.from_tree(marker_token)
        if exc.span != marker_span:
            exc.add_note("postfix construct starts here", span=marker_span)
        raise
    return Occurrence(start=start, marker=marker, end=end, operand=operand, head=head, tail=tail)


def _skip_untouched(children: Sequence[Tree], marker: int) -> int:
    """Index just past a malformed occurrence left in place at *marker*."""
    end = marker + 1
    if is_group(children[end] if end < len(children) else None, Delimiter.PAREN):
        end += 1
        if is_group(children[end] if end < len(children) else None, Delimiter.BRACE):
            end += 1
    return end


class Rewriter:
    """Rewrites every postfix-marker occurrence of a token tree.

    Usage::

        rewriter = Rewriter(RewriteConfig(max_passes=4))
        tree = rewriter.rewrite(tokenize(source))
    """

    def __init__(self, config: Optional[RewriteConfig] = None) -> None:
        self._config = config or DEFAULT_CONFIG
        for problem in self._config.validate():
            logger.warning("RewriteConfig: %s", problem)
        self._rewrites = 0
        self._warnings: List[SpinError] = []
        self._seen: Set[Tuple[str, int, int, str]] = set()

    @property
    def config(self) -> RewriteConfig:
        return self._config

    # ── public API ──────────────────────────────────────────────────────

    def rewrite(self, tree: TokenGroup) -> TokenGroup:
        """Return a rewritten copy of *tree*.  *tree* itself is not modified.

        Raises:
            RewriteError: on the first malformed occurrence, or when the
                rewrite does not converge within the configured bounds.
        """
        result = self._run(tree)
        assert result.tree is not None
        return result.tree

    def try_rewrite(self, tree: TokenGroup) -> RewriteResult:
        """Like :meth:`rewrite`, but report failure on the result."""
        try:
            return self._run(tree)
        except SpinError as exc:
            logger.debug("rewrite failed: %s", exc.message)
            return RewriteResult(
                error=exc,
                rewrites=self._rewrites,
                warnings=list(self._warnings),
            )

    # ── fixpoint loop ───────────────────────────────────────────────────

    def _run(self, tree: TokenGroup) -> RewriteResult:
        self._rewrites = 0
        self._warnings = []
        self._seen = set()
        try:
            return self._fixpoint(tree)
        except RecursionError:
            raise RewriteLimitExceededError(
                "token tree is nested too deeply to rewrite",
                limit=sys.getrecursionlimit(),
                span=SourceSpan.from_tree(tree),
            ) from None

    def _fixpoint(self, tree: TokenGroup) -> RewriteResult:
        work = copy.deepcopy(tree)
        markers = count_markers(work)
        passes = 0
        logger.debug("starting rewrite: %d markers", markers)

        while True:
            if passes >= self._config.max_passes:
                raise RewriteLimitExceededError(
                    f"rewrite did not converge after {passes} passes",
                    limit=self._config.max_passes,
                    span=SourceSpan.from_tree(work),
                )
            passes += 1
            done = self._rewrite_group(work)
            logger.debug("pass %d: %d rewrites", passes, done)
            if done == 0:
                break

            remaining = count_markers(work)
            if remaining != markers - done:
                raise RewriteLimitExceededError(
                    f"marker count went from {markers} to {remaining} "
                    f"after {done} rewrites",
                    limit=markers,
                    span=SourceSpan.from_tree(work),
                )
            markers = remaining
            if markers == 0:
                break

        if not self._config.keep_invisible_groups:
            flatten_invisible(work)

        logger.info(
            "rewrote %d occurrences in %d passes (%d tolerated)",
            self._rewrites, passes, len(self._warnings),
        )
        return RewriteResult(
            tree=work,
            rewrites=self._rewrites,
            passes=passes,
            warnings=list(self._warnings),
        )

    # ── one pass ────────────────────────────────────────────────────────

    def _count(self, span: SourceSpan) -> None:
        self._rewrites += 1
        if self._rewrites > self._config.max_rewrites:
            raise RewriteLimitExceededError(
                f"more than {self._config.max_rewrites} rewrites",
                limit=self._config.max_rewrites,
                span=span,
            )

    def _tolerate(self, exc: RewriteError) -> None:
        key = (exc.code.code, exc.span.line, exc.span.column, exc.message)
        if key in self._seen:
            return
        self._seen.add(key)
        exc.error_message.severity = ErrorSeverity.WARNING
        logger.warning("leaving malformed occurrence untouched: %s", exc.message)
        self._warnings.append(exc)

    def _rewrite_group(self, group: TokenGroup) -> int:
        """Resolve all occurrences in *group* and below; return the count."""
        done = 0
        stack = [group]
        while stack:
            node = stack.pop()
            done += self._rewrite_sequence(node.children)
            stack.extend(reversed([c for c in node.children if isinstance(c, TokenGroup)]))
        return done

    def _rewrite_sequence(self, children: List[Tree]) -> int:
        done = 0
        index = 0
        floor = 0
        while True:
            marker = find_marker(children, index)
            if marker is None:
                return done
            try:
                occurrence = resolve_occurrence(children, marker, floor)
            except RewriteError as exc:
                if not self._config.tolerate_malformed:
                    raise
                self._tolerate(exc)
                floor = _skip_untouched(children, marker)
                index = marker + 1
                continue

            self._count(SourceSpan.from_tree(children[marker]))
            replacement = synthesize(
                occurrence.operand, occurrence.head, occurrence.tail, self._config,
            )
            children[occurrence.start:occurrence.end] = [replacement]
            done += 1
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(
                    "%s: %s", occurrence.head.kind.name, render_compact(replacement),
                )
            index = occurrence.start + 1
