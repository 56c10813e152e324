"""sonic_spin/api.py – Text-level entry points.

Two ways to run the rewriter on source text:

* :func:`spin` rewrites a whole fragment, as if all of it were the input
  of one macro invocation.
* :func:`expand_macros` leaves the surrounding program alone and only
  rewrites the bodies of ``sonic_spin!(...)`` invocations, replacing each
  invocation with its expansion.  Invocations nested inside another
  invocation are expanded first.

Both re-render the result with the original layout and comments kept
wherever the rewrite did not move tokens.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .config import DEFAULT_CONFIG, RewriteConfig
from .driver import Rewriter
from .errors import SpinError
from .lexer import tokenize
from .tokens import (
    Delimiter,
    TokenGroup,
    Tree,
    flatten_invisible,
    is_group,
    is_ident,
    is_punct,
    render,
)

logger = logging.getLogger(__name__)


def spin_tree(tree: TokenGroup, config: Optional[RewriteConfig] = None) -> TokenGroup:
    """Rewrite every occurrence in *tree*; return a new tree."""
    return Rewriter(config).rewrite(tree)


def spin(
    source: str,
    file: str = "<input>",
    config: Optional[RewriteConfig] = None,
) -> str:
    """Rewrite every postfix-marker occurrence in *source*.

    Raises:
        SpinError: with the offending source line attached.
    """
    try:
        return render(spin_tree(tokenize(source, file=file), config))
    except SpinError as exc:
        exc.with_source(source)
        raise


# ────────────────────────────────────────────────────────────────────────
# Macro invocations
# ────────────────────────────────────────────────────────────────────────

def _is_invocation(children: List[Tree], index: int, macro: str) -> bool:
    return (
        index + 2 < len(children)
        and is_ident(children[index], macro)
        and is_punct(children[index + 1], "!")
        and is_group(children[index + 2])
        and not children[index + 2].is_invisible
    )


def _expand_children(
    group: TokenGroup,
    macro: str,
    rewriter: Rewriter,
    warnings: List[SpinError],
) -> int:
    children = group.children
    expanded = 0
    index = 0
    while index < len(children):
        child = children[index]
        if _is_invocation(children, index, macro):
            args = children[index + 2]
            expanded += _expand_children(args, macro, rewriter, warnings)
            body = TokenGroup(
                delimiter=Delimiter.NONE,
                children=args.children,
                loc=args.loc,
                end_loc=args.end_loc,
                close_leading=args.close_leading,
            )
            result = rewriter.try_rewrite(body)
            if result.error is not None:
                raise result.error
            warnings.extend(result.warnings)
            logger.debug("expanded %s! at %s", macro, child.loc)
            children[index:index + 3] = [
                TokenGroup(
                    delimiter=Delimiter.NONE,
                    children=result.tree.children,
                    loc=child.loc,
                    leading=child.leading,
                )
            ]
            expanded += 1
        elif isinstance(child, TokenGroup):
            expanded += _expand_children(child, macro, rewriter, warnings)
        index += 1
    return expanded


def expand_tree(
    tree: TokenGroup,
    macro: Optional[str] = None,
    config: Optional[RewriteConfig] = None,
    warnings: Optional[List[SpinError]] = None,
) -> TokenGroup:
    """Expand every ``<macro>!(...)`` invocation in *tree*, in place.

    Occurrences tolerated under ``config.tolerate_malformed`` are appended
    to *warnings* when given.  Returns *tree*.
    """
    config = config or DEFAULT_CONFIG
    macro = macro or config.macro_name
    expanded = _expand_children(
        tree, macro, Rewriter(config), warnings if warnings is not None else [],
    )
    if not config.keep_invisible_groups:
        flatten_invisible(tree)
    logger.info("expanded %d %s! invocations", expanded, macro)
    return tree


def expand_macros(
    source: str,
    macro: Optional[str] = None,
    file: str = "<input>",
    config: Optional[RewriteConfig] = None,
) -> str:
    """Expand the ``<macro>!(...)`` invocations of *source*.

    Code outside invocations is rendered unchanged.

    Raises:
        SpinError: with the offending source line attached.
    """
    try:
        return render(expand_tree(tokenize(source, file=file), macro, config))
    except SpinError as exc:
        exc.with_source(source)
        raise
