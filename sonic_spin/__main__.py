#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
sonic_spin/__main__.py
======================

Command-line entry point.

Usage
-----
    sonic-spin <command> [options] <input>
    python -m sonic_spin <command> [options] <input>

Commands
--------
    rewrite     Rewrite a source file and write the result
    check       Rewrite without output; report diagnostics only
    tokens      Dump the token tree of a source file

By default only the bodies of ``sonic_spin!(...)`` invocations are
rewritten; ``--whole`` treats the entire input as one invocation.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import textwrap
import traceback
from typing import Any, Dict, List, Optional, Sequence, TextIO

from . import __version__
from .api import expand_tree
from .config import DEFAULT_CONFIG, RewriteConfig
from .driver import Rewriter
from .errors import ErrorSeverity, SpinError
from .lexer import tokenize
from .scanner import count_markers
from .tokens import TokenGroup, dump_tree, render, render_compact

__description__ = "Rewrite postfix control constructs into prefix form."

EXIT_OK = 0
EXIT_DIAGNOSTICS = 1
EXIT_INTERNAL = 2
EXIT_INTERRUPTED = 130


# ═══════════════════════════════════════════════════════════════════════════
# TERMINAL COLORS
# ═══════════════════════════════════════════════════════════════════════════

class _Colors:
    """ANSI color codes, disabled when not writing to a TTY."""

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    def _code(self, code: str) -> str:
        return code if self.enabled else ""

    @property
    def RESET(self) -> str:
        return self._code("\033[0m")

    @property
    def BOLD(self) -> str:
        return self._code("\033[1m")

    @property
    def DIM(self) -> str:
        return self._code("\033[2m")

    @property
    def RED(self) -> str:
        return self._code("\033[31m")

    @property
    def GREEN(self) -> str:
        return self._code("\033[32m")

    @property
    def MAGENTA(self) -> str:
        return self._code("\033[35m")


def _get_colors(stream: TextIO = sys.stderr) -> _Colors:
    """Get color codes appropriate for the given stream."""
    try:
        is_tty = hasattr(stream, "isatty") and stream.isatty()
    except (AttributeError, ValueError):
        is_tty = False
    return _Colors(enabled=is_tty and os.environ.get("NO_COLOR") is None)


def _configure_logging(verbosity: int) -> None:
    """Set up the ``sonic_spin`` logger.

    -1 → ERROR, 0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity < 0:
        level = logging.ERROR
    elif verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(fmt="%(levelname)s: %(name)s: %(message)s")
    )
    root = logging.getLogger("sonic_spin")
    root.setLevel(level)
    # main() may run several times in one process; keep a single handler
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)


# ═══════════════════════════════════════════════════════════════════════════
# DIAGNOSTICS
# ═══════════════════════════════════════════════════════════════════════════

class DiagnosticFormatter:
    """Write rewriter diagnostics to a stream.

    ``gcc`` style::

        src/main.rs:3:9: error: unknown construct 'frobnicate' [SPIN-1002]
            x::(frobnicate) { }
                ^^^^^^^^^^

    ``json`` style collects every diagnostic and writes one JSON array
    from :meth:`flush`.
    """

    def __init__(self, colors: _Colors, style: str = "gcc",
                 stream: Optional[TextIO] = None) -> None:
        self.colors = colors
        self.style = style
        self.stream = stream or sys.stderr
        self._records: List[Dict[str, Any]] = []
        self._error_count = 0
        self._warning_count = 0

    def report(self, exc: SpinError) -> None:
        if exc.severity is ErrorSeverity.WARNING:
            self._warning_count += 1
        else:
            self._error_count += 1

        if self.style == "json":
            self._records.append(exc.to_json())
            return

        c = self.colors
        color = c.MAGENTA if exc.severity is ErrorSeverity.WARNING else c.RED
        first, _, rest = exc.to_gcc_format().partition("\n")
        location, sep, message = first.partition(": ")
        self.stream.write(f"{c.BOLD}{location}{sep}{color}{message}{c.RESET}\n")
        if rest:
            self.stream.write(rest + "\n")

    def error(self, message: str) -> None:
        """Report a problem that is not a rewriter diagnostic (I/O, usage)."""
        self._error_count += 1
        if self.style == "json":
            self._records.append({"severity": "error", "message": message})
            return
        c = self.colors
        self.stream.write(f"{c.BOLD}{c.RED}error:{c.RESET} {message}\n")

    def flush(self) -> None:
        if self.style == "json":
            self.stream.write(json.dumps(self._records, indent=2) + "\n")
            return
        parts = []
        c = self.colors
        if self._error_count:
            parts.append(f"{c.RED}{self._error_count} error(s){c.RESET}")
        if self._warning_count:
            parts.append(f"{c.MAGENTA}{self._warning_count} warning(s){c.RESET}")
        if parts:
            self.stream.write(", ".join(parts) + " generated.\n")

    @property
    def has_errors(self) -> bool:
        return self._error_count > 0


# ═══════════════════════════════════════════════════════════════════════════
# PIPELINE
# ═══════════════════════════════════════════════════════════════════════════

def _read_input(path: str) -> str:
    if path == "-":
        try:
            return sys.stdin.read()
        except UnicodeDecodeError as e:
            raise ValueError(f"standard input is not valid UTF-8 ({e})") from e
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except FileNotFoundError as e:
        raise FileNotFoundError(f"input file not found: {path}") from e
    except PermissionError as e:
        raise PermissionError(f"cannot read input file: {path}") from e
    except UnicodeDecodeError as e:
        raise ValueError(f"input file is not valid UTF-8: {path} ({e})") from e


def _config_from_args(args: argparse.Namespace) -> RewriteConfig:
    return DEFAULT_CONFIG.with_overrides(
        max_rewrites=args.max_rewrites,
        max_passes=args.max_passes,
        parenthesize_operands=False if args.no_parens else None,
        tolerate_malformed=True if args.tolerate_malformed else None,
        macro_name=getattr(args, "macro", None),
    )


def _run_rewrite(
    source: str,
    filename: str,
    args: argparse.Namespace,
    formatter: DiagnosticFormatter,
) -> Optional[TokenGroup]:
    """Tokenize and rewrite *source*; report diagnostics on *formatter*.

    Returns the rewritten tree, or ``None`` on failure.
    """
    config = _config_from_args(args)
    problems = config.validate()
    if problems:
        for problem in problems:
            formatter.error(problem)
        return None

    warnings: List[SpinError] = []
    try:
        tree = tokenize(source, file=filename)
        if args.whole:
            result = Rewriter(config).try_rewrite(tree)
            if result.error is not None:
                raise result.error
            warnings.extend(result.warnings)
            tree = result.tree
        else:
            expand_tree(tree, config=config, warnings=warnings)
    except SpinError as exc:
        for warning in warnings:
            formatter.report(warning.with_source(source))
        formatter.report(exc.with_source(source))
        return None

    for warning in warnings:
        formatter.report(warning.with_source(source))
    return tree


def _source_name(path: str) -> str:
    return "<stdin>" if path == "-" else path


# ═══════════════════════════════════════════════════════════════════════════
# COMMANDS
# ═══════════════════════════════════════════════════════════════════════════

def cmd_rewrite(args: argparse.Namespace) -> int:
    """Handle the 'rewrite' command."""
    formatter = DiagnosticFormatter(_get_colors(), style=args.diagnostics)
    try:
        source = _read_input(args.input)
    except (FileNotFoundError, PermissionError, ValueError) as e:
        formatter.error(str(e))
        formatter.flush()
        return EXIT_DIAGNOSTICS

    tree = _run_rewrite(source, _source_name(args.input), args, formatter)
    if tree is None:
        formatter.flush()
        return EXIT_DIAGNOSTICS

    output = render(tree)
    if args.output and args.output != "-":
        try:
            with open(args.output, "w", encoding="utf-8") as f:
                f.write(output)
        except OSError as e:
            formatter.error(f"cannot write output: {e}")
            formatter.flush()
            return EXIT_DIAGNOSTICS
    else:
        sys.stdout.write(output)

    formatter.flush()
    return EXIT_OK


def cmd_check(args: argparse.Namespace) -> int:
    """Handle the 'check' command (rewrite, no output)."""
    colors = _get_colors()
    formatter = DiagnosticFormatter(colors, style=args.diagnostics)
    try:
        source = _read_input(args.input)
    except (FileNotFoundError, PermissionError, ValueError) as e:
        formatter.error(str(e))
        formatter.flush()
        return EXIT_DIAGNOSTICS

    filename = _source_name(args.input)
    tree = _run_rewrite(source, filename, args, formatter)
    if tree is None:
        formatter.flush()
        return EXIT_DIAGNOSTICS

    before = count_markers(tokenize(source, file=filename))
    resolved = before - count_markers(tree)
    if not args.quiet and args.diagnostics == "gcc":
        sys.stderr.write(
            f"{colors.GREEN}ok{colors.RESET} "
            f"{colors.BOLD}{filename}{colors.RESET}: "
            f"{resolved} occurrence(s) resolved.\n"
        )
    formatter.flush()
    return EXIT_OK


def cmd_tokens(args: argparse.Namespace) -> int:
    """Handle the 'tokens' command."""
    formatter = DiagnosticFormatter(_get_colors(), style=args.diagnostics)
    try:
        source = _read_input(args.input)
        tree = tokenize(source, file=_source_name(args.input))
    except (FileNotFoundError, PermissionError, ValueError) as e:
        formatter.error(str(e))
        formatter.flush()
        return EXIT_DIAGNOSTICS
    except SpinError as exc:
        formatter.report(exc.with_source(source))
        formatter.flush()
        return EXIT_DIAGNOSTICS

    if args.compact:
        sys.stdout.write(render_compact(tree) + "\n")
    else:
        sys.stdout.write(dump_tree(tree, show_locations=args.locations) + "\n")
    return EXIT_OK


# ═══════════════════════════════════════════════════════════════════════════
# ARGUMENT PARSER
# ═══════════════════════════════════════════════════════════════════════════

def _add_common_options(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "input",
        help="Input source file (use '-' for stdin)",
    )
    p.add_argument(
        "--diagnostics",
        choices=("gcc", "json"),
        default="gcc",
        help="Diagnostic output format (default: gcc)",
    )
    verbosity = p.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (repeatable)",
    )
    verbosity.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only report errors",
    )


def _add_rewrite_options(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--max-rewrites",
        type=int,
        metavar="N",
        help=f"Abort after N rewrites (default: {DEFAULT_CONFIG.max_rewrites})",
    )
    p.add_argument(
        "--max-passes",
        type=int,
        metavar="N",
        help=f"Abort after N passes (default: {DEFAULT_CONFIG.max_passes})",
    )
    p.add_argument(
        "--no-parens",
        action="store_true",
        help="Do not parenthesize compound operands",
    )
    p.add_argument(
        "--tolerate-malformed",
        action="store_true",
        help="Leave malformed occurrences untouched and report them as warnings",
    )
    mode = p.add_mutually_exclusive_group()
    mode.add_argument(
        "--macro",
        metavar="NAME",
        help=f"Rewrite the bodies of NAME!(...) invocations "
             f"(default: {DEFAULT_CONFIG.macro_name})",
    )
    mode.add_argument(
        "--whole",
        action="store_true",
        help="Rewrite the entire input as one invocation",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the sonic-spin CLI."""

    parser = argparse.ArgumentParser(
        prog="sonic-spin",
        description=__description__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              %(prog)s rewrite src/main.rs
              %(prog)s rewrite snippet.rs --whole -o out.rs
              %(prog)s check src/main.rs --diagnostics json
              %(prog)s tokens snippet.rs --compact
        """),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="available commands",
        metavar="<command>",
    )

    # ── rewrite ──────────────────────────────────────────────────────────

    p_rewrite = subparsers.add_parser(
        "rewrite",
        help="Rewrite a source file",
        description=(
            "Rewrite every postfix construct of the input and write the "
            "result to stdout or the --output file."
        ),
    )
    _add_common_options(p_rewrite)
    _add_rewrite_options(p_rewrite)
    p_rewrite.add_argument(
        "-o", "--output",
        help="Output file (default: stdout)",
    )
    p_rewrite.set_defaults(func=cmd_rewrite)

    # ── check ────────────────────────────────────────────────────────────

    p_check = subparsers.add_parser(
        "check",
        help="Report diagnostics without writing output",
    )
    _add_common_options(p_check)
    _add_rewrite_options(p_check)
    p_check.set_defaults(func=cmd_check)

    # ── tokens ───────────────────────────────────────────────────────────

    p_tokens = subparsers.add_parser(
        "tokens",
        help="Dump the token tree of a source file",
    )
    _add_common_options(p_tokens)
    p_tokens.add_argument(
        "--compact",
        action="store_true",
        help="Print the tokens on one line instead of as a tree",
    )
    p_tokens.add_argument(
        "--locations",
        action="store_true",
        help="Show line:column of every node",
    )
    p_tokens.set_defaults(func=cmd_tokens)

    return parser


# ═══════════════════════════════════════════════════════════════════════════
# MAIN
# ═══════════════════════════════════════════════════════════════════════════

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the sonic-spin CLI.

    Returns the process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_OK

    _configure_logging(-1 if args.quiet else args.verbose)

    try:
        return args.func(args)
    except KeyboardInterrupt:
        sys.stderr.write("\nInterrupted.\n")
        return EXIT_INTERRUPTED
    except BrokenPipeError:
        # Handle piping to head, etc.
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        return EXIT_OK
    except Exception as e:
        colors = _get_colors()
        sys.stderr.write(
            f"\n{colors.RED}{colors.BOLD}"
            f"Internal error:{colors.RESET} {e}\n"
        )
        sys.stderr.write(
            f"{colors.DIM}This is a bug in sonic-spin. Please report it.{colors.RESET}\n\n"
        )
        traceback.print_exc()
        return EXIT_INTERNAL


if __name__ == "__main__":
    sys.exit(main())
