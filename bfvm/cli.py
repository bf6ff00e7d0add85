#!/usr/bin/env python3
"""
bfvm command-line interface

Usage:
    bfvm <file>                 Compile and run a program against stdin/stdout
    bfvm <file> --dump          Print the compiled instruction listing
    bfvm <file> --wrap          Treat memory as circular instead of faulting

Program output goes to stdout untouched; diagnostics go to stderr.
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from pathlib import Path

from bfvm import __version__
from bfvm.compiler import BFSyntaxError, compile_bf
from bfvm.runtime import BoundsPolicy, Runtime, RuntimeConfig, DEFAULT_MEMORY_SIZE


# ============================================================================
# Formatting helpers
# ============================================================================

class C:
    """ANSI colors."""
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    CYAN = "\033[36m"
    RESET = "\033[0m"

    @staticmethod
    def off():
        C.BOLD = C.DIM = C.RED = C.GREEN = C.CYAN = C.RESET = ""


def header(text: str) -> str:
    return f"{C.BOLD}{C.CYAN}{'─' * 60}{C.RESET}\n{C.BOLD}  {text}{C.RESET}\n{C.BOLD}{C.CYAN}{'─' * 60}{C.RESET}"


def ok(text: str) -> str:
    return f"  {C.GREEN}✓{C.RESET} {text}"


def fail(text: str) -> str:
    return f"  {C.RED}✗{C.RESET} {text}"


def dim(text: str) -> str:
    return f"{C.DIM}{text}{C.RESET}"


def report(text: str) -> None:
    print(text, file=sys.stderr)


# ============================================================================
# Commands
# ============================================================================

def read_source(path: str) -> str:
    # latin-1 maps every byte to a character, so comments in any encoding
    # never stop a program from loading
    return Path(path).read_text(encoding="latin-1")


def cmd_dump(args, source: str) -> int:
    """Print the compiled program."""
    program = compile_bf(source)
    print(header(f"DUMP: {args.file}  ({len(program)} instructions)"))
    if len(program):
        print(program.dump())
    return 0


def cmd_run(args, source: str) -> int:
    """Compile and execute a program."""
    config = RuntimeConfig(
        memory_size=args.memory_size,
        bounds=BoundsPolicy.WRAP if args.wrap else BoundsPolicy.STRICT,
    )
    program = compile_bf(source)
    result = Runtime(config).execute(program)

    if not result.success:
        for e in result.errors:
            report(fail(f"{C.RED}{e}{C.RESET}"))

    if args.verbose:
        report(dim(result.summary()))
        if result.success:
            report(ok(f"Program completed: {result.steps} steps"))

    return 0 if result.success else 1


# ============================================================================
# CLI setup
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bfvm",
        description="bfvm: byte-tape interpreter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""
        examples:
          bfvm hello.b
          bfvm rot13.b < message.txt
          bfvm mandelbrot.b --dump
          bfvm life.b --wrap --memory-size 30000
        """),
    )
    parser.add_argument("file", help="Path to program source")
    parser.add_argument("--memory-size", type=int, default=DEFAULT_MEMORY_SIZE,
                        help=f"Number of memory cells (default: {DEFAULT_MEMORY_SIZE})")
    parser.add_argument("--wrap", action="store_true",
                        help="Wrap the cursor around memory instead of faulting")
    parser.add_argument("--dump", action="store_true", help="Print the compiled program and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging and a run summary")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.no_color:
        C.off()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.memory_size < 1:
        parser.error("--memory-size must be at least 1")

    try:
        source = read_source(args.file)
    except FileNotFoundError:
        report(fail(f"File not found: {args.file}"))
        return 1
    except OSError as e:
        report(fail(f"Error reading {args.file}: {e}"))
        return 1

    handler = cmd_dump if args.dump else cmd_run
    try:
        return handler(args, source)
    except BFSyntaxError as e:
        report(fail(f"Syntax error in {args.file}: {e}"))
        return 1


if __name__ == "__main__":
    sys.exit(main())
