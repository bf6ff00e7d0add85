"""
bfvm Compiler Test Suite

Tests the source → Program pipeline:
1. Filtering (tokenization and source positions)
2. Run-length compression
3. [-] idiom folding
4. Loop resolution
5. Syntax errors
6. Program listing
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from bfvm import (
    compile_bf,
    Program,
    MoveRight,
    MoveLeft,
    Add,
    Sub,
    Output,
    Input,
    OpenLoop,
    CloseLoop,
    Clear,
    BFSyntaxError,
    UnexpectedCloseLoop,
    UnterminatedLoop,
)
from bfvm.compiler import tokenize, TokenType


def assert_loops_matched(program: Program, source: str) -> None:
    """Every loop instruction points at its syntactic partner and back."""
    stack = []
    for i, op in enumerate(program):
        if isinstance(op, OpenLoop):
            stack.append(i)
        elif isinstance(op, CloseLoop):
            start = stack.pop()
            assert program[start].target == i, source
            assert op.target == start, source
    assert not stack


# --- 1. Filtering ---

def test_tokenize_keeps_only_commands():
    tokens = tokenize("hello + world -> [.,] <")
    assert "".join(t.value for t in tokens) == "+->[.,]<"


def test_tokenize_records_positions():
    tokens = tokenize("a+\n  >")
    assert tokens[0].type == TokenType.INC
    assert (tokens[0].line, tokens[0].col) == (1, 1)
    assert tokens[1].type == TokenType.RIGHT
    assert (tokens[1].line, tokens[1].col) == (2, 2)


def test_empty_source_compiles_to_empty_program():
    assert len(compile_bf("")) == 0
    assert len(compile_bf("just a comment\nwith no commands")) == 0


@pytest.mark.parametrize("source", [
    "++++++++[>++++++++<-]>+.",
    ",[.,]",
    "+[>[-]<-]",
    ">>>[-]<<<[[]]",
])
def test_interleaved_comments_do_not_change_program(source):
    noisy = "".join(f"{ch}x9\n " for ch in source)
    assert compile_bf(noisy) == compile_bf(source)


def test_positions_excluded_from_equality():
    assert MoveRight(1, line=3, col=7) == MoveRight(1)
    assert compile_bf("\n\n  +")[0].line == 3


# --- 2. Run-length compression ---

def test_moves_are_fused():
    assert compile_bf(">>><<").instructions == (MoveRight(3), MoveLeft(2))


def test_adds_and_subs_are_fused():
    assert compile_bf("+++--").instructions == (Add(3), Sub(2))


def test_alternating_symbols_are_not_fused():
    assert compile_bf("+-+").instructions == (Add(1), Sub(1), Add(1))


def test_add_count_wraps_modulo_256():
    assert compile_bf("+" * 300).instructions == (Add(44),)
    assert compile_bf("-" * 256).instructions == (Sub(0),)


def test_move_count_does_not_wrap():
    assert compile_bf(">" * 300).instructions == (MoveRight(300),)


def test_io_is_never_fused():
    assert compile_bf("..,,").instructions == (Output(), Output(), Input(), Input())


# --- 3. Idiom folding ---

def test_clear_idiom():
    assert compile_bf("[-]").instructions == (Clear(),)


def test_clear_idiom_through_comments():
    assert compile_bf("[ zero - it ]").instructions == (Clear(),)


def test_clear_consumes_exactly_three_symbols():
    assert compile_bf("+[-]-").instructions == (Add(1), Clear(), Sub(1))
    assert compile_bf("[-][-]").instructions == (Clear(), Clear())


@pytest.mark.parametrize("source", ["[--]", "[+]", "[->]", "[-<]"])
def test_other_loops_take_generic_path(source):
    program = compile_bf(source)
    assert not any(isinstance(op, Clear) for op in program)
    assert isinstance(program[0], OpenLoop)
    assert isinstance(program[-1], CloseLoop)


def test_clear_inside_loop():
    program = compile_bf("+[>[-]<-]")
    assert program.instructions == (
        Add(1), OpenLoop(6), MoveRight(1), Clear(), MoveLeft(1), Sub(1), CloseLoop(1),
    )


# --- 4. Loop resolution ---

def test_simple_loop_targets():
    assert compile_bf("[>]").instructions == (OpenLoop(2), MoveRight(1), CloseLoop(0))


def test_empty_loop_targets():
    assert compile_bf("[]").instructions == (OpenLoop(1), CloseLoop(0))


@pytest.mark.parametrize("source", [
    "[[]]",
    "[][]",
    "+[>[+]<-]",
    "++[>+++[>++<-]<-]>>.",
    "[[[[]]][[]]]",
    ">[<[.]>[,[-]]]",
])
def test_balanced_programs_resolve_to_matching_brackets(source):
    assert_loops_matched(compile_bf(source), source)


def test_deep_nesting_without_recursion():
    depth = 5000
    program = compile_bf("[" * depth + "]" * depth)
    assert program[0].target == 2 * depth - 1
    assert program[depth - 1].target == depth


# --- 5. Syntax errors ---

def test_unexpected_close_loop():
    with pytest.raises(UnexpectedCloseLoop) as exc:
        compile_bf("]")
    assert (exc.value.line, exc.value.col) == (1, 0)


def test_unexpected_close_loop_position():
    with pytest.raises(UnexpectedCloseLoop) as exc:
        compile_bf("[+]\n +]")
    assert (exc.value.line, exc.value.col) == (2, 2)
    assert "Line 2, Col 2" in str(exc.value)


def test_unterminated_loop():
    with pytest.raises(UnterminatedLoop) as exc:
        compile_bf("[[]")
    assert (exc.value.line, exc.value.col) == (1, 0)
    assert exc.value.unclosed == 1


def test_unterminated_loop_reports_innermost_and_count():
    with pytest.raises(UnterminatedLoop) as exc:
        compile_bf("+[ [")
    assert exc.value.col == 3
    assert exc.value.unclosed == 2
    assert "2 unclosed" in str(exc.value)


def test_syntax_errors_share_a_base():
    for source in ("]", "["):
        with pytest.raises(BFSyntaxError):
            compile_bf(source)


def test_open_clear_idiom_prefix_is_unterminated():
    with pytest.raises(UnterminatedLoop):
        compile_bf("[-")


# --- 6. Listing ---

def test_dump_lists_every_instruction():
    program = compile_bf("+[>[-]<-]")
    listing = program.dump().splitlines()
    assert len(listing) == len(program)
    assert "OpenLoop -> 6" in listing[1]
    assert "Clear" in listing[3]


def test_program_is_immutable():
    program = compile_bf("+")
    with pytest.raises(AttributeError):
        program.instructions = ()
    with pytest.raises(AttributeError):
        program[0].amount = 2
