"""
bfvm Compiler

Compiles tape-language source text into an executable Program.

Compilation stages:
1. Filtering → Token stream of the eight command symbols (everything else is comment)
2. Run-length compression → one instruction per run of > < + -
3. Idiom folding → [-] becomes a single Clear
4. Loop resolution → every OpenLoop/CloseLoop learns its partner's index

Example:
    program = compile_bf("++++++++[>++++++++<-]>+.")
    print(program.dump())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Iterator

logger = logging.getLogger(__name__)


# ============================================================================
# Token Types
# ============================================================================

class TokenType(Enum):
    RIGHT = auto()     # >
    LEFT = auto()      # <
    INC = auto()       # +
    DEC = auto()       # -
    OUTPUT = auto()    # .
    INPUT = auto()     # ,
    LBRACKET = auto()  # [
    RBRACKET = auto()  # ]


SYMBOLS = {
    ">": TokenType.RIGHT,
    "<": TokenType.LEFT,
    "+": TokenType.INC,
    "-": TokenType.DEC,
    ".": TokenType.OUTPUT,
    ",": TokenType.INPUT,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
}


@dataclass
class Token:
    type: TokenType
    value: str
    line: int
    col: int

    def __repr__(self) -> str:
        return f"<{self.type.name}:{self.value!r}>"


# ============================================================================
# Errors
# ============================================================================

class BFSyntaxError(Exception):
    """Unbalanced loop brackets. No Program is produced."""

    def __init__(self, message: str, line: int, col: int):
        super().__init__(f"Line {line}, Col {col}: {message}")
        self.line = line
        self.col = col


class UnexpectedCloseLoop(BFSyntaxError):
    def __init__(self, line: int, col: int):
        super().__init__("Unexpected end of loop", line, col)


class UnterminatedLoop(BFSyntaxError):
    def __init__(self, line: int, col: int, unclosed: int = 1):
        suffix = f" ({unclosed} unclosed)" if unclosed > 1 else ""
        super().__init__(f"Unterminated loop{suffix}", line, col)
        self.unclosed = unclosed


# ============================================================================
# Filtering
# ============================================================================

def tokenize(source: str) -> list[Token]:
    """Keep the eight command symbols, discard everything else."""
    tokens: list[Token] = []
    line, col = 1, 0

    for ch in source:
        if ch == "\n":
            line += 1
            col = 0
            continue
        ttype = SYMBOLS.get(ch)
        if ttype is not None:
            tokens.append(Token(ttype, ch, line, col))
        col += 1

    return tokens


# ============================================================================
# Instructions
# ============================================================================

@dataclass(frozen=True)
class Instruction:
    """Base class for compiled instructions.

    line/col point at the first source symbol the instruction came from.
    They take no part in equality.
    """
    line: int = field(default=0, compare=False, repr=False, kw_only=True)
    col: int = field(default=0, compare=False, repr=False, kw_only=True)


@dataclass(frozen=True)
class MoveRight(Instruction):
    count: int

@dataclass(frozen=True)
class MoveLeft(Instruction):
    count: int

@dataclass(frozen=True)
class Add(Instruction):
    amount: int

@dataclass(frozen=True)
class Sub(Instruction):
    amount: int

@dataclass(frozen=True)
class Output(Instruction):
    pass

@dataclass(frozen=True)
class Input(Instruction):
    pass

@dataclass(frozen=True)
class OpenLoop(Instruction):
    target: int  # index of the matching CloseLoop

@dataclass(frozen=True)
class CloseLoop(Instruction):
    target: int  # index of the matching OpenLoop

@dataclass(frozen=True)
class Clear(Instruction):
    """Folded [-]: set the current cell to zero."""
    pass


# Placeholder target for loop instructions until resolve_loops() runs
UNRESOLVED = -1


@dataclass(frozen=True)
class Program:
    """An immutable, zero-indexed instruction sequence."""
    instructions: tuple[Instruction, ...] = ()

    def __len__(self) -> int:
        return len(self.instructions)

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self.instructions)

    def __getitem__(self, index: int) -> Instruction:
        return self.instructions[index]

    def dump(self) -> str:
        """Readable listing: index, instruction, source position."""
        lines = []
        depth = 0
        for i, op in enumerate(self.instructions):
            if isinstance(op, CloseLoop):
                depth -= 1
            lines.append(f"{i:5d}  {'  ' * depth}{_describe(op):20s} ; {op.line}:{op.col}")
            if isinstance(op, OpenLoop):
                depth += 1
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"<Program: {len(self.instructions)} instructions>"


def _describe(op: Instruction) -> str:
    if isinstance(op, (MoveRight, MoveLeft)):
        return f"{type(op).__name__}({op.count})"
    if isinstance(op, (Add, Sub)):
        return f"{type(op).__name__}({op.amount})"
    if isinstance(op, (OpenLoop, CloseLoop)):
        return f"{type(op).__name__} -> {op.target}"
    return type(op).__name__


# ============================================================================
# Compression and idiom folding
# ============================================================================

# [-]
CLEAR_IDIOM = (TokenType.LBRACKET, TokenType.DEC, TokenType.RBRACKET)


def _is_clear_idiom(tokens: list[Token], pos: int) -> bool:
    window = tokens[pos:pos + len(CLEAR_IDIOM)]
    return tuple(t.type for t in window) == CLEAR_IDIOM


def _run_length(tokens: list[Token], pos: int) -> int:
    ttype = tokens[pos].type
    end = pos + 1
    while end < len(tokens) and tokens[end].type == ttype:
        end += 1
    return end - pos


def lower(tokens: list[Token]) -> list[Instruction]:
    """Turn filtered tokens into instructions with unresolved loop targets."""
    ops: list[Instruction] = []
    pos = 0

    while pos < len(tokens):
        tok = tokens[pos]
        where = {"line": tok.line, "col": tok.col}

        if tok.type in (TokenType.RIGHT, TokenType.LEFT, TokenType.INC, TokenType.DEC):
            n = _run_length(tokens, pos)
            pos += n
            if tok.type == TokenType.RIGHT:
                ops.append(MoveRight(n, **where))
            elif tok.type == TokenType.LEFT:
                ops.append(MoveLeft(n, **where))
            elif tok.type == TokenType.INC:
                ops.append(Add(n % 256, **where))
            else:
                ops.append(Sub(n % 256, **where))
            continue

        if tok.type == TokenType.LBRACKET and _is_clear_idiom(tokens, pos):
            ops.append(Clear(**where))
            pos += len(CLEAR_IDIOM)
            continue

        if tok.type == TokenType.OUTPUT:
            ops.append(Output(**where))
        elif tok.type == TokenType.INPUT:
            ops.append(Input(**where))
        elif tok.type == TokenType.LBRACKET:
            ops.append(OpenLoop(UNRESOLVED, **where))
        elif tok.type == TokenType.RBRACKET:
            ops.append(CloseLoop(UNRESOLVED, **where))
        pos += 1

    return ops


# ============================================================================
# Loop resolution
# ============================================================================

def resolve_loops(ops: list[Instruction]) -> list[Instruction]:
    """Point every OpenLoop at its CloseLoop and back.

    Raises UnexpectedCloseLoop / UnterminatedLoop on unbalanced brackets.
    """
    resolved = list(ops)
    stack: list[int] = []

    for i, op in enumerate(resolved):
        if isinstance(op, OpenLoop):
            stack.append(i)
        elif isinstance(op, CloseLoop):
            if not stack:
                raise UnexpectedCloseLoop(op.line, op.col)
            start = stack.pop()
            resolved[start] = replace(resolved[start], target=i)
            resolved[i] = replace(op, target=start)

    if stack:
        innermost = resolved[stack[-1]]
        raise UnterminatedLoop(innermost.line, innermost.col, unclosed=len(stack))

    return resolved


# ============================================================================
# Public API
# ============================================================================

def compile_bf(source: str) -> Program:
    """Compile tape-language source into a Program.

    Args:
        source: program text; non-command characters are ignored

    Returns:
        Program with all loop targets resolved

    Raises:
        UnexpectedCloseLoop: a ] with no open [
        UnterminatedLoop: a [ never closed
    """
    tokens = tokenize(source)
    ops = resolve_loops(lower(tokens))
    logger.debug(
        "compiled %d symbols into %d instructions (%d cleared loops)",
        len(tokens), len(ops), sum(1 for op in ops if isinstance(op, Clear)),
    )
    return Program(tuple(ops))
