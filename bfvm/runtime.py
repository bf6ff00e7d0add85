"""
bfvm Runtime Engine

Executes compiled Programs against a byte tape.

The Runtime:
1. Takes a compiled Program and a RuntimeConfig
2. Builds a fresh ExecutionState (memory, cursor, instruction pointer) per run
3. Runs a fetch-decode-execute loop until the instruction pointer falls off the end
4. Produces an ExecutionResult (final state, I/O counts, fault if any)

Bounds policy is chosen once per Runtime:
    STRICT  moving the cursor outside memory raises a MemoryFault
    WRAP    the cursor wraps modulo the memory size
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Optional

from bfvm.compiler import (
    Program,
    Instruction,
    MoveRight,
    MoveLeft,
    Add,
    Sub,
    Output,
    Input,
    OpenLoop,
    CloseLoop,
    Clear,
    compile_bf,
)

logger = logging.getLogger(__name__)

DEFAULT_MEMORY_SIZE = 65_536


class BoundsPolicy(Enum):
    STRICT = "strict"
    WRAP = "wrap"


class MemoryFault(Exception):
    """Cursor moved outside memory under BoundsPolicy.STRICT."""

    def __init__(self, ip: int, cursor: int, instruction: Instruction, memory_size: int):
        super().__init__(
            f"Line {instruction.line}, Col {instruction.col}: cursor moved to {cursor} "
            f"outside memory [0, {memory_size}) at instruction {ip} ({type(instruction).__name__})"
        )
        self.ip = ip
        self.cursor = cursor
        self.instruction = instruction


@dataclass(frozen=True)
class RuntimeConfig:
    memory_size: int = DEFAULT_MEMORY_SIZE
    bounds: BoundsPolicy = BoundsPolicy.STRICT

    def __post_init__(self) -> None:
        if self.memory_size < 1:
            raise ValueError(f"memory_size must be at least 1, got {self.memory_size}")


@dataclass
class ExecutionState:
    """State owned by a single run."""
    memory: bytearray
    # Cursor
    mp: int = 0
    # Instruction pointer
    ip: int = 0
    # Instructions executed
    steps: int = 0
    bytes_written: int = 0
    bytes_read: int = 0

    @classmethod
    def fresh(cls, memory_size: int) -> ExecutionState:
        return cls(memory=bytearray(memory_size))


@dataclass
class ExecutionResult:
    """The result of executing a Program."""
    success: bool
    state: ExecutionState
    errors: list[str] = field(default_factory=list)
    fault: Optional[MemoryFault] = None

    @property
    def memory(self) -> bytearray:
        return self.state.memory

    @property
    def cursor(self) -> int:
        return self.state.mp

    @property
    def steps(self) -> int:
        return self.state.steps

    def summary(self) -> str:
        lines = [
            f"Execution {'SUCCESS' if self.success else 'FAILED'}",
            f"  Steps: {self.state.steps}",
            f"  Cursor: {self.state.mp}",
            f"  Output: {self.state.bytes_written} bytes",
            f"  Input: {self.state.bytes_read} bytes",
        ]
        if self.errors:
            lines.append(f"  Errors: {self.errors}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"<ExecutionResult: {'OK' if self.success else 'FAIL'} steps={self.state.steps}>"


class Runtime:
    """Program execution engine.

    Usage:
        runtime = Runtime(stdin=io.BytesIO(b"A"), stdout=out)
        result = runtime.execute(compile_bf(",."))

        # Or from source:
        result = runtime.run(",.")

    stdin/stdout default to the process's binary streams, looked up at
    execution time.
    """

    def __init__(
        self,
        config: Optional[RuntimeConfig] = None,
        stdin: Optional[BinaryIO] = None,
        stdout: Optional[BinaryIO] = None,
    ) -> None:
        self._config = config or RuntimeConfig()
        self._stdin = stdin
        self._stdout = stdout

    @property
    def config(self) -> RuntimeConfig:
        return self._config

    def run(self, source: str) -> ExecutionResult:
        """Compile and execute source code."""
        return self.execute(compile_bf(source))

    def execute(self, program: Program) -> ExecutionResult:
        """Execute a compiled Program to completion."""
        state = ExecutionState.fresh(self._config.memory_size)
        stdout = self._stdout if self._stdout is not None else sys.stdout.buffer

        logger.debug(
            "executing %d instructions (memory=%d, bounds=%s)",
            len(program), self._config.memory_size, self._config.bounds.value,
        )

        try:
            self._loop(program, state, stdout)
        except MemoryFault as e:
            logger.debug("run aborted after %d steps: %s", state.steps, e)
            return ExecutionResult(success=False, state=state, errors=[str(e)], fault=e)
        finally:
            stdout.flush()

        logger.debug("run finished after %d steps", state.steps)
        return ExecutionResult(success=True, state=state)

    def _read_byte(self) -> Optional[int]:
        stdin = self._stdin if self._stdin is not None else sys.stdin.buffer
        data = stdin.read(1)
        return data[0] if data else None

    def _loop(self, program: Program, state: ExecutionState, stdout: BinaryIO) -> None:
        instructions = program.instructions
        memory = state.memory
        size = len(memory)
        wrap = self._config.bounds is BoundsPolicy.WRAP
        end = len(instructions)

        while state.ip < end:
            op = instructions[state.ip]
            state.ip += 1
            state.steps += 1
            kind = type(op)

            if kind is MoveRight or kind is MoveLeft:
                mp = state.mp + op.count if kind is MoveRight else state.mp - op.count
                if not 0 <= mp < size:
                    if not wrap:
                        raise MemoryFault(state.ip - 1, mp, op, size)
                    mp %= size
                state.mp = mp

            elif kind is Add:
                memory[state.mp] = (memory[state.mp] + op.amount) & 0xFF
            elif kind is Sub:
                memory[state.mp] = (memory[state.mp] - op.amount) & 0xFF
            elif kind is Clear:
                memory[state.mp] = 0

            elif kind is Output:
                stdout.write(bytes((memory[state.mp],)))
                state.bytes_written += 1
            elif kind is Input:
                stdout.flush()
                byte = self._read_byte()
                if byte is None:
                    memory[state.mp] = 0
                else:
                    memory[state.mp] = byte
                    state.bytes_read += 1

            elif kind is OpenLoop:
                if memory[state.mp] == 0:
                    state.ip = op.target
            elif kind is CloseLoop:
                if memory[state.mp] != 0:
                    state.ip = op.target
