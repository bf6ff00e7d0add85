"""
bfvm - a byte-tape interpreter

Compiles programs written with the eight tape commands (> < + - . , [ ])
into resolved instruction sequences and executes them.

Compiler: filtering, run-length compression, [-] folding, loop resolution
Runtime:  fetch-decode-execute over a fixed-size byte memory
"""

__version__ = "0.1.0"

from bfvm.compiler import (
    compile_bf,
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
    BFSyntaxError,
    UnexpectedCloseLoop,
    UnterminatedLoop,
)
from bfvm.runtime import (
    Runtime,
    RuntimeConfig,
    BoundsPolicy,
    ExecutionState,
    ExecutionResult,
    MemoryFault,
    DEFAULT_MEMORY_SIZE,
)

__all__ = [
    "compile_bf",
    "Program",
    "Instruction",
    "MoveRight",
    "MoveLeft",
    "Add",
    "Sub",
    "Output",
    "Input",
    "OpenLoop",
    "CloseLoop",
    "Clear",
    "BFSyntaxError",
    "UnexpectedCloseLoop",
    "UnterminatedLoop",
    "Runtime",
    "RuntimeConfig",
    "BoundsPolicy",
    "ExecutionState",
    "ExecutionResult",
    "MemoryFault",
    "DEFAULT_MEMORY_SIZE",
]
