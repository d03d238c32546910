"""Trace generators.

Each generator runs a computation and records it as a TraceTable together
with the public inputs of the statement it proves.
"""

from .base import TraceTable
from .counter_vm import (
    CounterVm,
    ExecutionResult,
    Instruction,
    Opcode,
    Program,
    VmError,
    VmErrorKind,
    countdown_program,
    parse_program,
    run_program,
)
from .rescue_prime import HashResult, hash_elements, permute

__all__ = [
    "TraceTable",
    # Counter VM
    "CounterVm",
    "ExecutionResult",
    "Instruction",
    "Opcode",
    "Program",
    "VmError",
    "VmErrorKind",
    "countdown_program",
    "parse_program",
    "run_program",
    # Rescue-Prime
    "HashResult",
    "hash_elements",
    "permute",
]
