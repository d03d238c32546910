"""Counter virtual machine and its execution trace.

A Minsky-style register machine with two unbounded counters `a` and `b` and
an output register. Two counters with increment, decrement and
jump-if-non-zero are Turing complete.

Instruction set:
    INC r        r += 1
    DEC r        r -= 1 (error when r == 0)
    JNZ r t      jump to t if r != 0
    JMP t        jump to t
    OUT r        out = r
    HALT         stop (the halting row repeats, which pads the trace)

Trace layout, one row per cycle, holding the state before the instruction at
`ip` executes:
    ip, a, b, out     machine state
    inv_a, inv_b      inverse of the register, 0 when the register is 0
    s_0 .. s_{L-1}    one-hot selector of the current instruction
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from stark_engine.primitives.field import GOLDILOCKS_PRIME
from stark_engine.witness.base import TraceTable

logger = logging.getLogger(__name__)

REGISTERS = ("a", "b")
STATE_COLUMNS = ("ip", "a", "b", "out", "inv_a", "inv_b")

DEFAULT_MAX_CYCLES = 1 << 16
MIN_TRACE_LENGTH = 8


# --- Errors ---

class VmErrorKind(Enum):
    INSTRUCTION_POINTER_OVERFLOW = "instruction pointer points outside the program"
    INVALID_INSTRUCTION_ARGUMENT = "instruction argument is invalid"
    REGISTER_UNDERFLOW = "decrement of a register holding 0"
    UNGRACEFUL_TERMINATION = "the virtual machine must terminate using instruction HALT"


class VmError(Exception):
    """Program or execution error of the counter VM."""

    def __init__(self, kind: VmErrorKind, ip: Optional[int] = None, detail: str = ""):
        self.kind = kind
        self.ip = ip
        message = kind.value
        if ip is not None:
            message = f"{message} (ip={ip})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


# --- Instructions ---

class Opcode(Enum):
    INC = "inc"
    DEC = "dec"
    JNZ = "jnz"
    JMP = "jmp"
    OUT = "out"
    HALT = "halt"


@dataclass(frozen=True)
class Instruction:
    opcode: Opcode
    register: Optional[str] = None
    target: Optional[int] = None

    def __str__(self) -> str:
        parts = [self.opcode.name]
        if self.register is not None:
            parts.append(self.register)
        if self.target is not None:
            parts.append(str(self.target))
        return " ".join(parts)


def inc(register: str) -> Instruction:
    return Instruction(Opcode.INC, register=register)


def dec(register: str) -> Instruction:
    return Instruction(Opcode.DEC, register=register)


def jnz(register: str, target: int) -> Instruction:
    return Instruction(Opcode.JNZ, register=register, target=target)


def jmp(target: int) -> Instruction:
    return Instruction(Opcode.JMP, target=target)


def out(register: str) -> Instruction:
    return Instruction(Opcode.OUT, register=register)


def halt() -> Instruction:
    return Instruction(Opcode.HALT)


_NEEDS_REGISTER = {Opcode.INC, Opcode.DEC, Opcode.JNZ, Opcode.OUT}
_NEEDS_TARGET = {Opcode.JNZ, Opcode.JMP}


@dataclass(frozen=True)
class Program:
    """Validated instruction sequence with exactly one HALT."""
    instructions: Tuple[Instruction, ...]

    def __post_init__(self) -> None:
        n = len(self.instructions)
        if n == 0:
            raise VmError(VmErrorKind.UNGRACEFUL_TERMINATION, detail="empty program")
        for ip, ins in enumerate(self.instructions):
            if (ins.register is not None) != (ins.opcode in _NEEDS_REGISTER):
                raise VmError(VmErrorKind.INVALID_INSTRUCTION_ARGUMENT, ip, str(ins))
            if ins.register is not None and ins.register not in REGISTERS:
                raise VmError(VmErrorKind.INVALID_INSTRUCTION_ARGUMENT, ip, f"unknown register {ins.register!r}")
            if (ins.target is not None) != (ins.opcode in _NEEDS_TARGET):
                raise VmError(VmErrorKind.INVALID_INSTRUCTION_ARGUMENT, ip, str(ins))
            if ins.target is not None and not 0 <= ins.target < n:
                raise VmError(VmErrorKind.INSTRUCTION_POINTER_OVERFLOW, ip, f"jump target {ins.target}")
        halts = [ip for ip, ins in enumerate(self.instructions) if ins.opcode is Opcode.HALT]
        if len(halts) != 1:
            raise VmError(
                VmErrorKind.UNGRACEFUL_TERMINATION,
                detail=f"program must contain exactly one HALT, found {len(halts)}",
            )

    @classmethod
    def of(cls, *instructions: Instruction) -> "Program":
        return cls(tuple(instructions))

    def __len__(self) -> int:
        return len(self.instructions)

    @property
    def halt_address(self) -> int:
        return next(ip for ip, ins in enumerate(self.instructions) if ins.opcode is Opcode.HALT)

    def column_names(self) -> List[str]:
        return list(STATE_COLUMNS) + [f"s_{k}" for k in range(len(self))]


# --- Execution ---

@dataclass(frozen=True)
class ExecutionResult:
    trace: TraceTable
    public_inputs: Tuple[int, ...]
    output: int
    cycles: int


def _inverse_or_zero(v: int) -> int:
    return pow(v, -1, GOLDILOCKS_PRIME) if v else 0


class CounterVm:
    """Interpreter that records one trace row per cycle."""

    def __init__(self, program: Program, max_cycles: int = DEFAULT_MAX_CYCLES):
        self.program = program
        self.max_cycles = max_cycles

    def _row(self, ip: int, regs: dict, out_value: int) -> List[int]:
        selectors = [1 if k == ip else 0 for k in range(len(self.program))]
        return [
            ip,
            regs["a"],
            regs["b"],
            out_value,
            _inverse_or_zero(regs["a"]),
            _inverse_or_zero(regs["b"]),
        ] + selectors

    def run(self, a: int = 0, b: int = 0, min_trace_length: int = MIN_TRACE_LENGTH) -> ExecutionResult:
        """Execute until HALT and pad the trace to a power of two.

        Raises:
            VmError: On decrement of zero or when HALT is not reached within max_cycles
        """
        if a < 0 or b < 0:
            raise VmError(VmErrorKind.INVALID_INSTRUCTION_ARGUMENT, detail="registers start non-negative")
        regs = {"a": a, "b": b}
        ip = 0
        out_value = 0
        rows: List[List[int]] = []

        for cycle in range(self.max_cycles):
            rows.append(self._row(ip, regs, out_value))
            ins = self.program.instructions[ip]
            op = ins.opcode
            if op is Opcode.HALT:
                break
            if op is Opcode.INC:
                regs[ins.register] += 1
                ip += 1
            elif op is Opcode.DEC:
                if regs[ins.register] == 0:
                    raise VmError(VmErrorKind.REGISTER_UNDERFLOW, ip, f"register {ins.register}")
                regs[ins.register] -= 1
                ip += 1
            elif op is Opcode.JNZ:
                ip = ins.target if regs[ins.register] != 0 else ip + 1
            elif op is Opcode.JMP:
                ip = ins.target
            elif op is Opcode.OUT:
                out_value = regs[ins.register]
                ip += 1
            if ip >= len(self.program):
                raise VmError(VmErrorKind.INSTRUCTION_POINTER_OVERFLOW, ip)
            if max(regs.values()) >= GOLDILOCKS_PRIME:
                raise VmError(VmErrorKind.INVALID_INSTRUCTION_ARGUMENT, ip, "register exceeds field size")
        else:
            raise VmError(VmErrorKind.UNGRACEFUL_TERMINATION, detail=f"no HALT within {self.max_cycles} cycles")

        cycles = len(rows)
        length = max(min_trace_length, 1 << (cycles - 1).bit_length())
        # HALT maps its row to itself
        rows.extend([list(rows[-1]) for _ in range(length - cycles)])
        logger.debug("Counter VM halted after %d cycles, trace padded to %d rows", cycles, length)

        trace = TraceTable.from_rows(self.program.column_names(), rows)
        return ExecutionResult(
            trace=trace,
            public_inputs=(a, b, out_value),
            output=out_value,
            cycles=cycles,
        )


def run_program(program: Program, a: int = 0, b: int = 0, **kwargs) -> ExecutionResult:
    return CounterVm(program).run(a, b, **kwargs)


def countdown_program() -> Program:
    """b += a by counting a down to zero, then output b."""
    return Program.of(
        inc("b"),
        dec("a"),
        jnz("a", 0),
        out("b"),
        halt(),
    )


def parse_program(source: str) -> Program:
    """Parse one instruction per line, e.g. "JNZ a 0"; '#' starts a comment."""
    instructions = []
    for line_no, line in enumerate(source.splitlines(), start=1):
        line = line.split("#", 1)[0].strip()
        if not line:
            continue
        tokens = line.replace(",", " ").split()
        try:
            opcode = Opcode[tokens[0].upper()]
        except KeyError:
            raise VmError(VmErrorKind.INVALID_INSTRUCTION_ARGUMENT, detail=f"line {line_no}: {tokens[0]!r}") from None
        args: Sequence[str] = tokens[1:]
        register = args[0] if opcode in _NEEDS_REGISTER and args else None
        rest = args[1:] if register is not None else args
        target = None
        if opcode in _NEEDS_TARGET:
            if len(rest) != 1 or not rest[0].isdigit():
                raise VmError(VmErrorKind.INVALID_INSTRUCTION_ARGUMENT, detail=f"line {line_no}: {line!r}")
            target = int(rest[0])
        elif rest:
            raise VmError(VmErrorKind.INVALID_INSTRUCTION_ARGUMENT, detail=f"line {line_no}: {line!r}")
        instructions.append(Instruction(opcode, register=register, target=target))
    return Program(tuple(instructions))
