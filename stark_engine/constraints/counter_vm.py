"""Counter VM AIR.

Constraints over the trace layout of stark_engine.witness.counter_vm, with
z_r = 1 - r * inv_r (1 when register r is 0, else 0):

Consistency (every row):
    s_k * (s_k - 1) = 0                 selectors are boolean
    sum_k s_k - 1 = 0                   exactly one selector set
    ip - sum_k k * s_k = 0              selector matches ip
    r * z_r = 0, inv_r * z_r = 0        inv_r is r^-1, or 0 when r is 0
    s_k * z_r = 0                       for every DEC r at k: r is non-zero

Transition (row i to row i+1):
    ip'  = sum_k s_k * next_ip_k        next_ip_k depends on the instruction at k
    a'   = a + sum_{INC a} s_k - sum_{DEC a} s_k
    b'   = b + sum_{INC b} s_k - sum_{DEC b} s_k
    out' = out + sum_{OUT r} s_k * (r - out)

Boundary: ip = 0, a = a0, b = b0, out = 0 on the first row; out = output
and ip = halt address on the last row. Public inputs are (a0, b0, output).
"""

from typing import Dict, List, Optional, Sequence, Tuple

from stark_engine.constraints.base import (
    BoundaryConstraint,
    ConstraintContext,
    ConstraintKind,
    Value,
    standard_vanishing_polynomial,
)
from stark_engine.primitives.field import FF, to_field
from stark_engine.witness.counter_vm import REGISTERS, Opcode, Program


class CounterVmAir:
    """AIR for the execution of one fixed counter VM program."""

    constants: Sequence[str] = ()
    num_public_inputs = 3

    def __init__(self, program: Program):
        self.program = program
        self.name = "counter_vm"
        self.columns: Sequence[str] = tuple(program.column_names())
        self._selectors = [f"s_{k}" for k in range(len(program))]

        ops = [ins.opcode for ins in program.instructions]
        has_jnz = Opcode.JNZ in ops
        has_out = Opcode.OUT in ops
        n_sel = len(program)
        self._decrements = [
            (k, ins.register) for k, ins in enumerate(program.instructions) if ins.opcode is Opcode.DEC
        ]
        self.consistency_degrees: Sequence[int] = tuple(
            [2] * n_sel + [1, 1] + [3] * (2 * len(REGISTERS)) + [3] * len(self._decrements)
        )
        self.transition_degrees: Sequence[int] = (
            3 if has_jnz else 1,
            1,
            1,
            2 if has_out else 1,
        )

    # --- Constraints ---

    def constant_values(self, trace_length: int) -> Dict[str, List[int]]:
        return {}

    def _zero_flag(self, ctx: ConstraintContext, register: str) -> Value:
        return FF(1) - ctx.col(register) * ctx.col(f"inv_{register}")

    def consistency_constraints(self, ctx: ConstraintContext) -> List[Value]:
        one = FF(1)
        constraints = []
        selectors = [ctx.col(s) for s in self._selectors]
        for s in selectors:
            constraints.append(s * (s - one))

        total = selectors[0]
        ip_from_selectors = selectors[0] * FF(0)
        for k, s in enumerate(selectors[1:], start=1):
            total = total + s
            ip_from_selectors = ip_from_selectors + s * FF(k)
        constraints.append(total - one)
        constraints.append(ctx.col("ip") - ip_from_selectors)

        for r in REGISTERS:
            z = self._zero_flag(ctx, r)
            constraints.append(ctx.col(r) * z)
            constraints.append(ctx.col(f"inv_{r}") * z)
        for k, r in self._decrements:
            constraints.append(ctx.col(self._selectors[k]) * self._zero_flag(ctx, r))
        return constraints

    def transition_constraints(self, ctx: ConstraintContext) -> List[Value]:
        next_ip = ctx.x * FF(0)
        delta = {r: ctx.x * FF(0) for r in REGISTERS}
        out_delta = ctx.x * FF(0)
        out_value = ctx.col("out")

        for k, ins in enumerate(self.program.instructions):
            s = ctx.col(self._selectors[k])
            op = ins.opcode
            if op is Opcode.JNZ:
                z = self._zero_flag(ctx, ins.register)
                taken = FF(1) - z
                next_ip = next_ip + s * (taken * FF(ins.target) + z * FF(k + 1))
            elif op is Opcode.JMP:
                next_ip = next_ip + s * FF(ins.target)
            elif op is Opcode.HALT:
                next_ip = next_ip + s * FF(k)
            else:
                next_ip = next_ip + s * FF(k + 1)

            if op is Opcode.INC:
                delta[ins.register] = delta[ins.register] + s
            elif op is Opcode.DEC:
                delta[ins.register] = delta[ins.register] - s
            elif op is Opcode.OUT:
                out_delta = out_delta + s * (ctx.col(ins.register) - out_value)

        return [
            ctx.next_col("ip") - next_ip,
            ctx.next_col("a") - ctx.col("a") - delta["a"],
            ctx.next_col("b") - ctx.col("b") - delta["b"],
            ctx.next_col("out") - out_value - out_delta,
        ]

    def boundary_constraints(self, trace_length: int, public_inputs: Sequence[int]) -> List[BoundaryConstraint]:
        if len(public_inputs) != self.num_public_inputs:
            raise ValueError(
                f"counter VM statement has {self.num_public_inputs} public inputs, got {len(public_inputs)}"
            )
        a0, b0, output = (int(to_field(v)) for v in public_inputs)
        last = trace_length - 1
        return [
            BoundaryConstraint(0, "ip", 0),
            BoundaryConstraint(0, "a", a0),
            BoundaryConstraint(0, "b", b0),
            BoundaryConstraint(0, "out", 0),
            BoundaryConstraint(last, "out", output),
            BoundaryConstraint(last, "ip", self.program.halt_address),
        ]

    def vanishing_polynomial(
        self, kind: ConstraintKind, x: Value, trace_length: int, row: Optional[int] = None
    ) -> Tuple[Value, Value]:
        return standard_vanishing_polynomial(kind, x, trace_length, row)
