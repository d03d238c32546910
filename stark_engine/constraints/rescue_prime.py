"""Rescue-Prime permutation AIR.

One transition per round, written so that only forward powers appear:

    MDS * cur^ALPHA + c0  =  (MDS^-1 * (next - c1))^ALPHA

Both sides equal the state halfway through the round. Round constants are
constant columns the verifier evaluates itself. Boundary: the capacity is
zero on the first row, the rate part of the last row is the claimed digest
(the public inputs).
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
from stark_engine.witness.rescue_prime import (
    ALPHA,
    CONSTANT_COLUMNS,
    MDS,
    MDS_INV,
    RATE,
    ROUNDS,
    STATE_COLUMNS,
    WIDTH,
    constant_columns,
)


def _mat_vec(matrix, vector: List[Value]) -> List[Value]:
    result = []
    for row in matrix:
        acc = vector[0] * FF(row[0])
        for coeff, v in zip(row[1:], vector[1:]):
            acc = acc + v * FF(coeff)
        result.append(acc)
    return result


class RescuePrimeAir:
    """AIR for one Rescue-Prime permutation call hashing RATE elements."""

    name = "rescue_prime"
    columns: Sequence[str] = STATE_COLUMNS
    constants: Sequence[str] = CONSTANT_COLUMNS
    num_public_inputs = RATE
    transition_degrees: Sequence[int] = (ALPHA,) * WIDTH
    consistency_degrees: Sequence[int] = ()

    trace_length = ROUNDS + 1

    def constant_values(self, trace_length: int) -> Dict[str, List[int]]:
        return constant_columns(trace_length)

    def transition_constraints(self, ctx: ConstraintContext) -> List[Value]:
        cur = [ctx.col(c) ** ALPHA for c in STATE_COLUMNS]
        forward = [
            v + ctx.const(f"c0_{i}")
            for i, v in enumerate(_mat_vec(MDS, cur))
        ]
        shifted = [ctx.next_col(c) - ctx.const(f"c1_{i}") for i, c in enumerate(STATE_COLUMNS)]
        backward = [v ** ALPHA for v in _mat_vec(MDS_INV, shifted)]
        return [f - b for f, b in zip(forward, backward)]

    def consistency_constraints(self, ctx: ConstraintContext) -> List[Value]:
        return []

    def boundary_constraints(self, trace_length: int, public_inputs: Sequence[int]) -> List[BoundaryConstraint]:
        if len(public_inputs) != RATE:
            raise ValueError(f"Rescue-Prime statement has {RATE} public inputs, got {len(public_inputs)}")
        if trace_length != self.trace_length:
            raise ValueError(f"Rescue-Prime trace has {self.trace_length} rows, got {trace_length}")
        last = trace_length - 1
        constraints = [BoundaryConstraint(0, STATE_COLUMNS[i], 0) for i in range(RATE, WIDTH)]
        constraints += [
            BoundaryConstraint(last, STATE_COLUMNS[i], int(to_field(public_inputs[i])))
            for i in range(RATE)
        ]
        return constraints

    def vanishing_polynomial(
        self, kind: ConstraintKind, x: Value, trace_length: int, row: Optional[int] = None
    ) -> Tuple[Value, Value]:
        return standard_vanishing_polynomial(kind, x, trace_length, row)
