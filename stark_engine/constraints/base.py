"""AIR capability interface and constraint evaluation contexts.

An AIR is anything that satisfies the `Air` protocol: it names its trace
columns and constant columns, evaluates its transition and consistency
constraints through a ConstraintContext, lists its boundary constraints for a
given statement, and builds the vanishing polynomial of each constraint kind.

ConstraintContext provides a uniform interface for constraint evaluation that
works for both prover (returns arrays) and verifier (returns scalars). The
same constraint code can be used in both contexts thanks to galois
broadcasting.

Example:
    def eval_constraint(ctx: ConstraintContext):
        a = ctx.col('a')
        return ctx.next_col('a') - a * a

    # Works for prover (arrays over the evaluation domain)
    prover_result = eval_constraint(ProverConstraintContext(columns, constants, step, x))

    # Works for verifier (scalars at one queried point)
    verifier_result = eval_constraint(VerifierConstraintContext(row, next_row, consts, next_consts, x))
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Protocol, Sequence, Tuple, Union, runtime_checkable

import numpy as np

from stark_engine.primitives.field import FF, batch_inverse, get_omega, log2_exact

# Type aliases for clarity
FFPoly = FF  # Array of base field elements (prover side)
Value = Union[FFPoly, FF]


class ConstraintKind(Enum):
    """Where a constraint must hold on the trace domain."""
    TRANSITION = "transition"    # rows 0..N-2, relating row i to row i+1
    CONSISTENCY = "consistency"  # every row
    BOUNDARY = "boundary"        # one fixed row


@dataclass(frozen=True)
class BoundaryConstraint:
    """column must equal value at row."""
    row: int
    column: str
    value: int


# --- Constraint Contexts ---

class ConstraintContext(ABC):
    """Uniform interface for constraint evaluation - works for prover and verifier."""

    @abstractmethod
    def col(self, name: str) -> Value:
        """Get column at current row.

        Returns:
            Prover: array of values at all domain points
            Verifier: scalar value at the queried point
        """

    @abstractmethod
    def next_col(self, name: str) -> Value:
        """Get column at next row (offset +1)."""

    @abstractmethod
    def const(self, name: str) -> Value:
        """Get constant column at current row."""

    @abstractmethod
    def next_const(self, name: str) -> Value:
        """Get constant column at next row (offset +1)."""

    @property
    @abstractmethod
    def x(self) -> Value:
        """Domain point(s) the context is evaluated at."""


class ProverConstraintContext(ConstraintContext):
    """Prover implementation - returns codeword arrays.

    The prover evaluates constraints at all domain points simultaneously. On
    the evaluation domain the next row lives `step` positions further on
    (step = extended size / trace length); on the trace domain step is 1.
    """

    def __init__(self, columns: Dict[str, FFPoly], constants: Dict[str, FFPoly], step: int, x: FFPoly):
        self._columns = columns
        self._constants = constants
        self._x = x
        n = len(x)
        self._next_index = (np.arange(n) + step) % n

    def col(self, name: str) -> FFPoly:
        return self._columns[name]

    def next_col(self, name: str) -> FFPoly:
        return self._columns[name][self._next_index]

    def const(self, name: str) -> FFPoly:
        return self._constants[name]

    def next_const(self, name: str) -> FFPoly:
        return self._constants[name][self._next_index]

    @property
    def x(self) -> FFPoly:
        return self._x


class VerifierConstraintContext(ConstraintContext):
    """Verifier implementation - returns scalar values at one queried point.

    Column values come from the opened trace rows at the queried index and at
    the index one trace row later; constant columns are evaluated by the
    verifier itself.
    """

    def __init__(
        self,
        row: Dict[str, FF],
        next_row: Dict[str, FF],
        constants: Dict[str, FF],
        next_constants: Dict[str, FF],
        x: FF,
    ):
        self._row = row
        self._next_row = next_row
        self._constants = constants
        self._next_constants = next_constants
        self._x = x

    def col(self, name: str) -> FF:
        return self._row[name]

    def next_col(self, name: str) -> FF:
        return self._next_row[name]

    def const(self, name: str) -> FF:
        return self._constants[name]

    def next_const(self, name: str) -> FF:
        return self._next_constants[name]

    @property
    def x(self) -> FF:
        return self._x


# --- AIR Capability Interface ---

@runtime_checkable
class Air(Protocol):
    """What the proving pipeline needs from a computation.

    Attributes:
        name: Identifier absorbed into the transcript
        columns: Trace column names, in commitment order
        constants: Constant column names (public, evaluated by the verifier)
        num_public_inputs: Length of the statement's public input vector
        transition_degrees: Degree of each transition constraint in the row variables
        consistency_degrees: Degree of each consistency constraint in the row variables
    """
    name: str
    columns: Sequence[str]
    constants: Sequence[str]
    num_public_inputs: int
    transition_degrees: Sequence[int]
    consistency_degrees: Sequence[int]

    def constant_values(self, trace_length: int) -> Dict[str, List[int]]:
        """Values of every constant column over the trace domain."""
        ...

    def transition_constraints(self, ctx: ConstraintContext) -> List[Value]:
        """Evaluate transition constraints (zero on rows 0..N-2 of a valid trace)."""
        ...

    def consistency_constraints(self, ctx: ConstraintContext) -> List[Value]:
        """Evaluate single-row constraints (zero on every row of a valid trace)."""
        ...

    def boundary_constraints(self, trace_length: int, public_inputs: Sequence[int]) -> List[BoundaryConstraint]:
        """Boundary constraints of the statement given by public_inputs."""
        ...

    def vanishing_polynomial(
        self, kind: ConstraintKind, x: Value, trace_length: int, row: Optional[int] = None
    ) -> Tuple[Value, Value]:
        """Vanishing polynomial of a constraint kind at x, as (numerator, denominator)."""
        ...


# --- Vanishing Polynomials ---

def standard_vanishing_polynomial(
    kind: ConstraintKind, x: Value, trace_length: int, row: Optional[int] = None
) -> Tuple[Value, Value]:
    """Vanishing polynomials over the trace domain <omega_N>.

    - TRANSITION: (x^N - 1) / (x - omega^(N-1)), zero on every row but the last
    - CONSISTENCY: x^N - 1, zero on every row
    - BOUNDARY: x - omega^row, zero on the given row
    """
    omega = FF(get_omega(log2_exact(trace_length)))
    one = FF(1)
    if kind is ConstraintKind.TRANSITION:
        return x ** trace_length - one, x - omega ** (trace_length - 1)
    if kind is ConstraintKind.CONSISTENCY:
        return x ** trace_length - one, x * FF(0) + one
    if kind is ConstraintKind.BOUNDARY:
        if row is None:
            raise ValueError("boundary vanishing polynomial needs a row")
        return x - omega ** row, x * FF(0) + one
    raise ValueError(f"unknown constraint kind {kind}")


def invert(values: Value) -> Value:
    """Inverse of a scalar or (batch) of an array."""
    if np.ndim(values) == 0:
        return values ** -1
    return batch_inverse(values)


# --- Degree Bounds ---

def quotient_degree_bound(kind: ConstraintKind, degree: int, trace_length: int) -> int:
    """Degree bound of constraint / vanishing polynomial for a valid trace.

    Trace columns interpolate to degree N - 1, so a degree-d constraint has
    degree d * (N - 1) before division.
    """
    n = trace_length
    if kind is ConstraintKind.TRANSITION:
        return degree * (n - 1) - (n - 1)
    if kind is ConstraintKind.CONSISTENCY:
        return degree * (n - 1) - n
    if kind is ConstraintKind.BOUNDARY:
        return n - 2
    raise ValueError(f"unknown constraint kind {kind}")


def validate_air(air: Air) -> None:
    """Structural checks on an AIR definition."""
    if not isinstance(air, Air):
        raise TypeError(f"{type(air).__name__} does not implement the Air interface")
    if len(set(air.columns)) != len(air.columns):
        raise ValueError(f"AIR '{air.name}' has duplicate column names")
    if set(air.columns) & set(air.constants):
        raise ValueError(f"AIR '{air.name}' reuses a trace column name for a constant")
    for d in list(air.transition_degrees) + list(air.consistency_degrees):
        if d < 1:
            raise ValueError(f"AIR '{air.name}' declares constraint degree {d} < 1")
