"""Constraint composition.

Every constraint is divided by its vanishing polynomial, giving a quotient
with a known degree bound when the trace is valid:

    transition   T(x) * (x - omega^(N-1)) / (x^N - 1)
    consistency  C(x) / (x^N - 1)
    boundary     (t(x) - v) / (x - omega^row)

The quotients and the trace columns themselves (bound N - 1) are the
components of the composition polynomial. Each component g with bound d_g
enters as

    (a_g + b_g * x^(L - 1 - d_g)) * g(x)

with transcript weights a_g, b_g drawn from GF(p^3), so the composition has
degree < L exactly when every component meets its own bound; FRI then tests
that single FF3 polynomial. The prover evaluates all of this over the
evaluation domain; the verifier evaluates the same expression at queried
points from opened rows.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from stark_engine.constraints.base import (
    Air,
    BoundaryConstraint,
    ConstraintContext,
    ConstraintKind,
    ProverConstraintContext,
    Value,
    VerifierConstraintContext,
    invert,
)
from stark_engine.errors import ConstraintDegreeExceeded, MalformedTrace
from stark_engine.primitives.field import (
    FF,
    FF3,
    FIELD_EXTENSION_DEGREE,
    evaluate_polynomial,
    ff3_array,
    ff3_coeffs,
    to_field,
    to_ints,
)
from stark_engine.primitives.ntt import extend_pol
from stark_engine.primitives.parallel import parallel_map
from stark_engine.primitives.polynomial import degree, to_coefficients
from stark_engine.primitives.transcript import Transcript
from stark_engine.protocol.domain import StarkDomain
from stark_engine.witness.base import TraceTable

logger = logging.getLogger(__name__)

Weights = List[Tuple[FF3, FF3]]


# --- Constant Columns ---

class ConstantColumns:
    """Public constant columns of an AIR, in every form the protocol needs."""

    def __init__(self, air: Air, domain: StarkDomain):
        self.domain = domain
        raw = air.constant_values(domain.trace_length) if air.constants else {}
        missing = set(air.constants) - set(raw)
        if missing:
            raise ValueError(f"AIR '{air.name}' provides no values for constants {sorted(missing)}")
        self.values: Dict[str, FF] = {name: to_field(raw[name]) for name in air.constants}
        self.coefficients: Dict[str, List[int]] = {
            name: to_ints(to_coefficients(values)) for name, values in self.values.items()
        }

    def codewords(self, num_workers: Optional[int] = None) -> Dict[str, FF]:
        """Constant columns extended onto the evaluation domain (prover side)."""
        names = list(self.values)
        extended = parallel_map(
            lambda name: extend_pol(self.values[name], self.domain.extended_size, self.domain.offset),
            names,
            num_workers,
        )
        return dict(zip(names, extended))

    def evaluate(self, x: FF) -> Dict[str, FF]:
        """Constant columns at a single point (verifier side)."""
        return {name: evaluate_polynomial(coeffs, x) for name, coeffs in self.coefficients.items()}


# --- Components ---

@dataclass(frozen=True)
class Component:
    label: str
    value: Value
    bound: int


def num_components(air: Air, num_boundary: int) -> int:
    return len(air.transition_degrees) + len(air.consistency_degrees) + num_boundary + len(air.columns)


def draw_weights(transcript: Transcript, count: int) -> Weights:
    """Two FF3 weights per component, squeezed in component order."""
    return [
        (transcript.squeeze_extension_element(), transcript.squeeze_extension_element())
        for _ in range(count)
    ]


def composition_components(
    air: Air,
    ctx: ConstraintContext,
    domain: StarkDomain,
    boundary: Sequence[BoundaryConstraint],
) -> List[Component]:
    """Quotients and trace columns at the context's point(s), in weight order.

    Works on arrays (prover) and scalars (verifier) alike.
    """
    x = ctx.x
    n = domain.trace_length
    components: List[Component] = []

    transitions = air.transition_constraints(ctx)
    if len(transitions) != len(air.transition_degrees):
        raise ValueError(
            f"AIR '{air.name}' returned {len(transitions)} transition constraints, "
            f"declared {len(air.transition_degrees)}"
        )
    if transitions:
        num, den = air.vanishing_polynomial(ConstraintKind.TRANSITION, x, n)
        factor = den * invert(num)
        for i, (t, bound) in enumerate(zip(transitions, domain.transition_bounds)):
            components.append(Component(f"transition[{i}]", t * factor, bound))

    consistency = air.consistency_constraints(ctx)
    if len(consistency) != len(air.consistency_degrees):
        raise ValueError(
            f"AIR '{air.name}' returned {len(consistency)} consistency constraints, "
            f"declared {len(air.consistency_degrees)}"
        )
    if consistency:
        num, den = air.vanishing_polynomial(ConstraintKind.CONSISTENCY, x, n)
        factor = den * invert(num)
        for i, (c, bound) in enumerate(zip(consistency, domain.consistency_bounds)):
            components.append(Component(f"consistency[{i}]", c * factor, bound))

    row_factors: Dict[int, Value] = {}
    for i, bc in enumerate(boundary):
        if bc.row not in row_factors:
            num, den = air.vanishing_polynomial(ConstraintKind.BOUNDARY, x, n, bc.row)
            row_factors[bc.row] = den * invert(num)
        value = (ctx.col(bc.column) - FF(bc.value)) * row_factors[bc.row]
        components.append(Component(f"boundary[{i}]", value, domain.boundary_bound))

    for name in air.columns:
        components.append(Component(f"column[{name}]", ctx.col(name), domain.column_bound))
    return components


def combine(
    components: Sequence[Component], weights: Weights, x: Value, domain: StarkDomain
) -> Tuple[Value, Value, Value]:
    """Coordinates (c0, c1, c2) of sum_g (a_g + b_g * x^(L - 1 - d_g)) * g.

    Components are base field and weights FF3, so coordinate j of the sum only
    involves coordinate j of each weight.
    """
    if len(weights) != len(components):
        raise ValueError(f"{len(weights)} weights for {len(components)} components")
    top = domain.composition_degree_bound
    shift_cache: Dict[int, Value] = {}
    coords = [x * FF(0) for _ in range(FIELD_EXTENSION_DEGREE)]
    for comp, (a, b) in zip(components, weights):
        exponent = top - comp.bound
        if exponent not in shift_cache:
            shift_cache[exponent] = x ** exponent
        shifted = shift_cache[exponent] * comp.value
        for j, (aj, bj) in enumerate(zip(ff3_coeffs(a), ff3_coeffs(b))):
            coords[j] = coords[j] + FF(aj) * comp.value + FF(bj) * shifted
    return coords[0], coords[1], coords[2]


# --- Prover ---

class Composer:
    """Builds the composition codeword (prover) and re-evaluates it (verifier)."""

    def __init__(
        self,
        air: Air,
        domain: StarkDomain,
        public_inputs: Sequence[int],
        num_workers: Optional[int] = None,
    ):
        self.air = air
        self.domain = domain
        self.public_inputs = list(public_inputs)
        self.num_workers = num_workers
        self.boundary = air.boundary_constraints(domain.trace_length, self.public_inputs)
        for bc in self.boundary:
            if not 0 <= bc.row < domain.trace_length or bc.column not in air.columns:
                raise ValueError(f"boundary constraint {bc} outside the trace")
        self.constants = ConstantColumns(air, domain)

    @property
    def num_weights(self) -> int:
        return num_components(self.air, len(self.boundary))

    def check_trace(self, trace: TraceTable) -> None:
        """Evaluate every constraint on the trace domain.

        Raises:
            MalformedTrace: naming the first violated constraint and row
        """
        n = trace.length
        ctx = ProverConstraintContext(
            trace.to_field_columns(), self.constants.values, 1, self.domain.trace_points()
        )
        for i, values in enumerate(self.air.transition_constraints(ctx)):
            bad = [r for r, v in enumerate(to_ints(values)[: n - 1]) if v]
            if bad:
                raise MalformedTrace(f"AIR '{self.air.name}' transition constraint {i} violated at row {bad[0]}")
        for i, values in enumerate(self.air.consistency_constraints(ctx)):
            bad = [r for r, v in enumerate(to_ints(values)) if v]
            if bad:
                raise MalformedTrace(f"AIR '{self.air.name}' consistency constraint {i} violated at row {bad[0]}")
        for bc in self.boundary:
            actual = trace.rows[bc.row][trace.columns.index(bc.column)]
            if actual != bc.value:
                raise MalformedTrace(
                    f"AIR '{self.air.name}' boundary constraint violated: "
                    f"{bc.column}[{bc.row}] = {actual}, expected {bc.value}"
                )

    def compose(
        self,
        trace_codewords: Dict[str, FF],
        transcript: Transcript,
        check_degrees: bool = True,
    ) -> Tuple[FF3, Weights]:
        """Squeeze the FF3 weights and build the FF3 composition codeword.

        Raises:
            ConstraintDegreeExceeded: if check_degrees and a quotient exceeds its bound
        """
        weights = draw_weights(transcript, self.num_weights)
        x = self.domain.points()
        ctx = ProverConstraintContext(trace_codewords, self.constants.codewords(self.num_workers), self.domain.step, x)
        components = composition_components(self.air, ctx, self.domain, self.boundary)
        if check_degrees:
            parallel_map(self._check_degree, components, self.num_workers)
        codeword = ff3_array(*combine(components, weights, x, self.domain))
        logger.debug(
            "Composed %d components, degree bound %d on %d points",
            len(components), self.domain.composition_degree_bound, self.domain.extended_size,
        )
        return codeword, weights

    def _check_degree(self, component: Component) -> None:
        coeffs = to_coefficients(component.value, self.domain.offset)
        actual = degree(coeffs)
        if actual > component.bound:
            raise ConstraintDegreeExceeded(
                f"AIR '{self.air.name}' {component.label} quotient has degree {actual}, bound {component.bound}"
            )

    # --- Verifier ---

    def evaluate_at(
        self,
        index: int,
        row: Sequence[int],
        next_row: Sequence[int],
        weights: Weights,
    ) -> FF3:
        """Composition value at evaluation-domain index from opened trace rows."""
        columns = self.air.columns
        if len(row) != len(columns) or len(next_row) != len(columns):
            raise ValueError(f"opened row width does not match AIR '{self.air.name}'")
        x = self.domain.point(index)
        x_next = x * self.domain.omega_trace
        ctx = VerifierConstraintContext(
            row=dict(zip(columns, (FF(v) for v in row))),
            next_row=dict(zip(columns, (FF(v) for v in next_row))),
            constants=self.constants.evaluate(x),
            next_constants=self.constants.evaluate(x_next),
            x=x,
        )
        components = composition_components(self.air, ctx, self.domain, self.boundary)
        return ff3_array(*combine(components, weights, x, self.domain))
