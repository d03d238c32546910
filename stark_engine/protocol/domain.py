"""Evaluation domains and degree bounds of one proof instance.

Trace domain H = <omega_N> of size N (the trace length). Evaluation domain
D = SHIFT * <omega_M> with M = L * expansion_factor, where L is the
composition length: the smallest power of two above every quotient degree
bound, and at least N. One trace row corresponds to M / N positions of D.
"""

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from stark_engine.constraints.base import Air, ConstraintKind, quotient_degree_bound
from stark_engine.errors import DomainSizeMismatch
from stark_engine.primitives.field import (
    FF,
    MAX_TWO_ADICITY,
    SHIFT,
    domain_points,
    get_omega,
    is_power_of_two,
    log2_exact,
)
from stark_engine.protocol.config import StarkConfig


@dataclass(frozen=True)
class StarkDomain:
    """Domain sizes, generators and per-component degree bounds."""
    trace_length: int
    composition_length: int
    expansion_factor: int
    transition_bounds: Tuple[int, ...] = field(default_factory=tuple)
    consistency_bounds: Tuple[int, ...] = field(default_factory=tuple)
    boundary_bound: int = 0

    @classmethod
    def for_air(cls, air: Air, trace_length: int, config: StarkConfig) -> "StarkDomain":
        """Derive the domain for proving `air` over a trace of `trace_length` rows.

        Raises:
            DomainSizeMismatch: trace length not a power of two >= 2, or above
                the configured maximum, or the evaluation domain too large for
                the field's two-adicity
        """
        if not is_power_of_two(trace_length) or trace_length < 2:
            raise DomainSizeMismatch(f"trace length {trace_length} is not a power of two >= 2")
        if trace_length > config.max_trace_length:
            raise DomainSizeMismatch(
                f"trace length {trace_length} exceeds configured maximum {config.max_trace_length}"
            )
        n = trace_length
        transition = tuple(quotient_degree_bound(ConstraintKind.TRANSITION, d, n) for d in air.transition_degrees)
        consistency = tuple(quotient_degree_bound(ConstraintKind.CONSISTENCY, d, n) for d in air.consistency_degrees)
        boundary = quotient_degree_bound(ConstraintKind.BOUNDARY, 1, n)

        max_bound = max((n - 1, boundary) + transition + consistency)
        composition_length = max(n, 1 << max_bound.bit_length())
        domain = cls(
            trace_length=n,
            composition_length=composition_length,
            expansion_factor=config.expansion_factor,
            transition_bounds=transition,
            consistency_bounds=consistency,
            boundary_bound=boundary,
        )
        if domain.extended_bits > MAX_TWO_ADICITY:
            raise DomainSizeMismatch(f"evaluation domain 2^{domain.extended_bits} exceeds the field's two-adicity")
        return domain

    # --- Sizes ---

    @property
    def extended_size(self) -> int:
        return self.composition_length * self.expansion_factor

    @property
    def trace_bits(self) -> int:
        return log2_exact(self.trace_length)

    @property
    def extended_bits(self) -> int:
        return log2_exact(self.extended_size)

    @property
    def step(self) -> int:
        """Evaluation-domain positions per trace row."""
        return self.extended_size // self.trace_length

    @property
    def composition_degree_bound(self) -> int:
        return self.composition_length - 1

    @property
    def column_bound(self) -> int:
        return self.trace_length - 1

    # --- Generators & Points ---

    @property
    def offset(self) -> FF:
        return SHIFT

    @property
    def omega_trace(self) -> FF:
        return FF(get_omega(self.trace_bits))

    @property
    def omega(self) -> FF:
        """Generator of the evaluation domain's subgroup."""
        return FF(get_omega(self.extended_bits))

    def points(self) -> FF:
        """x_i = SHIFT * omega^i for i in [0, M)."""
        return domain_points(self.offset, self.omega, self.extended_size)

    def point(self, index: int) -> FF:
        return self.offset * self.omega ** index

    def trace_points(self) -> FF:
        return domain_points(1, self.omega_trace, self.trace_length)

    def next_index(self, index: int) -> int:
        """Evaluation-domain index of the next trace row."""
        return (index + self.step) % self.extended_size

    # --- Queries ---

    def query_pair(self, index: int) -> Tuple[int, int]:
        """The two evaluation-domain positions x and -x a query index opens."""
        half = self.extended_size // 2
        a = index % half
        return a, a + half

    def trace_query_positions(self, indices: Sequence[int]) -> List[int]:
        """Trace rows to open: both query positions and their next-row positions."""
        positions = set()
        for q in indices:
            for p in self.query_pair(q):
                positions.add(p)
                positions.add(self.next_index(p))
        return sorted(positions)
