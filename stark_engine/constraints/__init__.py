"""AIR definitions.

Each computation kind provides its own AIR object satisfying the `Air`
protocol. AIR_REGISTRY maps AIR names (as recorded in proofs) to factories.
"""

from typing import Callable

from .base import (
    Air,
    BoundaryConstraint,
    ConstraintContext,
    ConstraintKind,
    ProverConstraintContext,
    VerifierConstraintContext,
    quotient_degree_bound,
    standard_vanishing_polynomial,
    validate_air,
)
from .counter_vm import CounterVmAir
from .rescue_prime import RescuePrimeAir

# Registry mapping AIR names to AIR factories
AIR_REGISTRY: dict[str, Callable[..., Air]] = {
    "counter_vm": CounterVmAir,
    "rescue_prime": RescuePrimeAir,
}


def get_air(air_name: str, *args, **kwargs) -> Air:
    """Build the AIR registered under air_name.

    Args:
        air_name: Name of the AIR (e.g., 'counter_vm', 'rescue_prime')
        *args, **kwargs: Forwarded to the factory (the counter VM needs its program)

    Raises:
        KeyError: If no AIR is registered under that name
    """
    if air_name not in AIR_REGISTRY:
        raise KeyError(
            f"No AIR registered as '{air_name}'. "
            f"Available: {list(AIR_REGISTRY.keys())}"
        )
    return AIR_REGISTRY[air_name](*args, **kwargs)


__all__ = [
    "Air",
    "BoundaryConstraint",
    "ConstraintContext",
    "ConstraintKind",
    "ProverConstraintContext",
    "VerifierConstraintContext",
    "CounterVmAir",
    "RescuePrimeAir",
    "AIR_REGISTRY",
    "get_air",
    "quotient_degree_bound",
    "standard_vanishing_polynomial",
    "validate_air",
]
