"""
Pytest configuration and shared fixtures.

Field arithmetic runs on galois object arrays, so every fixture keeps the
trace and evaluation domains small.
"""

import pytest

from stark_engine.constraints import CounterVmAir, RescuePrimeAir
from stark_engine.witness import countdown_program, hash_elements, run_program


@pytest.fixture(scope="session")
def countdown():
    return countdown_program()


@pytest.fixture(scope="session")
def countdown_run(countdown):
    """b += a with a = 2: 8 cycles, trace of 8 rows, output 2."""
    return run_program(countdown, a=2)


@pytest.fixture(scope="session")
def counter_air(countdown) -> CounterVmAir:
    return CounterVmAir(countdown)


@pytest.fixture(scope="session")
def rescue_hash():
    return hash_elements([1, 2])


@pytest.fixture(scope="session")
def rescue_air() -> RescuePrimeAir:
    return RescuePrimeAir()
