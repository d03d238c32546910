"""Tests for the Rescue-Prime permutation, its trace and its AIR."""

import pytest

from stark_engine.constraints.base import validate_air
from stark_engine.errors import MalformedTrace
from stark_engine.primitives.field import GOLDILOCKS_PRIME as P
from stark_engine.protocol.composition import Composer
from stark_engine.protocol.config import StarkConfig
from stark_engine.protocol.domain import StarkDomain
from stark_engine.witness.rescue_prime import (
    ALPHA,
    ALPHA_INV,
    MDS,
    MDS_INV,
    ROUNDS,
    WIDTH,
    constant_columns,
    hash_elements,
    permutation_states,
    permute,
    round_constants,
)


class TestParameters:

    def test_alpha_inverse(self) -> None:
        assert ALPHA * ALPHA_INV % (P - 1) == 1
        x = 123456789
        assert pow(pow(x, ALPHA, P), ALPHA_INV, P) == x

    def test_mds_inverse(self) -> None:
        for i in range(WIDTH):
            for j in range(WIDTH):
                v = sum(MDS[i][k] * MDS_INV[k][j] for k in range(WIDTH)) % P
                assert v == (1 if i == j else 0)

    def test_round_constants_are_fixed(self) -> None:
        c0, c1 = round_constants(0)
        assert len(c0) == len(c1) == WIDTH
        assert round_constants(0) == (c0, c1)
        assert round_constants(1) != (c0, c1)


class TestPermutation:

    def test_states_per_round(self) -> None:
        states = permutation_states([1, 2, 0, 0])
        assert len(states) == ROUNDS + 1
        assert states[0] == [1, 2, 0, 0]
        assert states[-1] == permute([1, 2, 0, 0])

    def test_permutation_is_injective_on_samples(self) -> None:
        outputs = {tuple(permute([i, 0, 0, 0])) for i in range(8)}
        assert len(outputs) == 8

    def test_wrong_width_raises(self) -> None:
        with pytest.raises(ValueError):
            permute([1, 2, 3])

    def test_hash_elements(self, rescue_hash) -> None:
        assert rescue_hash.trace.length == 8
        assert rescue_hash.trace.width == WIDTH
        assert rescue_hash.public_inputs == rescue_hash.digest
        assert list(rescue_hash.digest) == permute([1, 2, 0, 0])[:2]

    @pytest.mark.parametrize("inputs", [[], [1, 2, 3]])
    def test_hash_input_count(self, inputs) -> None:
        with pytest.raises(ValueError):
            hash_elements(inputs)

    def test_constant_columns(self) -> None:
        columns = constant_columns(8)
        assert len(columns) == 2 * WIDTH
        assert columns["c0_0"][0] == round_constants(0)[0][0]
        assert columns["c1_3"][ROUNDS - 1] == round_constants(ROUNDS - 1)[1][3]
        assert all(col[ROUNDS] == 0 for col in columns.values())


class TestRescuePrimeAir:

    def test_validates(self, rescue_air) -> None:
        validate_air(rescue_air)

    def test_boundary_constraints(self, rescue_air, rescue_hash) -> None:
        constraints = rescue_air.boundary_constraints(8, rescue_hash.public_inputs)
        cells = {(bc.row, bc.column): bc.value for bc in constraints}
        assert cells == {
            (0, "s2"): 0,
            (0, "s3"): 0,
            (7, "s0"): rescue_hash.digest[0],
            (7, "s1"): rescue_hash.digest[1],
        }

    def test_fixed_trace_length(self, rescue_air, rescue_hash) -> None:
        with pytest.raises(ValueError):
            rescue_air.boundary_constraints(16, rescue_hash.public_inputs)

    def test_honest_trace_satisfies_constraints(self, rescue_air, rescue_hash) -> None:
        domain = StarkDomain.for_air(rescue_air, 8, StarkConfig(expansion_factor=2))
        Composer(rescue_air, domain, rescue_hash.public_inputs, num_workers=1).check_trace(rescue_hash.trace)

    def test_tampered_round_detected(self, rescue_air, rescue_hash) -> None:
        domain = StarkDomain.for_air(rescue_air, 8, StarkConfig(expansion_factor=2))
        composer = Composer(rescue_air, domain, rescue_hash.public_inputs, num_workers=1)
        bad = rescue_hash.trace.with_cell(3, "s1", rescue_hash.trace.row(3)["s1"] + 1)
        with pytest.raises(MalformedTrace, match="transition constraint"):
            composer.check_trace(bad)

    def test_wrong_digest_detected(self, rescue_air, rescue_hash) -> None:
        domain = StarkDomain.for_air(rescue_air, 8, StarkConfig(expansion_factor=2))
        wrong = (rescue_hash.digest[0] + 1, rescue_hash.digest[1])
        composer = Composer(rescue_air, domain, wrong, num_workers=1)
        with pytest.raises(MalformedTrace, match="boundary"):
            composer.check_trace(rescue_hash.trace)
