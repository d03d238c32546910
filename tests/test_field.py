"""Tests for Goldilocks field helpers, the cubic extension and batch inversion."""

import numpy as np
import pytest

from stark_engine.primitives.field import (
    FF,
    FF3,
    GOLDILOCKS_PRIME,
    MAX_TWO_ADICITY,
    SHIFT,
    SHIFT_INV,
    batch_inverse,
    decode_elements,
    domain_points,
    encode_elements,
    evaluate_ff3_polynomial,
    evaluate_polynomial,
    ff3,
    ff3_array,
    ff3_coeffs,
    ff3_lift,
    ff3_rows,
    ff3_split,
    get_omega,
    get_omega_inv,
    log2_exact,
    powers,
    to_field,
)


class TestRootsOfUnity:
    """Precomputed root tables."""

    @pytest.mark.parametrize("n_bits", [1, 2, 5, 10, 32])
    def test_omega_has_exact_order(self, n_bits: int) -> None:
        w = FF(get_omega(n_bits))
        assert w ** (1 << n_bits) == FF(1)
        assert w ** (1 << (n_bits - 1)) == FF(GOLDILOCKS_PRIME - 1)

    @pytest.mark.parametrize("n_bits", [1, 3, 16, 32])
    def test_omega_inverse(self, n_bits: int) -> None:
        assert FF(get_omega(n_bits)) * FF(get_omega_inv(n_bits)) == FF(1)

    @pytest.mark.parametrize("n_bits", [1, 7, 20])
    def test_tables_are_successive_squares(self, n_bits: int) -> None:
        assert FF(get_omega(n_bits)) ** 2 == FF(get_omega(n_bits - 1))

    def test_out_of_range_raises(self) -> None:
        with pytest.raises(ValueError):
            get_omega(MAX_TWO_ADICITY + 1)
        with pytest.raises(ValueError):
            get_omega_inv(-1)

    def test_shift_inverse(self) -> None:
        assert SHIFT * SHIFT_INV == FF(1)


class TestConversions:

    def test_to_field_reduces_negative_and_large(self) -> None:
        values = to_field([-1, GOLDILOCKS_PRIME, GOLDILOCKS_PRIME + 5])
        assert [int(v) for v in values] == [GOLDILOCKS_PRIME - 1, 0, 5]

    def test_to_field_passes_arrays_through(self) -> None:
        a = FF([1, 2, 3])
        assert to_field(a) is a

    def test_encode_decode(self) -> None:
        values = [0, 1, GOLDILOCKS_PRIME - 1]
        data = encode_elements(values)
        assert len(data) == 24
        assert decode_elements(data) == values

    def test_decode_rejects_non_canonical(self) -> None:
        with pytest.raises(ValueError):
            decode_elements((GOLDILOCKS_PRIME).to_bytes(8, "little"))
        with pytest.raises(ValueError):
            decode_elements(b"\x00" * 7)

    @pytest.mark.parametrize("n", [1, 2, 1024])
    def test_log2_exact(self, n: int) -> None:
        assert 1 << log2_exact(n) == n

    def test_log2_exact_rejects_non_powers(self) -> None:
        with pytest.raises(ValueError):
            log2_exact(12)


class TestEvaluation:

    def test_powers(self) -> None:
        assert [int(v) for v in powers(3, 5)] == [1, 3, 9, 27, 81]

    def test_domain_points_are_a_coset(self) -> None:
        points = domain_points(SHIFT, get_omega(3), 8)
        assert points[0] == SHIFT
        assert len(set(int(p) for p in points)) == 8
        assert all(p ** 8 == SHIFT ** 8 for p in points)

    def test_evaluate_polynomial_scalar_and_array(self) -> None:
        coeffs = [5, 0, 2]  # 5 + 2x^2
        assert evaluate_polynomial(coeffs, 3) == FF(23)
        values = evaluate_polynomial(coeffs, FF([0, 1, 2]))
        assert [int(v) for v in values] == [5, 7, 13]


class TestBatchInverse:
    """Montgomery batch inversion."""

    def test_empty_array(self) -> None:
        assert len(batch_inverse(FF.Zeros(0))) == 0

    def test_single_element(self) -> None:
        result = batch_inverse(FF([12345]))
        assert result[0] * FF(12345) == FF(1)

    def test_matches_scalar_inversion(self) -> None:
        vals = [i * 7 + 13 for i in range(50)]
        batch_results = batch_inverse(FF(vals))
        for v, r in zip(vals, batch_results):
            assert FF(v) ** -1 == r

    def test_includes_large_elements(self) -> None:
        vals = FF([2, 3, GOLDILOCKS_PRIME - 1, 1 << 40])
        inv = batch_inverse(vals)
        assert np.array_equal(vals * inv, FF.Ones(4))

    def test_extension_elements(self) -> None:
        vals = FF3([3, 5, 1 << 70])
        assert np.array_equal(batch_inverse(vals) * vals, FF3.Ones(3))


class TestExtensionField:
    """GF(p^3) = GF(p)[X] / (X^3 - X - 1) and its coordinate helpers."""

    def test_modulus_relation(self) -> None:
        x = ff3([0, 1, 0])
        assert x ** 3 == x + FF3(1)

    def test_coefficient_order(self) -> None:
        assert ff3_coeffs(ff3([7, 8, 9])) == [7, 8, 9]

    def test_wrong_coefficient_count_raises(self) -> None:
        with pytest.raises(ValueError, match="3 coefficients"):
            ff3([1, 2])

    def test_lift_embeds_base_field(self) -> None:
        a, b = FF(GOLDILOCKS_PRIME - 2), FF(12345)
        assert ff3_coeffs(ff3_lift(a)) == [GOLDILOCKS_PRIME - 2, 0, 0]
        assert ff3_lift(a) * ff3_lift(b) == ff3_lift(a * b)
        assert np.array_equal(ff3_lift(FF([1, 2])), FF3([1, 2]))

    def test_inverse(self) -> None:
        a = ff3([11, 0, GOLDILOCKS_PRIME - 1])
        assert a * a ** -1 == FF3(1)

    def test_array_split_roundtrip(self) -> None:
        c0, c1, c2 = FF([1, 2, 3]), FF([4, 5, 6]), FF([7, 8, 9])
        values = ff3_array(c0, c1, c2)
        assert values[1] == ff3([2, 5, 8])
        for got, expected in zip(ff3_split(values), (c0, c1, c2)):
            assert np.array_equal(got, expected)
        assert ff3_rows(values) == [[1, 4, 7], [2, 5, 8], [3, 6, 9]]

    def test_evaluate_extension_polynomial(self) -> None:
        # (1) + (X) * t at t = 2
        assert evaluate_ff3_polynomial([[1, 0, 0], [0, 1, 0]], FF(2)) == ff3([1, 2, 0])
        assert evaluate_ff3_polynomial([], FF(2)) == FF3(0)
