"""Tests for NTT implementation and polynomial helpers.

Verifies NTT/INTT operations and low-degree extension against direct
polynomial evaluation.
"""

import numpy as np
import pytest

from stark_engine.primitives.field import FF, SHIFT, domain_points, evaluate_polynomial, get_omega
from stark_engine.primitives.ntt import NTT, extend_pol
from stark_engine.primitives.polynomial import (
    degree,
    line_value_at,
    to_coefficients,
    to_evaluations,
    trim,
)


class TestNTT:
    """Test NTT operations."""

    @pytest.mark.parametrize("n_bits", [0, 1, 3, 5])
    def test_ntt_intt_roundtrip(self, n_bits: int) -> None:
        """INTT(NTT(x)) == x."""
        N = 1 << n_bits
        ntt = NTT(N)
        coeffs = FF.Random(N)
        assert np.array_equal(ntt.intt(ntt.ntt(coeffs)), coeffs)

    @pytest.mark.parametrize("n_bits", [2, 4])
    def test_ntt_matches_direct_evaluation(self, n_bits: int) -> None:
        """NTT output i is the polynomial evaluated at omega^i."""
        N = 1 << n_bits
        coeffs = FF.Random(N)
        evals = NTT(N).ntt(coeffs)
        points = domain_points(1, get_omega(n_bits), N)
        expected = evaluate_polynomial([int(c) for c in coeffs], points)
        assert np.array_equal(evals, expected)

    def test_ntt_linearity(self) -> None:
        """NTT(a*x + b*y) == a*NTT(x) + b*NTT(y)."""
        N = 16
        ntt = NTT(N)
        x = FF.Random(N)
        y = FF.Random(N)
        a, b = FF(5), FF(7)
        assert np.array_equal(ntt.ntt(a * x + b * y), a * ntt.ntt(x) + b * ntt.ntt(y))

    def test_ntt_pads_short_input(self) -> None:
        """A constant polynomial evaluates to the constant everywhere."""
        evals = NTT(8).ntt(FF([9]))
        assert np.array_equal(evals, FF([9] * 8))

    def test_too_many_coefficients_raises(self) -> None:
        with pytest.raises(ValueError):
            NTT(4).ntt(FF.Random(8))

    def test_coset_roundtrip(self) -> None:
        ntt = NTT(8)
        coeffs = FF.Random(8)
        assert np.array_equal(ntt.coset_intt(ntt.coset_ntt(coeffs)), coeffs)

    def test_coset_ntt_matches_direct_evaluation(self) -> None:
        coeffs = FF.Random(8)
        evals = NTT(8).coset_ntt(coeffs, SHIFT)
        expected = evaluate_polynomial([int(c) for c in coeffs], domain_points(SHIFT, get_omega(3), 8))
        assert np.array_equal(evals, expected)


class TestExtension:
    """Low-degree extension onto the evaluation coset."""

    @pytest.mark.parametrize("blowup", [2, 4])
    def test_extension_agrees_with_interpolant(self, blowup: int) -> None:
        n = 8
        evals = FF.Random(n)
        coeffs = [int(c) for c in to_coefficients(evals)]
        extended = extend_pol(evals, n * blowup)
        points = domain_points(SHIFT, get_omega((n * blowup).bit_length() - 1), n * blowup)
        assert np.array_equal(extended, evaluate_polynomial(coeffs, points))

    def test_extension_keeps_degree(self) -> None:
        evals = FF.Random(8)
        extended = extend_pol(evals, 32)
        assert degree(to_coefficients(extended, SHIFT)) <= 7

    def test_shrinking_raises(self) -> None:
        with pytest.raises(ValueError):
            extend_pol(FF.Random(8), 4)


class TestPolynomial:

    def test_degree_and_trim(self) -> None:
        assert degree([0, 0, 0]) == -1
        assert degree([1, 0, 3, 0]) == 2
        assert trim([1, 0, 3, 0, 0]) == [1, 0, 3]
        assert trim([0, 0]) == []

    def test_to_evaluations_roundtrip(self) -> None:
        coeffs = FF([1, 2, 3, 4])
        evals = to_evaluations(coeffs, 8, SHIFT)
        assert trim(to_coefficients(evals, SHIFT)) == [1, 2, 3, 4]

    def test_line_value_at(self) -> None:
        # line y = 3x + 1
        ax, bx, x = FF(2), FF(5), FF(11)
        ay, by = FF(7), FF(16)
        assert line_value_at(ax, ay, bx, by, x) == FF(34)
