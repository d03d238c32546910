"""
FRI Low-Degree Test Tests
=========================

What these tests cover:
    - fold_codeword(): one folding round halves domain and degree
    - Fri geometry: round and layer counts, query positions
    - Fri.prove() / Fri.verify(): standalone proofs, honest and dishonest
    - Final degree bound when the claimed degree is already below the threshold
"""

import dataclasses

import numpy as np
import pytest

from stark_engine.primitives.field import FF, FF3, GOLDILOCKS_PRIME, SHIFT, ff3, ff3_array, ff3_lift, get_omega
from stark_engine.primitives.polynomial import ff3_degree, ff3_to_coefficients, ff3_to_evaluations, ff3_trim
from stark_engine.primitives.transcript import Transcript
from stark_engine.protocol.fri import Fri, fold_codeword


def _codeword(coeffs, domain_size: int) -> FF3:
    """Base-field polynomial evaluated on the shifted domain, embedded in FF3."""
    zeros = [0] * len(coeffs)
    return ff3_to_evaluations(ff3_array(FF(coeffs), FF(zeros), FF(zeros)), domain_size, SHIFT)


def _ext_codeword(c0, c1, c2, domain_size: int) -> FF3:
    return ff3_to_evaluations(ff3_array(FF(c0), FF(c1), FF(c2)), domain_size, SHIFT)


def _fri(domain_size: int = 64, degree_length: int = 16, threshold: int = 4, queries: int = 8) -> Fri:
    return Fri(
        domain_length=domain_size,
        degree_length=degree_length,
        offset=SHIFT,
        omega=FF(get_omega(domain_size.bit_length() - 1)),
        final_degree_threshold=threshold,
        num_queries=queries,
        num_workers=1,
    )


# =============================================================================
# Folding
# =============================================================================

class TestFolding:

    @pytest.mark.parametrize("d", [1, 7, 15])
    def test_fold_halves_degree(self, d: int) -> None:
        """Fold a degree-d codeword on 64 points; interpolate the 32-point result."""
        coeffs = list(range(1, d + 2))
        folded = fold_codeword(_codeword(coeffs, 64), ff3([12345, 6, 7]), SHIFT, FF(get_omega(6)))
        assert len(folded) == 32
        assert ff3_degree(ff3_trim(ff3_to_coefficients(folded, SHIFT ** 2))) <= d // 2

    def test_fold_combines_even_and_odd_parts(self) -> None:
        """f(x) = f_e(x^2) + x f_o(x^2) folds to f_e + alpha * f_o."""
        coeffs = [3, 5, 7, 11, 13, 17, 19, 23]
        alpha = ff3([99, 2, 1])
        folded = fold_codeword(_codeword(coeffs, 32), alpha, SHIFT, FF(get_omega(5)))
        expected = ff3_lift(FF(coeffs[0::2])) + alpha * ff3_lift(FF(coeffs[1::2]))
        got = ff3_to_coefficients(folded, SHIFT ** 2)[:4]
        assert np.array_equal(got, expected)

    def test_fold_extension_codeword(self) -> None:
        codeword = _ext_codeword([1, 2, 3, 4], [5, 6, 7, 8], [9, 10, 11, 12], 32)
        folded = fold_codeword(codeword, ff3([4, 0, 1]), SHIFT, FF(get_omega(5)))
        assert ff3_degree(ff3_trim(ff3_to_coefficients(folded, SHIFT ** 2))) <= 1


# =============================================================================
# Geometry
# =============================================================================

class TestGeometry:

    def test_round_counts(self) -> None:
        assert _fri(64, 16, 4).num_rounds == 2
        assert _fri(64, 16, 16).num_rounds == 0
        assert _fri(64, 16, 16).num_layers == 1
        assert _fri(64, 4, 16).num_rounds == 0

    def test_final_degree_length(self) -> None:
        assert _fri(64, 16, 4).final_degree_length == 4
        assert _fri(64, 16, 16).final_degree_length == 16
        assert _fri(32, 4, 8).final_degree_length == 4

    def test_layer_domains_square(self) -> None:
        fri = _fri()
        assert fri.layer_size(2) == 16
        assert fri.layer_offset(2) == SHIFT ** 4
        assert fri.layer_point(1, 3) == fri.layer_point(0, 3) ** 2

    def test_query_positions_are_negations(self) -> None:
        fri = _fri()
        for q in (0, 5, 40, 63):
            a, b = fri.query_positions(q, 0)
            assert b == a + 32
            assert fri.layer_point(0, b) == -fri.layer_point(0, a)

    def test_no_redundancy_raises(self) -> None:
        with pytest.raises(ValueError):
            _fri(64, 64, 4)


# =============================================================================
# Prove / Verify
# =============================================================================

class TestFriProof:

    @pytest.mark.parametrize("threshold", [4, 16])
    def test_honest_proof_verifies(self, threshold: int) -> None:
        fri = _fri(threshold=threshold)
        codeword = _codeword(list(range(1, 17)), 64)
        proof = fri.prove(codeword, Transcript())
        assert len(proof.roots) == fri.num_layers
        assert len(proof.final_polynomial) <= threshold
        assert fri.verify(proof, Transcript())

    def test_extension_codeword_verifies(self) -> None:
        fri = _fri()
        codeword = _ext_codeword(list(range(16)), list(range(16, 32)), list(range(32, 48)), 64)
        assert fri.verify(fri.prove(codeword, Transcript()), Transcript())

    def test_folding_challenges_leave_base_field(self) -> None:
        """Folding a base-field codeword with extension challenges gives extension coefficients."""
        fri = _fri()
        proof = fri.prove(_codeword(list(range(1, 17)), 64), Transcript())
        assert all(len(c) == 3 for c in proof.final_polynomial)
        assert any(c[1] or c[2] for c in proof.final_polynomial)
        assert all(len(o.v) == 3 for layer in proof.openings for o in layer)

    def test_prove_is_deterministic(self) -> None:
        fri = _fri()
        codeword = _codeword([4, 3, 2, 1], 64)
        assert fri.prove(codeword, Transcript()) == fri.prove(codeword, Transcript())

    def test_high_degree_codeword_rejected(self) -> None:
        """A degree-40 codeword claimed to have degree < 16."""
        fri = _fri()
        codeword = _codeword([1] * 41, 64)
        proof = fri.prove(codeword, Transcript())
        assert ff3_degree(proof.final_polynomial) >= fri.final_degree_length
        assert not fri.verify(proof, Transcript())

    def test_claimed_bound_below_threshold(self) -> None:
        """Degree 6 claimed below 4 with threshold 8: no rounds, but the bound still holds."""
        fri = _fri(32, 4, threshold=8)
        assert fri.num_rounds == 0
        proof = fri.prove(_codeword([1] * 7, 32), Transcript())
        assert ff3_degree(proof.final_polynomial) == 6
        assert not fri.verify(proof, Transcript())

    def test_claimed_bound_below_threshold_honest(self) -> None:
        fri = _fri(32, 4, threshold=8)
        proof = fri.prove(_codeword([1, 2, 3, 4], 32), Transcript())
        assert fri.verify(proof, Transcript())

    def test_random_word_rejected(self) -> None:
        fri = _fri()
        proof = fri.prove(FF3.Random(64), Transcript())
        assert not fri.verify(proof, Transcript())

    def test_different_transcript_rejected(self) -> None:
        fri = _fri()
        proof = fri.prove(_codeword([1, 2, 3], 64), Transcript())
        assert not fri.verify(proof, Transcript(b"other"))

    def test_tampered_final_polynomial_rejected(self) -> None:
        fri = _fri()
        proof = fri.prove(_codeword(list(range(1, 17)), 64), Transcript())
        first = proof.final_polynomial[0]
        final = (((first[0] + 1) % GOLDILOCKS_PRIME,) + tuple(first[1:]),) + proof.final_polynomial[1:]
        assert not fri.verify(dataclasses.replace(proof, final_polynomial=final), Transcript())

    def test_base_field_final_polynomial_rejected(self) -> None:
        fri = _fri()
        proof = fri.prove(_codeword(list(range(1, 17)), 64), Transcript())
        final = tuple((c[0],) for c in proof.final_polynomial)
        assert not fri.verify(dataclasses.replace(proof, final_polynomial=final), Transcript())

    def test_missing_layer_rejected(self) -> None:
        fri = _fri()
        proof = fri.prove(_codeword(list(range(1, 17)), 64), Transcript())
        assert not fri.verify(dataclasses.replace(proof, roots=proof.roots[:-1]), Transcript())

    def test_swapped_opening_values_rejected(self) -> None:
        fri = _fri()
        proof = fri.prove(_codeword(list(range(1, 17)), 64), Transcript())
        layer0 = list(proof.openings[0])
        v = layer0[0].v
        layer0[0] = dataclasses.replace(layer0[0], v=(v[0], (v[1] + 1) % GOLDILOCKS_PRIME, v[2]))
        openings = (tuple(layer0),) + proof.openings[1:]
        assert not fri.verify(dataclasses.replace(proof, openings=openings), Transcript())

    def test_narrow_opening_rejected(self) -> None:
        fri = _fri()
        proof = fri.prove(_codeword(list(range(1, 17)), 64), Transcript())
        layer0 = list(proof.openings[0])
        layer0[0] = dataclasses.replace(layer0[0], v=layer0[0].v[:1])
        openings = (tuple(layer0),) + proof.openings[1:]
        assert not fri.verify(dataclasses.replace(proof, openings=openings), Transcript())
