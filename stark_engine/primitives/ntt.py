"""Number Theoretic Transform for Goldilocks field."""

from functools import lru_cache

import numpy as np

from stark_engine.primitives.field import (
    FF,
    SHIFT,
    get_omega,
    get_omega_inv,
    log2_exact,
    powers,
)

# --- NTT Engine ---


class NTT:
    """NTT engine for polynomial operations over Goldilocks field.

    Evaluations are in natural order over <omega> (or offset * <omega> for the
    coset variants), coefficients in ascending order.
    """

    def __init__(self, domain_size: int) -> None:
        """Initialize NTT engine for given domain size."""
        self.n = domain_size
        self.n_bits = log2_exact(domain_size)
        self.omega = get_omega(self.n_bits)
        self.omega_inv = get_omega_inv(self.n_bits)
        self.n_inv = FF(domain_size) ** -1

    def ntt(self, coeffs: FF) -> FF:
        """Forward NTT: coefficients -> evaluations."""
        return _transform(self._pad(coeffs), self.omega)

    def intt(self, evals: FF) -> FF:
        """Inverse NTT: evaluations -> coefficients."""
        if len(evals) != self.n:
            raise ValueError(f"expected {self.n} evaluations, got {len(evals)}")
        return _transform(FF(evals), self.omega_inv) * self.n_inv

    def coset_ntt(self, coeffs: FF, offset=SHIFT) -> FF:
        """Evaluate a polynomial on offset * <omega>."""
        coeffs = self._pad(coeffs)
        return _transform(coeffs * powers(offset, self.n), self.omega)

    def coset_intt(self, evals: FF, offset=SHIFT) -> FF:
        """Interpolate evaluations given on offset * <omega>."""
        coeffs = self.intt(evals)
        return coeffs * powers(FF(int(offset)) ** -1, self.n)

    def _pad(self, coeffs: FF) -> FF:
        if len(coeffs) > self.n:
            raise ValueError(f"polynomial with {len(coeffs)} coefficients exceeds domain {self.n}")
        padded = FF.Zeros(self.n)
        padded[: len(coeffs)] = coeffs
        return padded


# --- Low-Degree Extension ---


def extend_pol(evals: FF, n_extended: int, offset=SHIFT) -> FF:
    """Low-degree extend evaluations on <omega_n> onto offset * <omega_n_extended>."""
    n = len(evals)
    if n_extended < n:
        raise ValueError(f"cannot extend {n} evaluations onto a domain of {n_extended}")
    coeffs = NTT(n).intt(evals)
    return NTT(n_extended).coset_ntt(coeffs, offset)


# --- Transform Kernel ---


@lru_cache(maxsize=32)
def _bit_reverse_indices(n: int) -> np.ndarray:
    n_bits = log2_exact(n)
    indices = np.arange(n)
    reversed_ = np.zeros(n, dtype=np.int64)
    for b in range(n_bits):
        reversed_ |= ((indices >> b) & 1) << (n_bits - 1 - b)
    return reversed_


def _transform(values: FF, omega: int) -> FF:
    """Iterative radix-2 Cooley-Tukey transform, vectorized per stage."""
    n = len(values)
    if n == 1:
        return values.copy()
    a = values[_bit_reverse_indices(n)]
    half = 1
    while half < n:
        # twiddles for butterflies spanning 2 * half points
        twiddles = powers(FF(omega) ** (n // (2 * half)), half)
        blocks = a.reshape(n // (2 * half), 2, half)
        even = blocks[:, 0, :]
        odd = blocks[:, 1, :] * twiddles
        out = FF.Zeros((n // (2 * half), 2, half))
        out[:, 0, :] = even + odd
        out[:, 1, :] = even - odd
        a = out.reshape(n)
        half *= 2
    return a
