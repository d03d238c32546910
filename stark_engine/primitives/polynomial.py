"""Polynomial helpers used by the protocol layer.

Conversions between evaluation and coefficient form go through NTT, so
protocol modules never build transforms themselves.
"""

from typing import List, Sequence

from stark_engine.primitives.field import FF, FF3, ff3_array, ff3_rows, ff3_split, to_ints
from stark_engine.primitives.ntt import NTT


def to_coefficients(evaluations: FF, offset=None) -> FF:
    """Convert polynomial from evaluation form to coefficient form.

    Args:
        evaluations: Values at the points of <omega_n>, or of offset * <omega_n>
        offset: Coset offset, None for the subgroup itself

    Returns:
        Ascending coefficients, as many as there are evaluations
    """
    ntt = NTT(len(evaluations))
    if offset is None:
        return ntt.intt(evaluations)
    return ntt.coset_intt(evaluations, offset)


def to_evaluations(coefficients: FF, domain_size: int, offset=None) -> FF:
    """Convert polynomial from coefficient form to evaluation form."""
    ntt = NTT(domain_size)
    if offset is None:
        return ntt.ntt(coefficients)
    return ntt.coset_ntt(coefficients, offset)


def degree(coefficients) -> int:
    """Degree of an ascending coefficient vector, -1 for the zero polynomial."""
    values = to_ints(coefficients)
    for i in range(len(values) - 1, -1, -1):
        if values[i]:
            return i
    return -1


def trim(coefficients) -> List[int]:
    """Drop trailing zero coefficients."""
    values = to_ints(coefficients)
    return values[: degree(values) + 1]


def line_value_at(ax, ay, bx, by, x):
    """Value at x of the line through (ax, ay) and (bx, by).

    Used by the FRI colinearity check: the three points (ax, ay), (bx, by)
    and (x, result) are colinear by construction.
    """
    return ay + (x - ax) * (by - ay) * (bx - ax) ** -1


# --- Extension Field ---
# NTT is FF-linear, so FF3 codewords are converted one coordinate at a time.

def ff3_to_coefficients(evaluations: FF3, offset=None) -> FF3:
    """to_coefficients() for FF3 evaluations."""
    return ff3_array(*(to_coefficients(c, offset) for c in ff3_split(evaluations)))


def ff3_to_evaluations(coefficients: FF3, domain_size: int, offset=None) -> FF3:
    """to_evaluations() for FF3 coefficients."""
    return ff3_array(*(to_evaluations(c, domain_size, offset) for c in ff3_split(coefficients)))


def ff3_degree(coefficients: Sequence[Sequence[int]]) -> int:
    """Degree of a polynomial given as [a0, a1, a2] triples, -1 for zero."""
    for i in range(len(coefficients) - 1, -1, -1):
        if any(int(c) for c in coefficients[i]):
            return i
    return -1


def ff3_trim(coefficients: FF3) -> List[List[int]]:
    """FF3 coefficients as [a0, a1, a2] triples without trailing zeros."""
    rows = ff3_rows(coefficients)
    return rows[: ff3_degree(rows) + 1]
