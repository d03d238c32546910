"""Rescue-Prime style permutation over Goldilocks and its round trace.

State width 4 (rate 2, capacity 2), 7 rounds. Each round applies

    x -> x^ALPHA, MDS, + first round constants,
    x -> x^(1/ALPHA), MDS, + second round constants

with ALPHA = 7 (the smallest exponent coprime to p - 1). The trace records
the state before each round plus the final state: ROUNDS + 1 = 8 rows.

MDS is the Cauchy matrix 1 / (i + j + WIDTH), whose square submatrices are
all invertible. Round constants are expanded from a fixed seed with
SHAKE-256.
"""

import hashlib
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from stark_engine.primitives.field import GOLDILOCKS_PRIME
from stark_engine.witness.base import TraceTable

P = GOLDILOCKS_PRIME

WIDTH = 4
RATE = 2
CAPACITY = WIDTH - RATE
ROUNDS = 7
ALPHA = 7
ALPHA_INV = pow(ALPHA, -1, P - 1)

STATE_COLUMNS = tuple(f"s{i}" for i in range(WIDTH))
CONSTANT_COLUMNS = tuple(f"c0_{i}" for i in range(WIDTH)) + tuple(f"c1_{i}" for i in range(WIDTH))

_CONSTANTS_SEED = b"stark-engine/rescue-prime/goldilocks/m4/r7"


# --- Parameters ---

def _mds_matrix() -> List[List[int]]:
    return [[pow(i + j + WIDTH, -1, P) for j in range(WIDTH)] for i in range(WIDTH)]


def _invert_matrix(m: List[List[int]]) -> List[List[int]]:
    """Gauss-Jordan inversion mod p."""
    n = len(m)
    aug = [list(row) + [1 if i == j else 0 for j in range(n)] for i, row in enumerate(m)]
    for col in range(n):
        pivot = next(r for r in range(col, n) if aug[r][col] % P)
        aug[col], aug[pivot] = aug[pivot], aug[col]
        inv = pow(aug[col][col], -1, P)
        aug[col] = [v * inv % P for v in aug[col]]
        for r in range(n):
            if r != col and aug[r][col]:
                factor = aug[r][col]
                aug[r] = [(v - factor * w) % P for v, w in zip(aug[r], aug[col])]
    return [row[n:] for row in aug]


def _round_constants() -> List[int]:
    count = 2 * WIDTH * ROUNDS
    stream = hashlib.shake_256(_CONSTANTS_SEED).digest(9 * count)
    return [int.from_bytes(stream[9 * i: 9 * i + 9], "little") % P for i in range(count)]


MDS = _mds_matrix()
MDS_INV = _invert_matrix(MDS)
ROUND_CONSTANTS = _round_constants()


def round_constants(r: int) -> Tuple[List[int], List[int]]:
    """(first, second) constant vectors of round r."""
    base = 2 * WIDTH * r
    return ROUND_CONSTANTS[base: base + WIDTH], ROUND_CONSTANTS[base + WIDTH: base + 2 * WIDTH]


def _mat_vec(m: List[List[int]], v: Sequence[int]) -> List[int]:
    return [sum(m_ij * v_j for m_ij, v_j in zip(row, v)) % P for row in m]


# --- Permutation ---

def permutation_states(state: Sequence[int]) -> List[List[int]]:
    """All ROUNDS + 1 states, from the input to the output of the permutation."""
    if len(state) != WIDTH:
        raise ValueError(f"state must have {WIDTH} elements, got {len(state)}")
    current = [int(v) % P for v in state]
    states = [list(current)]
    for r in range(ROUNDS):
        c0, c1 = round_constants(r)
        current = [pow(v, ALPHA, P) for v in current]
        current = [(v + c) % P for v, c in zip(_mat_vec(MDS, current), c0)]
        current = [pow(v, ALPHA_INV, P) for v in current]
        current = [(v + c) % P for v, c in zip(_mat_vec(MDS, current), c1)]
        states.append(list(current))
    return states


def permute(state: Sequence[int]) -> List[int]:
    return permutation_states(state)[-1]


# --- Hash & Trace ---

@dataclass(frozen=True)
class HashResult:
    trace: TraceTable
    public_inputs: Tuple[int, ...]
    digest: Tuple[int, ...]


def hash_elements(inputs: Sequence[int]) -> HashResult:
    """Hash up to RATE elements with one permutation call and record the rounds.

    The capacity starts at zero; the digest is the rate part of the output.
    """
    if not 0 < len(inputs) <= RATE:
        raise ValueError(f"expected 1 to {RATE} input elements, got {len(inputs)}")
    state = [int(v) % P for v in inputs] + [0] * (WIDTH - len(inputs))
    states = permutation_states(state)
    digest = tuple(states[-1][:RATE])
    trace = TraceTable.from_rows(STATE_COLUMNS, states)
    return HashResult(trace=trace, public_inputs=digest, digest=digest)


def constant_columns(trace_length: int) -> dict:
    """Round constants as columns over the trace rows; rows without a round hold 0."""
    columns = {name: [0] * trace_length for name in CONSTANT_COLUMNS}
    for r in range(min(ROUNDS, trace_length)):
        c0, c1 = round_constants(r)
        for i in range(WIDTH):
            columns[f"c0_{i}"][r] = c0[i]
            columns[f"c1_{i}"][r] = c1[i]
    return columns
