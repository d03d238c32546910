"""Goldilocks field GF(p), its cubic extension GF(p^3) and the helpers built on them.

Uses the galois library for all field arithmetic. Trace columns and
constraint quotients are FF arrays; verifier challenges, the composition
codeword and every FRI layer are FF3. Plain ints appear only at serialization
and hashing boundaries, where an FF3 element is its three base-field
coefficients in ascending order [a0, a1, a2].
"""

import struct
from functools import lru_cache
from typing import Iterable, List, Sequence, Tuple

import galois
import numpy as np

# --- Field Construction ---

GOLDILOCKS_PRIME = 0xFFFFFFFF00000001

FF = galois.GF(GOLDILOCKS_PRIME)
"""Base field GF(p) - Goldilocks prime field."""

FIELD_EXTENSION_DEGREE = 3

# x^3 - x - 1, irreducible over GF(p)
_FF3_IRREDUCIBLE = galois.Poly([1, 0, GOLDILOCKS_PRIME - 1, GOLDILOCKS_PRIME - 1], field=FF)

FF3 = galois.GF(GOLDILOCKS_PRIME ** FIELD_EXTENSION_DEGREE, irreducible_poly=_FF3_IRREDUCIBLE, verify=False)
"""Cubic extension field GF(p^3). Challenges and FRI codewords live here."""

# Two-adicity of p - 1
MAX_TWO_ADICITY = 32

# Coset offset for the evaluation domain (7 generates the multiplicative group)
SHIFT = FF(7)
SHIFT_INV = SHIFT ** -1

# Precomputed roots of unity: W[n] is a primitive 2^n-th root of unity
W: List[int] = [
    1,
    18446744069414584320,
    281474976710656,
    16777216,
    4096,
    64,
    8,
    2198989700608,
    4404853092538523347,
    6434636298004421797,
    4255134452441852017,
    9113133275150391358,
    4355325209153869931,
    4308460244895131701,
    7126024226993609386,
    1873558160482552414,
    8167150655112846419,
    5718075921287398682,
    3411401055030829696,
    8982441859486529725,
    1971462654193939361,
    6553637399136210105,
    8124823329697072476,
    5936499541590631774,
    2709866199236980323,
    8877499657461974390,
    3757607247483852735,
    4969973714567017225,
    2147253751702802259,
    2530564950562219707,
    1905180297017055339,
    3524815499551269279,
    7277203076849721926,
]

# Precomputed inverses: W_INV[n] = W[n]^(-1) mod p
W_INV: List[int] = [
    1,
    18446744069414584320,
    18446462594437873665,
    18446742969902956801,
    18442240469788262401,
    18158513693329981441,
    16140901060737761281,
    274873712576,
    9171943329124577373,
    5464760906092500108,
    4088309022520035137,
    6141391951880571024,
    386651765402340522,
    11575992183625933494,
    2841727033376697931,
    8892493137794983311,
    9071788333329385449,
    15139302138664925958,
    14996013474702747840,
    5708508531096855759,
    6451340039662992847,
    5102364342718059185,
    10420286214021487819,
    13945510089405579673,
    17538441494603169704,
    16784649996768716373,
    8974194941257008806,
    16194875529212099076,
    5506647088734794298,
    7731871677141058814,
    16558868196663692994,
    9896756522253134970,
    1644488454024429189,
]


def get_omega(n_bits: int) -> int:
    """Return primitive 2^n_bits-th root of unity."""
    if not 0 <= n_bits <= MAX_TWO_ADICITY:
        raise ValueError(f"no 2^{n_bits}-th root of unity in the Goldilocks field")
    return W[n_bits]


def get_omega_inv(n_bits: int) -> int:
    """Return inverse of primitive 2^n_bits-th root of unity."""
    if not 0 <= n_bits <= MAX_TWO_ADICITY:
        raise ValueError(f"no 2^{n_bits}-th root of unity in the Goldilocks field")
    return W_INV[n_bits]


def log2_exact(n: int) -> int:
    """Return log2(n), raising ValueError if n is not a power of two."""
    if n <= 0 or n & (n - 1):
        raise ValueError(f"{n} is not a power of two")
    return n.bit_length() - 1


def is_power_of_two(n: int) -> bool:
    return n > 0 and n & (n - 1) == 0


# --- Conversions ---

def to_field(values) -> FF:
    """Convert ints (any sign, any size) or an FF array into FF."""
    if isinstance(values, FF):
        return values
    if isinstance(values, (int, np.integer)):
        return FF(int(values) % GOLDILOCKS_PRIME)
    return FF([int(v) % GOLDILOCKS_PRIME for v in values])


def to_ints(values) -> List[int]:
    """Convert an FF array (or iterable of elements) to a list of plain ints."""
    return [int(v) for v in values]


# --- Extension Field ---
# Galois uses descending order [a2, a1, a0], we use ascending [a0, a1, a2].

def ff3(coeffs: Sequence[int]) -> FF3:
    """Construct FF3 element from ascending-order coefficients [a0, a1, a2]."""
    if len(coeffs) != FIELD_EXTENSION_DEGREE:
        raise ValueError(f"extension element needs {FIELD_EXTENSION_DEGREE} coefficients, got {len(coeffs)}")
    return FF3.Vector([int(c) for c in coeffs][::-1])


def ff3_coeffs(elem: FF3) -> List[int]:
    """Extract ascending-order coefficients [a0, a1, a2] from FF3 element."""
    return [int(c) for c in elem.vector()[::-1]]


def ff3_lift(values) -> FF3:
    """Embed base-field elements (scalar or 1-D array) into FF3."""
    if np.ndim(values) == 0:
        return FF3(int(values))
    return FF3([int(v) for v in values])


def ff3_array(c0: FF, c1: FF, c2: FF) -> FF3:
    """FF3 values from their three coordinate arrays (or scalars), ascending."""
    stacked = np.stack([np.asarray(c).astype(object) for c in (c2, c1, c0)], axis=-1)
    return FF3.Vector(FF(stacked))


def ff3_split(values: FF3) -> Tuple[FF, FF, FF]:
    """Coordinate arrays (c0, c1, c2) of FF3 values; inverse of ff3_array."""
    v = values.vector()
    return v[..., 2], v[..., 1], v[..., 0]


def ff3_rows(values: FF3) -> List[List[int]]:
    """Each FF3 value as its [a0, a1, a2] int triple (Merkle leaves, openings)."""
    c0, c1, c2 = ff3_split(values)
    return [[a, b, c] for a, b, c in zip(to_ints(c0), to_ints(c1), to_ints(c2))]


def encode_elements(values: Iterable[int]) -> bytes:
    """Encode field elements as consecutive 8-byte little-endian words."""
    return b"".join(struct.pack("<Q", int(v)) for v in values)


def decode_elements(data: bytes) -> List[int]:
    """Inverse of encode_elements; rejects non-canonical words."""
    if len(data) % 8:
        raise ValueError(f"element encoding length {len(data)} is not a multiple of 8")
    values = [v for (v,) in struct.iter_unpack("<Q", data)]
    for v in values:
        if v >= GOLDILOCKS_PRIME:
            raise ValueError(f"non-canonical field element {v}")
    return values


# --- Powers & Evaluation ---

@lru_cache(maxsize=256)
def _cached_powers(base: int, n: int) -> tuple:
    result = [1] * n
    for i in range(1, n):
        result[i] = result[i - 1] * base % GOLDILOCKS_PRIME
    return tuple(result)


def powers(base, n: int) -> FF:
    """Return [1, base, base^2, ..., base^(n-1)] as an FF array."""
    return FF(list(_cached_powers(int(base), n)))


def domain_points(offset, omega, n: int) -> FF:
    """Return the coset offset * <omega> of size n in index order."""
    return FF(int(offset)) * powers(omega, n)


def evaluate_polynomial(coefficients: Sequence[int], x) -> FF:
    """Horner evaluation of an ascending-order coefficient list at x (scalar or array)."""
    x = to_field(x)
    result = x * FF(0)
    for c in reversed(list(coefficients)):
        result = result * x + FF(int(c))
    return result


def evaluate_ff3_polynomial(coefficients: Sequence[Sequence[int]], x) -> FF3:
    """Horner evaluation at a scalar x of a polynomial with [a0, a1, a2] coefficients."""
    x = x if isinstance(x, FF3) else ff3_lift(x)
    result = FF3(0)
    for c in reversed(list(coefficients)):
        result = result * x + ff3(c)
    return result


# --- Montgomery Batch Inversion ---

def batch_inverse(values):
    """Invert every element of a non-zero galois array with a single field inversion."""
    n = len(values)
    if n == 0:
        return values
    if n == 1:
        return values ** -1

    field_type = type(values)

    cumprods = field_type.Zeros(n)
    cumprods[0] = values[0]
    for i in range(1, n):
        cumprods[i] = cumprods[i - 1] * values[i]

    inv_total = cumprods[n - 1] ** -1

    results = field_type.Zeros(n)
    z = inv_total
    for i in range(n - 1, 0, -1):
        results[i] = z * cumprods[i - 1]
        z = z * values[i]
    results[0] = z

    return results
