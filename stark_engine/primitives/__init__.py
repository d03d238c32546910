"""Primitives - Low-level cryptographic and mathematical building blocks."""

from stark_engine.primitives.field import (
    FF,
    FF3,
    FIELD_EXTENSION_DEGREE,
    GOLDILOCKS_PRIME,
    SHIFT,
    SHIFT_INV,
    W,
    W_INV,
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
    to_ints,
)
from stark_engine.primitives.merkle_tree import (
    HASH_SIZE,
    LeafData,
    MerkleRoot,
    MerkleTree,
    QueryProof,
)
from stark_engine.primitives.ntt import NTT, extend_pol
from stark_engine.primitives.parallel import parallel_map
from stark_engine.primitives.transcript import (
    Challenge,
    ExtensionChallenge,
    SpongeState,
    Transcript,
)

__all__ = [
    # Field
    "FF",
    "FF3",
    "FIELD_EXTENSION_DEGREE",
    "GOLDILOCKS_PRIME",
    "W",
    "W_INV",
    "SHIFT",
    "SHIFT_INV",
    "get_omega",
    "get_omega_inv",
    "log2_exact",
    "powers",
    "domain_points",
    "evaluate_polynomial",
    "evaluate_ff3_polynomial",
    "ff3",
    "ff3_coeffs",
    "ff3_lift",
    "ff3_array",
    "ff3_split",
    "ff3_rows",
    "batch_inverse",
    "to_field",
    "to_ints",
    "encode_elements",
    "decode_elements",
    # NTT
    "NTT",
    "extend_pol",
    # Merkle Tree
    "MerkleTree",
    "MerkleRoot",
    "QueryProof",
    "LeafData",
    "HASH_SIZE",
    # Transcript
    "Transcript",
    "SpongeState",
    "Challenge",
    "ExtensionChallenge",
    # Workers
    "parallel_map",
]
