"""
Fiat-Shamir transcript implementation using a blake3 hash chain.

This module implements challenge generation for non-interactive proofs. The
transcript is an explicitly passed object: whoever holds it owns the absorb
order, and prover and verifier must feed it identical bytes in identical order.
"""

import struct
from typing import List, Sequence

import blake3

from stark_engine.primitives.field import (
    FF,
    FF3,
    FIELD_EXTENSION_DEGREE,
    GOLDILOCKS_PRIME,
    encode_elements,
    ff3,
)

# Digest size of the rolling state
HASH_SIZE = 32

DEFAULT_DOMAIN_SEPARATOR = b"stark-engine/transcript/v1"

# Message tags keep absorb and squeeze inputs in disjoint domains
_ABSORB_TAG = b"\x00"
_SQUEEZE_TAG = b"\x01"
_GRIND_TAG = b"\x02"

# --- Type Aliases ---

Challenge = FF
ExtensionChallenge = FF3
SpongeState = bytes


class Transcript:
    """
    Fiat-Shamir transcript over a blake3 hash chain.

    The transcript absorbs byte strings and field elements and produces
    random challenges in a deterministic, pseudorandom manner.

    Attributes:
        state: Current 32-byte chain value
        n_absorbed: Number of absorb operations so far
        n_squeezed: Number of squeeze operations so far
    """

    def __init__(self, domain_separator: bytes = DEFAULT_DOMAIN_SEPARATOR):
        self.state: SpongeState = blake3.blake3(domain_separator).digest()
        self.n_absorbed = 0
        self.n_squeezed = 0

    # --- Absorb ---

    def absorb(self, data: bytes) -> None:
        """Absorb a byte string. Length-prefixed so concatenations cannot collide."""
        hasher = blake3.blake3(_ABSORB_TAG)
        hasher.update(self.state)
        hasher.update(struct.pack("<Q", len(data)))
        hasher.update(data)
        self.state = hasher.digest()
        self.n_absorbed += 1

    def put(self, input_data: Sequence[int]) -> None:
        """
        Absorb field elements.

        Args:
            input_data: Field elements (ints or FF scalars), reduced mod p
        """
        self.absorb(encode_elements(int(v) % GOLDILOCKS_PRIME for v in input_data))

    # --- Squeeze ---

    def _squeeze(self) -> bytes:
        self.state = blake3.blake3(_SQUEEZE_TAG + self.state).digest()
        self.n_squeezed += 1
        return self.state

    def squeeze_field_element(self) -> Challenge:
        """Derive one field element; 128 bits are reduced so the bias is negligible."""
        digest = self._squeeze()
        return FF(int.from_bytes(digest[:16], "little") % GOLDILOCKS_PRIME)

    def squeeze_extension_element(self) -> ExtensionChallenge:
        """Derive one FF3 challenge from three consecutive squeezes, a0 first."""
        coeffs = [int(self.squeeze_field_element()) for _ in range(FIELD_EXTENSION_DEGREE)]
        return ff3(coeffs)

    def get_field(self) -> ExtensionChallenge:
        """Alias of squeeze_extension_element."""
        return self.squeeze_extension_element()

    def squeeze_field_elements(self, count: int) -> List[Challenge]:
        return [self.squeeze_field_element() for _ in range(count)]

    def squeeze_indices(self, count: int, bound: int) -> List[int]:
        """Derive count indices in [0, bound), each from a fresh squeeze."""
        if bound <= 0:
            raise ValueError(f"index bound must be positive, got {bound}")
        indices = []
        for _ in range(count):
            digest = self._squeeze()
            indices.append(int.from_bytes(digest[:16], "little") % bound)
        return indices

    def get_state(self) -> SpongeState:
        """Return the current chain value (no side effects)."""
        return self.state

    # --- Grinding ---

    @staticmethod
    def _grind_digest(state: bytes, nonce: int) -> bytes:
        return blake3.blake3(_GRIND_TAG + state + struct.pack("<Q", nonce)).digest()

    @staticmethod
    def _leading_zero_bits(digest: bytes) -> int:
        value = int.from_bytes(digest, "big")
        return len(digest) * 8 - value.bit_length()

    def grind(self, bits: int) -> int:
        """Find the smallest nonce whose grinding digest has `bits` leading zero bits.

        Does not touch the state; callers absorb the nonce afterwards.
        """
        nonce = 0
        while self._leading_zero_bits(self._grind_digest(self.state, nonce)) < bits:
            nonce += 1
        return nonce

    def verify_grinding(self, nonce: int, bits: int) -> bool:
        if not 0 <= nonce < 2**64:
            return False
        return self._leading_zero_bits(self._grind_digest(self.state, nonce)) >= bits
