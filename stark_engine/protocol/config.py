"""Prover/verifier configuration.

The defaults target roughly 64 bits of conjectured security for the
proximity part of the argument: with expansion factor b and q queries the
FRI soundness error is about (1/b)^q, i.e. 2^-64 for b=4, q=32, plus
grinding bits of proof-of-work. Challenges are drawn from GF(p^3), so the
algebraic part sits near 190 bits and the 32-byte blake3 digests cap the
whole argument at 128 bits.

Example:
    config = StarkConfig(expansion_factor=8, num_queries=22)
    config = StarkConfig.from_json("params.json")
"""

import json
import math
from dataclasses import asdict, dataclass, fields
from typing import Optional

from stark_engine.primitives.field import is_power_of_two

SUPPORTED_FOLDING_FACTORS = (2,)


@dataclass(frozen=True)
class StarkConfig:
    """STARK security and resource parameters."""
    expansion_factor: int = 4
    num_queries: int = 32
    folding_factor: int = 2
    final_degree_threshold: int = 8
    grinding_bits: int = 8
    max_trace_length: int = 1 << 20
    num_workers: Optional[int] = None

    def __post_init__(self) -> None:
        if not is_power_of_two(self.expansion_factor) or self.expansion_factor < 2:
            raise ValueError(f"expansion_factor must be a power of two >= 2, got {self.expansion_factor}")
        if self.num_queries < 1:
            raise ValueError(f"num_queries must be positive, got {self.num_queries}")
        if self.folding_factor not in SUPPORTED_FOLDING_FACTORS:
            raise ValueError(
                f"folding_factor {self.folding_factor} not supported, "
                f"expected one of {SUPPORTED_FOLDING_FACTORS}"
            )
        if not is_power_of_two(self.final_degree_threshold):
            raise ValueError(
                f"final_degree_threshold must be a power of two, got {self.final_degree_threshold}"
            )
        if not 0 <= self.grinding_bits <= 32:
            raise ValueError(f"grinding_bits must be in [0, 32], got {self.grinding_bits}")
        if not is_power_of_two(self.max_trace_length):
            raise ValueError(f"max_trace_length must be a power of two, got {self.max_trace_length}")
        if self.num_workers is not None and self.num_workers < 1:
            raise ValueError(f"num_workers must be positive, got {self.num_workers}")

    # --- Security ---

    @property
    def conjectured_security_bits(self) -> float:
        """Conjectured bits of security: q * log2(b) + grinding bits, capped by the digest size."""
        fri_bits = self.num_queries * math.log2(self.expansion_factor) + self.grinding_bits
        return min(fri_bits, 128.0)

    @classmethod
    def for_security_level(cls, bits: int, expansion_factor: int = 4, **kwargs) -> "StarkConfig":
        """Smallest query count reaching `bits` of conjectured security."""
        grinding_bits = kwargs.pop("grinding_bits", cls.grinding_bits)
        remaining = max(bits - grinding_bits, 0)
        num_queries = max(1, math.ceil(remaining / math.log2(expansion_factor)))
        return cls(
            expansion_factor=expansion_factor,
            num_queries=num_queries,
            grinding_bits=grinding_bits,
            **kwargs,
        )

    # --- Loading ---

    @classmethod
    def from_dict(cls, d: dict) -> "StarkConfig":
        """Build from a dict, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(d) - known
        if unknown:
            raise ValueError(f"unknown configuration keys: {sorted(unknown)}")
        return cls(**d)

    @classmethod
    def from_json(cls, path: str) -> "StarkConfig":
        """Load configuration from a JSON file."""
        with open(path) as f:
            return cls.from_dict(json.load(f))

    def to_dict(self) -> dict:
        return asdict(self)
