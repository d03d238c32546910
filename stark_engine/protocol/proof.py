"""STARK proof data structures and serialization.

Binary layout (all integers little-endian u64 via struct '<Q', sequences
length-prefixed, digests raw 32 bytes):

    magic "STRK" | version
    air name | trace length | public inputs
    trace root | composition root | FRI roots
    final polynomial (count, then [a0, a1, a2] per coefficient)
    grinding nonce | query indices
    trace openings | FRI openings (per layer)

An opening is index | values | path. The JSON form carries the same fields
with field elements as decimal strings and digests as hex.
"""

import json
import struct
from dataclasses import dataclass, field
from typing import Any, List, Sequence, Tuple

from stark_engine.primitives.field import FIELD_EXTENSION_DEGREE, GOLDILOCKS_PRIME
from stark_engine.primitives.merkle_tree import HASH_SIZE, MerkleRoot, QueryProof

MAGIC = b"STRK"
FORMAT_VERSION = 1

# Bounds applied while decoding untrusted input
_MAX_SEQUENCE = 1 << 24


@dataclass(frozen=True)
class Proof:
    """Complete STARK proof; immutable once produced."""
    air_name: str
    trace_length: int
    public_inputs: Tuple[int, ...]
    trace_root: MerkleRoot
    composition_root: MerkleRoot
    fri_roots: Tuple[MerkleRoot, ...] = field(default_factory=tuple)
    final_polynomial: Tuple[Tuple[int, int, int], ...] = field(default_factory=tuple)
    nonce: int = 0
    query_indices: Tuple[int, ...] = field(default_factory=tuple)
    trace_openings: Tuple[QueryProof, ...] = field(default_factory=tuple)
    fri_openings: Tuple[Tuple[QueryProof, ...], ...] = field(default_factory=tuple)

    @property
    def all_fri_roots(self) -> Tuple[MerkleRoot, ...]:
        """Roots of every committed FRI layer, the composition layer first."""
        return (self.composition_root,) + tuple(self.fri_roots)

    @property
    def num_field_elements(self) -> int:
        """Field elements carried by the proof (a size measure)."""
        opened = sum(len(o.v) for o in self.trace_openings)
        opened += sum(len(o.v) for layer in self.fri_openings for o in layer)
        return len(self.public_inputs) + FIELD_EXTENSION_DEGREE * len(self.final_polynomial) + opened

    def to_bytes(self) -> bytes:
        return proof_to_bytes(self)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Proof":
        return proof_from_bytes(data)


# --- Binary Encoding ---

class _Writer:
    def __init__(self) -> None:
        self._parts: List[bytes] = []

    def raw(self, data: bytes) -> None:
        self._parts.append(data)

    def u64(self, value: int) -> None:
        self._parts.append(struct.pack("<Q", value))

    def blob(self, data: bytes) -> None:
        self.u64(len(data))
        self._parts.append(data)

    def digest(self, data: bytes) -> None:
        if len(data) != HASH_SIZE:
            raise ValueError(f"digest must be {HASH_SIZE} bytes, got {len(data)}")
        self._parts.append(data)

    def u64_list(self, values: Sequence[int]) -> None:
        self.u64(len(values))
        if values:
            self._parts.append(struct.pack(f"<{len(values)}Q", *values))

    def extension_elements(self, values: Sequence[Sequence[int]]) -> None:
        self.u64(len(values))
        for v in values:
            if len(v) != FIELD_EXTENSION_DEGREE:
                raise ValueError(f"extension element needs {FIELD_EXTENSION_DEGREE} coefficients, got {len(v)}")
            self._parts.append(struct.pack(f"<{FIELD_EXTENSION_DEGREE}Q", *v))

    def opening(self, o: QueryProof) -> None:
        self.u64(o.index)
        self.u64_list(o.v)
        self.u64(len(o.mp))
        for sibling in o.mp:
            self.digest(sibling)

    def getvalue(self) -> bytes:
        return b"".join(self._parts)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def _take(self, n: int) -> bytes:
        if n < 0 or self._pos + n > len(self._data):
            raise ValueError(f"proof truncated at byte {self._pos}")
        chunk = self._data[self._pos: self._pos + n]
        self._pos += n
        return chunk

    def raw(self, n: int) -> bytes:
        return self._take(n)

    def u64(self) -> int:
        return struct.unpack("<Q", self._take(8))[0]

    def length(self) -> int:
        n = self.u64()
        if n > _MAX_SEQUENCE:
            raise ValueError(f"sequence length {n} exceeds limit")
        return n

    def blob(self) -> bytes:
        return self._take(self.length())

    def digest(self) -> bytes:
        return self._take(HASH_SIZE)

    def u64_list(self) -> List[int]:
        n = self.length()
        return list(struct.unpack(f"<{n}Q", self._take(8 * n))) if n else []

    def elements(self) -> List[int]:
        values = self.u64_list()
        for v in values:
            if v >= GOLDILOCKS_PRIME:
                raise ValueError(f"non-canonical field element {v}")
        return values

    def extension_elements(self) -> List[Tuple[int, ...]]:
        n = self.length()
        words = struct.unpack(f"<{FIELD_EXTENSION_DEGREE * n}Q", self._take(8 * FIELD_EXTENSION_DEGREE * n))
        for v in words:
            if v >= GOLDILOCKS_PRIME:
                raise ValueError(f"non-canonical field element {v}")
        return [
            tuple(words[i: i + FIELD_EXTENSION_DEGREE]) for i in range(0, len(words), FIELD_EXTENSION_DEGREE)
        ]

    def opening(self) -> QueryProof:
        index = self.u64()
        values = self.elements()
        path = tuple(self.digest() for _ in range(self.length()))
        return QueryProof(index=index, v=tuple(values), mp=path)

    def finish(self) -> None:
        if self._pos != len(self._data):
            raise ValueError(f"{len(self._data) - self._pos} trailing bytes after proof")


def proof_to_bytes(proof: Proof) -> bytes:
    """Serialize a proof to its binary form."""
    w = _Writer()
    w.raw(MAGIC)
    w.u64(FORMAT_VERSION)
    w.blob(proof.air_name.encode("utf-8"))
    w.u64(proof.trace_length)
    w.u64_list(proof.public_inputs)
    w.digest(proof.trace_root)
    w.digest(proof.composition_root)
    w.u64(len(proof.fri_roots))
    for root in proof.fri_roots:
        w.digest(root)
    w.extension_elements(proof.final_polynomial)
    w.u64(proof.nonce)
    w.u64_list(proof.query_indices)
    w.u64(len(proof.trace_openings))
    for o in proof.trace_openings:
        w.opening(o)
    w.u64(len(proof.fri_openings))
    for layer in proof.fri_openings:
        w.u64(len(layer))
        for o in layer:
            w.opening(o)
    return w.getvalue()


def proof_from_bytes(data: bytes) -> Proof:
    """Deserialize a binary proof.

    Raises:
        ValueError: bad magic or version, truncation, trailing bytes or
            non-canonical field elements
    """
    r = _Reader(data)
    if r.raw(len(MAGIC)) != MAGIC:
        raise ValueError("not a stark-engine proof (bad magic)")
    version = r.u64()
    if version != FORMAT_VERSION:
        raise ValueError(f"unsupported proof format version {version}")
    try:
        air_name = r.blob().decode("utf-8")
    except UnicodeDecodeError as e:
        raise ValueError(f"AIR name is not UTF-8: {e}") from e
    trace_length = r.u64()
    public_inputs = tuple(r.elements())
    trace_root = r.digest()
    composition_root = r.digest()
    fri_roots = tuple(r.digest() for _ in range(r.length()))
    final_polynomial = tuple(r.extension_elements())
    nonce = r.u64()
    query_indices = tuple(r.u64_list())
    trace_openings = tuple(r.opening() for _ in range(r.length()))
    fri_openings = tuple(
        tuple(r.opening() for _ in range(r.length()))
        for _ in range(r.length())
    )
    r.finish()
    return Proof(
        air_name=air_name,
        trace_length=trace_length,
        public_inputs=public_inputs,
        trace_root=trace_root,
        composition_root=composition_root,
        fri_roots=fri_roots,
        final_polynomial=final_polynomial,
        nonce=nonce,
        query_indices=query_indices,
        trace_openings=trace_openings,
        fri_openings=fri_openings,
    )


# --- JSON Encoding ---

def _opening_to_json(o: QueryProof) -> dict[str, Any]:
    return {"index": o.index, "values": [str(v) for v in o.v], "path": [s.hex() for s in o.mp]}


def _opening_from_json(j: dict[str, Any]) -> QueryProof:
    return QueryProof(
        index=int(j["index"]),
        v=tuple(int(v) for v in j["values"]),
        mp=tuple(bytes.fromhex(s) for s in j["path"]),
    )


def proof_to_json(proof: Proof) -> dict[str, Any]:
    """Convert STARK proof to JSON-serializable dictionary."""
    j: dict[str, Any] = {
        "air": proof.air_name,
        "traceLength": proof.trace_length,
        "publics": [str(v) for v in proof.public_inputs],
        "traceRoot": proof.trace_root.hex(),
        "compositionRoot": proof.composition_root.hex(),
        "friRoots": [r.hex() for r in proof.fri_roots],
        "finalPol": [[str(v) for v in c] for c in proof.final_polynomial],
        "nonce": str(proof.nonce),
        "queries": list(proof.query_indices),
        "traceOpenings": [_opening_to_json(o) for o in proof.trace_openings],
        "friOpenings": [[_opening_to_json(o) for o in layer] for layer in proof.fri_openings],
    }
    return j


def proof_from_json(j: dict[str, Any]) -> Proof:
    """Build a Proof from its JSON dictionary.

    Raises:
        ValueError, KeyError, TypeError: on malformed input
    """
    return Proof(
        air_name=str(j["air"]),
        trace_length=int(j["traceLength"]),
        public_inputs=tuple(int(v) for v in j["publics"]),
        trace_root=bytes.fromhex(j["traceRoot"]),
        composition_root=bytes.fromhex(j["compositionRoot"]),
        fri_roots=tuple(bytes.fromhex(r) for r in j["friRoots"]),
        final_polynomial=tuple(tuple(int(v) for v in c) for c in j["finalPol"]),
        nonce=int(j["nonce"]),
        query_indices=tuple(int(q) for q in j["queries"]),
        trace_openings=tuple(_opening_from_json(o) for o in j["traceOpenings"]),
        fri_openings=tuple(tuple(_opening_from_json(o) for o in layer) for layer in j["friOpenings"]),
    )


def save_proof_json(proof: Proof, path: str) -> None:
    with open(path, "w") as f:
        json.dump(proof_to_json(proof), f, indent=1)


def load_proof_from_json(path: str) -> Proof:
    """Load a Proof from a JSON file written by save_proof_json."""
    with open(path) as f:
        return proof_from_json(json.load(f))
