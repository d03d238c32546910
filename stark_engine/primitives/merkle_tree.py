"""Merkle tree commitment using blake3."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import blake3

from stark_engine.primitives.field import GOLDILOCKS_PRIME, encode_elements, is_power_of_two, to_ints
from stark_engine.primitives.parallel import batch_ranges, resolve_workers

# --- Constants ---

HASH_SIZE = 32

LEAF_PREFIX = b"\x00"
NODE_PREFIX = b"\x01"

# --- Type Aliases ---

MerkleRoot = bytes
LeafData = List[int]


# --- Hashing ---

def hash_leaf(values: Sequence[int]) -> bytes:
    """Hash one leaf: the values of every committed column at one domain point."""
    return blake3.blake3(LEAF_PREFIX + encode_elements(values)).digest()


def hash_node(left: bytes, right: bytes) -> bytes:
    return blake3.blake3(NODE_PREFIX + left + right).digest()


# --- Data Classes ---

@dataclass(frozen=True)
class QueryProof:
    """Opened leaf: index, leaf values and Merkle authentication path.

    Attributes:
        index: Leaf index (domain position)
        v: Leaf values, one per committed column
        mp: Merkle path - sibling digests from leaf level up to (not including) the root
    """
    index: int
    v: Tuple[int, ...] = field(default_factory=tuple)
    mp: Tuple[bytes, ...] = field(default_factory=tuple)


# --- Merkle Tree ---

class MerkleTree:
    """Binary Merkle tree over rows of field elements using blake3 hashing."""

    def __init__(self, num_workers: Optional[int] = None):
        self.num_workers = num_workers
        self.height = 0
        self.width = 0
        # levels[0] holds the leaf digests, levels[-1] the root
        self.levels: List[List[bytes]] = []

        # Store source rows for query proof value extraction
        self.source_data: Optional[List[List[int]]] = None

    # --- Core Operations ---

    def merkelize(self, rows: Sequence[Sequence[int]]) -> None:
        """Build Merkle tree from source rows.

        Args:
            rows: One row per leaf, each row holding one value per committed column.
                  The number of rows must be a power of two.
        """
        if not is_power_of_two(len(rows)):
            raise ValueError(f"Merkle tree needs a power-of-two number of leaves, got {len(rows)}")
        self.height = len(rows)
        self.width = len(rows[0])
        self.source_data = [to_ints(row) for row in rows]

        leaves = self._hash_leaves(self.source_data)
        self.levels = [leaves]
        current = leaves
        while len(current) > 1:
            current = [hash_node(current[i], current[i + 1]) for i in range(0, len(current), 2)]
            self.levels.append(current)

    def _hash_leaves(self, rows: List[List[int]]) -> List[bytes]:
        workers = resolve_workers(self.num_workers)
        if workers == 1:
            return [hash_leaf(row) for row in rows]

        def hash_batch(batch_range):
            start, end = batch_range
            return [hash_leaf(rows[i]) for i in range(start, end)]

        leaf_hashes: List[bytes] = []
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(hash_batch, br) for br in batch_ranges(len(rows), workers)]
            for f in futures:
                leaf_hashes.extend(f.result())
        return leaf_hashes

    def get_root(self) -> MerkleRoot:
        """Return the Merkle root commitment."""
        if not self.levels:
            raise ValueError("Merkle tree has not been built")
        return self.levels[-1][0]

    def get_group_proof(self, idx: int) -> List[bytes]:
        """Generate Merkle proof (siblings only) for leaf at index."""
        proof: List[bytes] = []
        for level in self.levels[:-1]:
            proof.append(level[idx ^ 1])
            idx >>= 1
        return proof

    def get_query_proof(self, idx: int) -> QueryProof:
        """Extract complete query proof with leaf values and Merkle path.

        Raises:
            ValueError: If the tree is not built or idx out of range
        """
        if self.source_data is None:
            raise ValueError("Source data not stored - cannot extract leaf values")
        if idx < 0 or idx >= self.height:
            raise ValueError(f"Query index {idx} out of range [0, {self.height})")
        return QueryProof(
            index=idx,
            v=tuple(self.source_data[idx]),
            mp=tuple(self.get_group_proof(idx)),
        )

    # --- Verification ---

    @staticmethod
    def verify_group_proof(root: MerkleRoot, proof: QueryProof, height: int) -> bool:
        """Check an opened leaf against a root for a tree with the given number of leaves."""
        if not is_power_of_two(height):
            return False
        if not 0 <= proof.index < height:
            return False
        if len(proof.mp) != height.bit_length() - 1:
            return False
        if not all(isinstance(v, int) and 0 <= v < GOLDILOCKS_PRIME for v in proof.v):
            return False
        node = hash_leaf(proof.v)
        idx = proof.index
        for sibling in proof.mp:
            if len(sibling) != HASH_SIZE:
                return False
            node = hash_node(sibling, node) if idx & 1 else hash_node(node, sibling)
            idx >>= 1
        return node == root
