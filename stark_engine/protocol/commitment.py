"""Trace extension and commitment.

Each trace column is interpolated over the trace domain and evaluated on the
evaluation coset; the extended columns are committed with one Merkle tree
whose leaf i hashes the values of every column at domain point i.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from stark_engine.constraints.base import Air
from stark_engine.errors import DomainSizeMismatch, MalformedTrace
from stark_engine.primitives.field import FF, is_power_of_two
from stark_engine.primitives.merkle_tree import MerkleRoot, MerkleTree, QueryProof
from stark_engine.primitives.ntt import extend_pol
from stark_engine.primitives.parallel import parallel_map
from stark_engine.protocol.domain import StarkDomain
from stark_engine.witness.base import TraceTable

logger = logging.getLogger(__name__)


@dataclass
class TraceCommitment:
    """Extended trace columns and the Merkle tree over their rows."""
    columns: Sequence[str]
    codewords: Dict[str, FF]
    tree: MerkleTree

    @property
    def root(self) -> MerkleRoot:
        return self.tree.get_root()

    def open(self, indices: Sequence[int], num_workers: Optional[int] = None) -> List[QueryProof]:
        """Merkle-authenticated rows at the given evaluation-domain indices."""
        return parallel_map(self.tree.get_query_proof, list(indices), num_workers)


def validate_trace(trace: TraceTable, air: Air, max_trace_length: int) -> None:
    """Shape checks before any work is done.

    Raises:
        DomainSizeMismatch: length not a power of two >= 2 or above the maximum
        MalformedTrace: columns differ from the AIR's
    """
    if not is_power_of_two(trace.length) or trace.length < 2:
        raise DomainSizeMismatch(f"trace length {trace.length} is not a power of two >= 2")
    if trace.length > max_trace_length:
        raise DomainSizeMismatch(f"trace length {trace.length} exceeds configured maximum {max_trace_length}")
    if tuple(trace.columns) != tuple(air.columns):
        raise MalformedTrace(
            f"trace has {trace.width} columns {list(trace.columns)}, "
            f"AIR '{air.name}' expects {len(air.columns)} columns {list(air.columns)}"
        )


def extend_columns(columns: Dict[str, FF], domain: StarkDomain, num_workers: Optional[int] = None) -> Dict[str, FF]:
    """Low-degree extend every column onto the evaluation domain, one task per column."""
    names = list(columns)

    def extend(name: str) -> FF:
        return extend_pol(columns[name], domain.extended_size, domain.offset)

    codewords = parallel_map(extend, names, num_workers)
    return dict(zip(names, codewords))


def commit_codewords(columns: Sequence[str], codewords: Dict[str, FF], num_workers: Optional[int] = None) -> MerkleTree:
    """Merkle tree over rows of the given codewords."""
    n = len(codewords[columns[0]])
    int_columns = [[int(v) for v in codewords[name]] for name in columns]
    rows = [[col[i] for col in int_columns] for i in range(n)]
    tree = MerkleTree(num_workers=num_workers)
    tree.merkelize(rows)
    return tree


def extend_and_commit(
    trace: TraceTable, domain: StarkDomain, num_workers: Optional[int] = None
) -> TraceCommitment:
    """Extend every trace column onto the evaluation domain and commit to the rows."""
    if trace.length != domain.trace_length:
        raise DomainSizeMismatch(f"trace length {trace.length} does not match domain {domain.trace_length}")
    codewords = extend_columns(trace.to_field_columns(), domain, num_workers)
    tree = commit_codewords(trace.columns, codewords, num_workers)
    logger.debug(
        "Committed %d columns over %d points, root %s",
        trace.width, domain.extended_size, tree.get_root().hex(),
    )
    return TraceCommitment(columns=trace.columns, codewords=codewords, tree=tree)
