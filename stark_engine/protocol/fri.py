"""FRI low-degree test with folding factor 2.

Layer k lives on the coset o_k * <w_k> of size n_k = M / 2^k, with
o_{k+1} = o_k^2 and w_{k+1} = w_k^2. Folding with challenge alpha pairs the
points x_i and -x_i = x_{i + n_k/2}:

    f_{k+1}(x_i^2) = (f_k(x_i) + f_k(-x_i)) / 2 + alpha * (f_k(x_i) - f_k(-x_i)) / (2 x_i)

which is the value at alpha of the line through (x_i, f_k(x_i)) and
(-x_i, f_k(-x_i)). The verifier checks exactly that colinearity. Codewords,
challenges and final coefficients are GF(p^3) values; Merkle leaves hold
each value as its [a0, a1, a2] coordinates.

Rounds: log2(L) - log2(threshold) for a codeword of degree < L, after which
the remaining codeword is interpolated and sent as coefficients. The final
polynomial must have fewer than L / 2^rounds coefficients, which is L itself
when L is already below the threshold.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from stark_engine.errors import (
    DegreeBoundViolated,
    FRIConsistencyFailure,
    MerkleProofInvalid,
    TranscriptDesyncError,
    VerificationError,
)
from stark_engine.primitives.field import (
    FF,
    FF3,
    FIELD_EXTENSION_DEGREE,
    GOLDILOCKS_PRIME,
    batch_inverse,
    domain_points,
    evaluate_ff3_polynomial,
    ff3,
    ff3_lift,
    ff3_rows,
    log2_exact,
)
from stark_engine.primitives.merkle_tree import MerkleRoot, MerkleTree, QueryProof
from stark_engine.primitives.parallel import parallel_map
from stark_engine.primitives.polynomial import ff3_degree, ff3_to_coefficients, ff3_trim, line_value_at
from stark_engine.primitives.transcript import Transcript

logger = logging.getLogger(__name__)

# --- Type Aliases ---

QueryIndex = int
LayerOpenings = Tuple[QueryProof, ...]
FF3Coeffs = Tuple[int, int, int]


# --- Data Classes ---

@dataclass
class FriLayer:
    """One committed FRI layer: coset, FF3 codeword and Merkle tree."""
    offset: FF
    omega: FF
    codeword: FF3
    tree: MerkleTree

    @property
    def root(self) -> MerkleRoot:
        return self.tree.get_root()

    @property
    def size(self) -> int:
        return len(self.codeword)


@dataclass(frozen=True)
class FriProof:
    """Standalone FRI proof: layer roots, final polynomial and query openings."""
    roots: Tuple[MerkleRoot, ...] = field(default_factory=tuple)
    final_polynomial: Tuple[FF3Coeffs, ...] = field(default_factory=tuple)
    query_indices: Tuple[QueryIndex, ...] = field(default_factory=tuple)
    openings: Tuple[LayerOpenings, ...] = field(default_factory=tuple)


# --- Folding ---

def fold_codeword(codeword: FF3, alpha: FF3, offset: FF, omega: FF) -> FF3:
    """Fold a codeword on offset * <omega> into one of half the size on its square."""
    n = len(codeword)
    half = n // 2
    x_inv = ff3_lift(batch_inverse(domain_points(offset, omega, half)))
    two_inv = FF3(2) ** -1
    low = codeword[:half]
    high = codeword[half:]
    return two_inv * ((low + high) + alpha * (low - high) * x_inv)


def flatten_final_polynomial(final_polynomial: Sequence[Sequence[int]]) -> List[int]:
    """Length-prefixed coefficient words in the order the transcript absorbs them."""
    words = [len(final_polynomial)]
    for c in final_polynomial:
        words.extend(int(v) for v in c)
    return words


# --- FRI Protocol ---

class Fri:
    """FRI prover and verifier for one evaluation domain."""

    def __init__(
        self,
        domain_length: int,
        degree_length: int,
        offset: FF,
        omega: FF,
        final_degree_threshold: int,
        num_queries: int,
        num_workers: Optional[int] = None,
    ):
        """
        Args:
            domain_length: Size M of the first layer's domain
            degree_length: Claimed bound L: the codeword has degree < L
            offset, omega: The first layer's domain is offset * <omega>
            final_degree_threshold: Maximum coefficient count of the final polynomial
            num_queries: Number of query indices
        """
        log2_exact(domain_length)
        log2_exact(degree_length)
        log2_exact(final_degree_threshold)
        if degree_length >= domain_length:
            raise ValueError(f"degree bound {degree_length} leaves no redundancy on a domain of {domain_length}")
        self.domain_length = domain_length
        self.degree_length = degree_length
        self.offset = FF(int(offset))
        self.omega = FF(int(omega))
        self.final_degree_threshold = final_degree_threshold
        self.num_queries = num_queries
        self.num_workers = num_workers

    # --- Layer Geometry ---

    @property
    def num_rounds(self) -> int:
        """Folding rounds; zero when the codeword is already below the threshold."""
        return max(0, log2_exact(self.degree_length) - log2_exact(self.final_degree_threshold))

    @property
    def final_degree_length(self) -> int:
        """Coefficient count the final polynomial must stay below."""
        return self.degree_length >> self.num_rounds

    @property
    def num_layers(self) -> int:
        """Committed layers: one per round, and at least the first."""
        return max(self.num_rounds, 1)

    def layer_size(self, k: int) -> int:
        return self.domain_length >> k

    def layer_offset(self, k: int) -> FF:
        return self.offset ** (1 << k)

    def layer_omega(self, k: int) -> FF:
        return self.omega ** (1 << k)

    def layer_point(self, k: int, i: int) -> FF:
        return self.layer_offset(k) * self.layer_omega(k) ** i

    def query_positions(self, index: QueryIndex, k: int) -> Tuple[int, int]:
        """Positions opened in layer k for a query index: a point and its negation."""
        half = self.layer_size(k) // 2
        i = index % half
        return i, i + half

    def layer_positions(self, indices: Sequence[QueryIndex], k: int) -> List[int]:
        positions = set()
        for q in indices:
            positions.update(self.query_positions(q, k))
        return sorted(positions)

    # --- Prover ---

    def commit_layer(self, codeword: FF3, k: int = 0) -> FriLayer:
        tree = MerkleTree(num_workers=self.num_workers)
        tree.merkelize(ff3_rows(codeword))
        return FriLayer(offset=self.layer_offset(k), omega=self.layer_omega(k), codeword=codeword, tree=tree)

    def fold_layers(self, first: FriLayer, transcript: Transcript) -> Tuple[List[FriLayer], List[FF3Coeffs]]:
        """Run the folding rounds after the first layer's root has been absorbed."""
        if len(first.codeword) != self.domain_length:
            raise ValueError(f"codeword has {len(first.codeword)} values, domain is {self.domain_length}")
        layers = [first]
        codeword = first.codeword
        for k in range(self.num_rounds):
            alpha = transcript.squeeze_extension_element()
            codeword = fold_codeword(codeword, alpha, self.layer_offset(k), self.layer_omega(k))
            if k + 1 < self.num_rounds:
                layer = self.commit_layer(codeword, k + 1)
                transcript.absorb(layer.root)
                layers.append(layer)
            logger.debug("FRI round %d folded to %d points", k, len(codeword))

        final_offset = self.layer_offset(self.num_rounds)
        final_polynomial = [tuple(c) for c in ff3_trim(ff3_to_coefficients(codeword, final_offset))]
        transcript.put(flatten_final_polynomial(final_polynomial))
        return layers, final_polynomial

    def commit_and_fold(self, codeword: FF3, transcript: Transcript) -> Tuple[List[FriLayer], List[FF3Coeffs]]:
        """Commit the first layer, absorb its root and fold down to the final polynomial."""
        first = self.commit_layer(codeword, 0)
        transcript.absorb(first.root)
        return self.fold_layers(first, transcript)

    def sample_indices(self, transcript: Transcript) -> List[QueryIndex]:
        return transcript.squeeze_indices(self.num_queries, self.domain_length)

    def open(self, layers: Sequence[FriLayer], indices: Sequence[QueryIndex]) -> Tuple[LayerOpenings, ...]:
        """Merkle-authenticated values at every layer's query positions."""
        openings = []
        for k, layer in enumerate(layers):
            positions = self.layer_positions(indices, k)
            openings.append(tuple(parallel_map(layer.tree.get_query_proof, positions, self.num_workers)))
        return tuple(openings)

    def prove(self, codeword: FF3, transcript: Transcript) -> FriProof:
        """Standalone proof that codeword has degree < degree_length."""
        layers, final_polynomial = self.commit_and_fold(codeword, transcript)
        indices = self.sample_indices(transcript)
        return FriProof(
            roots=tuple(layer.root for layer in layers),
            final_polynomial=tuple(final_polynomial),
            query_indices=tuple(indices),
            openings=self.open(layers, indices),
        )

    # --- Verifier ---

    def replay(
        self, transcript: Transcript, roots: Sequence[MerkleRoot], final_polynomial: Sequence[Sequence[int]]
    ) -> List[FF3]:
        """Absorb roots and final polynomial in prover order; return the folding challenges.

        Raises:
            TranscriptDesyncError: wrong number of layer roots
            ValueError: non-canonical final polynomial coefficients
        """
        if len(roots) != self.num_layers:
            raise TranscriptDesyncError(f"proof has {len(roots)} FRI roots, expected {self.num_layers}")
        for c in final_polynomial:
            if len(c) != FIELD_EXTENSION_DEGREE or not all(0 <= int(v) < GOLDILOCKS_PRIME for v in c):
                raise ValueError(f"final polynomial coefficient {c} is not an extension field element")
        transcript.absorb(roots[0])
        alphas = []
        for k in range(self.num_rounds):
            alphas.append(transcript.squeeze_extension_element())
            if k + 1 < self.num_rounds:
                transcript.absorb(roots[k + 1])
        transcript.put(flatten_final_polynomial(final_polynomial))
        return alphas

    def check_openings(
        self,
        roots: Sequence[MerkleRoot],
        indices: Sequence[QueryIndex],
        openings: Sequence[LayerOpenings],
    ) -> List[Dict[int, FF3]]:
        """Check every opened value against its layer root; return values by position.

        Raises:
            TranscriptDesyncError: openings at positions other than the re-derived ones
            MerkleProofInvalid: an authentication path does not lead to the root
        """
        if len(openings) != self.num_layers:
            raise TranscriptDesyncError(f"proof opens {len(openings)} FRI layers, expected {self.num_layers}")
        values: List[Dict[int, FF3]] = []
        for k, (root, layer_openings) in enumerate(zip(roots, openings)):
            expected = self.layer_positions(indices, k)
            if [o.index for o in layer_openings] != expected:
                raise TranscriptDesyncError(f"FRI layer {k} openings do not match the query indices")
            layer_values = {}
            for o in layer_openings:
                if len(o.v) != FIELD_EXTENSION_DEGREE:
                    raise ValueError(f"FRI layer {k} opening at {o.index} holds {len(o.v)} values")
                if not MerkleTree.verify_group_proof(root, o, self.layer_size(k)):
                    raise MerkleProofInvalid(f"FRI layer {k} opening at {o.index} does not match its root")
                layer_values[o.index] = ff3(o.v)
            values.append(layer_values)
        return values

    def check_folding(
        self,
        indices: Sequence[QueryIndex],
        alphas: Sequence[FF3],
        values: Sequence[Dict[int, FF3]],
        final_polynomial: Sequence[Sequence[int]],
    ) -> None:
        """Colinearity of every folded pair with the next layer or the final polynomial.

        Raises:
            FRIConsistencyFailure: first round and query that is not colinear
        """
        final = [tuple(int(v) for v in c) for c in final_polynomial]
        if self.num_rounds == 0:
            for q in indices:
                for pos in self.query_positions(q, 0):
                    if values[0][pos] != evaluate_ff3_polynomial(final, self.layer_point(0, pos)):
                        raise FRIConsistencyFailure(f"final polynomial disagrees with layer 0 at {pos}")
            return

        for k in range(self.num_rounds):
            for q in indices:
                a, b = self.query_positions(q, k)
                x = self.layer_point(k, a)
                x_ext = ff3_lift(x)
                folded = line_value_at(x_ext, values[k][a], -x_ext, values[k][b], alphas[k])
                if k + 1 < self.num_rounds:
                    expected = values[k + 1][a]
                else:
                    expected = evaluate_ff3_polynomial(final, x * x)
                if folded != expected:
                    raise FRIConsistencyFailure(f"round {k} not colinear for query index {q}")

    def check_final_degree(self, final_polynomial: Sequence[Sequence[int]]) -> None:
        """Raises DegreeBoundViolated if the final polynomial reaches the folded bound."""
        actual = ff3_degree(final_polynomial)
        if actual >= self.final_degree_length:
            raise DegreeBoundViolated(
                f"final polynomial has degree {actual}, bound {self.final_degree_length}"
            )

    def verify(self, proof: FriProof, transcript: Transcript) -> bool:
        """Standalone verification of a FriProof against a replayed transcript."""
        try:
            alphas = self.replay(transcript, proof.roots, proof.final_polynomial)
            indices = self.sample_indices(transcript)
            if list(proof.query_indices) != indices:
                raise TranscriptDesyncError("query indices differ from the re-derived ones")
            logger.debug("Verifying FRI openings")
            values = self.check_openings(proof.roots, indices, proof.openings)
            logger.debug("Verifying FRI foldings")
            self.check_folding(indices, alphas, values, proof.final_polynomial)
            self.check_final_degree(proof.final_polynomial)
        except VerificationError as e:
            logger.warning("FRI verification failed (%s): %s", e.reason.value, e)
            return False
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning("FRI verification failed (malformed proof): %s", e)
            return False
        return True
