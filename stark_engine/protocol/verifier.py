"""STARK proof verification.

The verifier re-derives every challenge by replaying the prover's absorb
sequence from the proof's public fields, then runs its checks in a fixed
order; the first failure decides the rejection reason:

    ReceivedProof -> ChallengesRederived -> CompositionChecked -> FRIChecked -> Accepted
                  \\-> Rejected (from any state)

1. Statement - AIR name, trace length and public inputs fit the AIR
2. Fiat-Shamir replay - composition weights, folding challenges, proof-of-work, query indices
3. Merkle openings - trace rows and every FRI layer against their roots
4. Composition identity - recomputed from opened rows, compared to FRI layer 0
5. FRI colinearity - every folding round for every query
6. Final polynomial degree - below the configured threshold

Verification never raises on adversarial input: every failure, including a
structurally malformed proof, becomes a rejected VerificationResult.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from stark_engine.constraints.base import Air
from stark_engine.errors import (
    CompositionMismatch,
    DomainSizeMismatch,
    MerkleProofInvalid,
    ProofOfWorkInvalid,
    RejectionReason,
    TranscriptDesyncError,
    VerificationError,
)
from stark_engine.primitives.field import FF3, GOLDILOCKS_PRIME
from stark_engine.primitives.merkle_tree import HASH_SIZE, MerkleTree
from stark_engine.protocol.composition import Composer, Weights, draw_weights
from stark_engine.protocol.config import StarkConfig
from stark_engine.protocol.domain import StarkDomain
from stark_engine.protocol.fri import Fri
from stark_engine.protocol.proof import Proof
from stark_engine.protocol.stages import build_fri, start_transcript

logger = logging.getLogger(__name__)


class VerifierState(Enum):
    RECEIVED_PROOF = "received_proof"
    CHALLENGES_REDERIVED = "challenges_rederived"
    COMPOSITION_CHECKED = "composition_checked"
    FRI_CHECKED = "fri_checked"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of verifying one proof. Truthy exactly when accepted."""
    accepted: bool
    reason: Optional[RejectionReason] = None
    detail: str = ""

    def __bool__(self) -> bool:
        return self.accepted

    @classmethod
    def accept(cls) -> "VerificationResult":
        return cls(accepted=True)

    @classmethod
    def reject(cls, reason: RejectionReason, detail: str) -> "VerificationResult":
        return cls(accepted=False, reason=reason, detail=detail)


@dataclass(frozen=True)
class Challenges:
    """Everything the verifier re-derives from the transcript."""
    weights: Weights
    alphas: List[FF3]
    query_indices: List[int]


# --- Verifier ---

class StarkVerifier:
    """Verifies proofs for one AIR under one configuration.

    Each call to verify() walks the state machine from RECEIVED_PROOF; the
    last reached state is kept in `state` for inspection.
    """

    def __init__(self, air: Air, config: Optional[StarkConfig] = None):
        self.air = air
        self.config = config or StarkConfig()
        self.state = VerifierState.RECEIVED_PROOF

    def verify(self, proof: Proof) -> VerificationResult:
        self.state = VerifierState.RECEIVED_PROOF
        try:
            result = self._run(proof)
        except VerificationError as e:
            result = VerificationResult.reject(e.reason, str(e))
        except DomainSizeMismatch as e:
            result = VerificationResult.reject(RejectionReason.MALFORMED_PROOF, str(e))
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            result = VerificationResult.reject(RejectionReason.MALFORMED_PROOF, f"{type(e).__name__}: {e}")

        if result.accepted:
            self.state = VerifierState.ACCEPTED
            logger.debug("Proof for '%s' accepted", self.air.name)
        else:
            logger.warning(
                "Proof for '%s' rejected in state %s (%s): %s",
                self.air.name, self.state.value, result.reason.value, result.detail,
            )
            self.state = VerifierState.REJECTED
        return result

    def _run(self, proof: Proof) -> VerificationResult:
        domain, composer = self._check_statement(proof)
        fri = build_fri(domain, self.config)

        # === PHASE 1: Fiat-Shamir replay ===
        challenges = self._rederive_challenges(proof, domain, composer, fri)
        self.state = VerifierState.CHALLENGES_REDERIVED

        # === PHASE 2: Merkle openings ===
        logger.debug("Verifying Merkle openings")
        rows = self._check_trace_openings(proof, domain, challenges.query_indices)
        layer_values = fri.check_openings(proof.all_fri_roots, challenges.query_indices, proof.fri_openings)

        # === PHASE 3: Composition identity ===
        logger.debug("Verifying composition at %d queries", len(challenges.query_indices))
        self._check_composition(domain, composer, challenges, rows, layer_values[0])
        self.state = VerifierState.COMPOSITION_CHECKED

        # === PHASE 4: FRI ===
        logger.debug("Verifying FRI foldings")
        fri.check_folding(challenges.query_indices, challenges.alphas, layer_values, proof.final_polynomial)
        fri.check_final_degree(proof.final_polynomial)
        self.state = VerifierState.FRI_CHECKED

        return VerificationResult.accept()

    # --- Statement ---

    def _check_statement(self, proof: Proof) -> Tuple[StarkDomain, Composer]:
        if proof.air_name != self.air.name:
            raise ValueError(f"proof is for AIR '{proof.air_name}', verifying '{self.air.name}'")
        if len(proof.public_inputs) != self.air.num_public_inputs:
            raise ValueError(
                f"proof has {len(proof.public_inputs)} public inputs, "
                f"AIR '{self.air.name}' expects {self.air.num_public_inputs}"
            )
        for v in proof.public_inputs:
            if not 0 <= int(v) < GOLDILOCKS_PRIME:
                raise ValueError(f"public input {v} is not a field element")
        domain = StarkDomain.for_air(self.air, int(proof.trace_length), self.config)
        composer = Composer(self.air, domain, proof.public_inputs, self.config.num_workers)
        return domain, composer

    # --- Challenges ---

    def _rederive_challenges(
        self, proof: Proof, domain: StarkDomain, composer: Composer, fri: Fri
    ) -> Challenges:
        """Replay the transcript in prover order.

        Raises:
            ProofOfWorkInvalid: nonce does not meet the grinding target
            TranscriptDesyncError: proof's layer count or query indices differ
        """
        for root in proof.all_fri_roots + (proof.trace_root,):
            if len(root) != HASH_SIZE:
                raise ValueError(f"Merkle root has {len(root)} bytes, expected {HASH_SIZE}")

        transcript = start_transcript(self.air, domain, self.config, proof.public_inputs)
        transcript.absorb(proof.trace_root)
        weights = draw_weights(transcript, composer.num_weights)
        alphas = fri.replay(transcript, proof.all_fri_roots, proof.final_polynomial)

        if not transcript.verify_grinding(int(proof.nonce), self.config.grinding_bits):
            raise ProofOfWorkInvalid(f"nonce {proof.nonce} misses {self.config.grinding_bits} bits of work")
        transcript.put([int(proof.nonce)])

        indices = fri.sample_indices(transcript)
        if list(proof.query_indices) != indices:
            raise TranscriptDesyncError("query indices differ from the re-derived ones")
        return Challenges(weights=weights, alphas=alphas, query_indices=indices)

    # --- Openings ---

    def _check_trace_openings(
        self, proof: Proof, domain: StarkDomain, indices: Sequence[int]
    ) -> Dict[int, Tuple[int, ...]]:
        """Authenticate opened trace rows; return them by evaluation-domain position.

        Raises:
            TranscriptDesyncError: openings at positions other than the re-derived ones
            MerkleProofInvalid: a row does not match the trace root
        """
        expected = domain.trace_query_positions(indices)
        if [o.index for o in proof.trace_openings] != expected:
            raise TranscriptDesyncError("trace openings do not match the query indices")
        width = len(self.air.columns)
        rows = {}
        for o in proof.trace_openings:
            if len(o.v) != width:
                raise ValueError(f"trace opening at {o.index} has {len(o.v)} values, expected {width}")
            if not MerkleTree.verify_group_proof(proof.trace_root, o, domain.extended_size):
                raise MerkleProofInvalid(f"trace opening at {o.index} does not match the trace root")
            rows[o.index] = tuple(o.v)
        return rows

    # --- Composition ---

    def _check_composition(
        self,
        domain: StarkDomain,
        composer: Composer,
        challenges: Challenges,
        rows: Dict[int, Tuple[int, ...]],
        composition_values: Dict[int, FF3],
    ) -> None:
        """Raises CompositionMismatch at the first query position that disagrees."""
        for q in challenges.query_indices:
            for pos in domain.query_pair(q):
                expected = composer.evaluate_at(pos, rows[pos], rows[domain.next_index(pos)], challenges.weights)
                if expected != composition_values[pos]:
                    raise CompositionMismatch(
                        f"composition at position {pos} (query {q}) does not match the opened value"
                    )


# --- Main Entry Point ---

def verify(air: Air, proof: Proof, config: Optional[StarkConfig] = None) -> VerificationResult:
    """Verify a STARK proof for `air` under `config` (defaults when None)."""
    return StarkVerifier(air, config).verify(proof)
