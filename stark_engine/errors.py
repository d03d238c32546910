"""Error taxonomy.

Prover-side errors are fatal and abort proof construction. Verifier-side
errors each carry the RejectionReason the verifier reports; the verifier
catches them and returns a rejection instead of raising.
"""

from enum import Enum


class RejectionReason(Enum):
    """Why a proof was rejected. The first failing check wins."""
    MALFORMED_PROOF = "malformed_proof"
    PROOF_OF_WORK_INVALID = "proof_of_work_invalid"
    MERKLE_PROOF_INVALID = "merkle_proof_invalid"
    COMPOSITION_MISMATCH = "composition_mismatch"
    FRI_CONSISTENCY_FAILURE = "fri_consistency_failure"
    DEGREE_BOUND_VIOLATED = "degree_bound_violated"


class StarkError(Exception):
    """Base class for every error raised by the engine."""


# --- Prover Side ---

class MalformedTrace(StarkError):
    """Trace has the wrong shape or violates its own AIR."""


class DomainSizeMismatch(MalformedTrace):
    """Trace length is not a power of two or exceeds the configured maximum."""


class ConstraintDegreeExceeded(StarkError):
    """A composed quotient exceeds its degree bound."""


# --- Verifier Side ---

class VerificationError(StarkError):
    """A proof failed one of the verifier checks."""
    reason = RejectionReason.MALFORMED_PROOF


class MerkleProofInvalid(VerificationError):
    reason = RejectionReason.MERKLE_PROOF_INVALID


class CompositionMismatch(VerificationError):
    reason = RejectionReason.COMPOSITION_MISMATCH


class FRIConsistencyFailure(VerificationError):
    reason = RejectionReason.FRI_CONSISTENCY_FAILURE


class DegreeBoundViolated(VerificationError):
    reason = RejectionReason.DEGREE_BOUND_VIOLATED


class TranscriptDesyncError(VerificationError):
    """Proof data disagrees with the verifier's own transcript replay.

    Reported as a plain malformed proof: the verifier cannot tell a desync
    from tampering.
    """


class ProofOfWorkInvalid(VerificationError):
    reason = RejectionReason.PROOF_OF_WORK_INVALID
