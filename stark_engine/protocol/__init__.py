"""Protocol - Core STARK protocol algorithms."""

from stark_engine.protocol.config import StarkConfig
from stark_engine.protocol.domain import StarkDomain

from stark_engine.protocol.commitment import TraceCommitment, extend_and_commit
from stark_engine.protocol.composition import Composer, ConstantColumns

from stark_engine.protocol.fri import Fri, FriLayer, FriProof, fold_codeword

from stark_engine.protocol.proof import (
    Proof,
    load_proof_from_json,
    proof_from_bytes,
    proof_from_json,
    proof_to_bytes,
    proof_to_json,
    save_proof_json,
)

from stark_engine.protocol.stages import (
    CompositionCommitted,
    CompositionDrawn,
    Committed,
    Extended,
    FRIComplete,
    QueriesAnswered,
    TraceReady,
)
from stark_engine.protocol.prover import prove
from stark_engine.protocol.verifier import StarkVerifier, VerificationResult, VerifierState, verify

__all__ = [
    # Configuration
    "StarkConfig",
    "StarkDomain",
    # Commitment & Composition
    "TraceCommitment",
    "extend_and_commit",
    "Composer",
    "ConstantColumns",
    # FRI
    "Fri",
    "FriLayer",
    "FriProof",
    "fold_codeword",
    # Proof
    "Proof",
    "proof_to_bytes",
    "proof_from_bytes",
    "proof_to_json",
    "proof_from_json",
    "save_proof_json",
    "load_proof_from_json",
    # Prover stages
    "TraceReady",
    "Extended",
    "Committed",
    "CompositionDrawn",
    "CompositionCommitted",
    "FRIComplete",
    "QueriesAnswered",
    "prove",
    # Verifier
    "StarkVerifier",
    "VerificationResult",
    "VerifierState",
    "verify",
]
