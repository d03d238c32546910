"""
STARK proof engine over the Goldilocks field.

This package provides:
- Goldilocks field arithmetic and NTTs (via galois)
- blake3 Merkle commitments and Fiat-Shamir transcript
- Constraint composition over AIRs given as plain Python objects
- FRI low-degree testing
- Prover and verifier orchestrators
- Two trace generators with their AIRs: a counter VM and a Rescue-Prime permutation

Usage:
    from stark_engine import StarkConfig, prove, verify
    from stark_engine.constraints import CounterVmAir
    from stark_engine.witness import countdown_program, run_program

    program = countdown_program()
    run = run_program(program, a=5)
    air = CounterVmAir(program)
    proof = prove(air, run.trace, run.public_inputs, StarkConfig(num_queries=24))
    assert verify(air, proof, StarkConfig(num_queries=24)).accepted
"""

from stark_engine.errors import (
    CompositionMismatch,
    ConstraintDegreeExceeded,
    DegreeBoundViolated,
    DomainSizeMismatch,
    FRIConsistencyFailure,
    MalformedTrace,
    MerkleProofInvalid,
    ProofOfWorkInvalid,
    RejectionReason,
    StarkError,
    TranscriptDesyncError,
    VerificationError,
)
from stark_engine.protocol import (
    Proof,
    StarkConfig,
    VerificationResult,
    prove,
    verify,
)

__version__ = "0.1.0"

__all__ = [
    # Entry points
    "prove",
    "verify",
    "StarkConfig",
    "Proof",
    "VerificationResult",
    # Errors
    "StarkError",
    "MalformedTrace",
    "DomainSizeMismatch",
    "ConstraintDegreeExceeded",
    "VerificationError",
    "RejectionReason",
    "MerkleProofInvalid",
    "CompositionMismatch",
    "FRIConsistencyFailure",
    "DegreeBoundViolated",
    "TranscriptDesyncError",
    "ProofOfWorkInvalid",
]
