"""Top-level STARK proof generation."""

import logging
import time
from typing import Optional, Sequence

from stark_engine.constraints.base import Air
from stark_engine.protocol.config import StarkConfig
from stark_engine.protocol.proof import Proof
from stark_engine.protocol.stages import TraceReady
from stark_engine.witness.base import TraceTable

logger = logging.getLogger(__name__)


# --- Main Entry Point ---

def prove(
    air: Air,
    trace: TraceTable,
    public_inputs: Sequence[int],
    config: Optional[StarkConfig] = None,
    check_constraints: bool = True,
) -> Proof:
    """Generate a STARK proof that `trace` satisfies `air` with `public_inputs`.

    Args:
        air: Constraint system
        trace: Execution trace, one column per AIR column, power-of-two length
        public_inputs: Values the boundary constraints are bound to
        config: Security and resource parameters (defaults when None)
        check_constraints: Refuse to prove a trace that violates the AIR.
            When False the prover also skips quotient degree checks and
            produces whatever proof the data gives, valid or not.

    Returns:
        The proof; deterministic for identical inputs.

    Raises:
        DomainSizeMismatch: trace length invalid for this configuration
        MalformedTrace: trace shape wrong, or a constraint violated
        ConstraintDegreeExceeded: a quotient exceeds its bound (AIR declares
            degrees lower than its constraints have)
    """
    config = config or StarkConfig()
    start = time.perf_counter()

    # === STAGE 0: Statement ===
    ready = TraceReady.create(air, trace, public_inputs, config, check_constraints)
    domain = ready.ctx.domain
    _log_stage("setup", start)

    # === STAGE 1: Trace Commitment ===
    t = time.perf_counter()
    committed = ready.extend().commit()
    _log_stage("trace commitment", t)

    # === STAGE 2: Composition ===
    t = time.perf_counter()
    composed = committed.draw_composition(check_degrees=check_constraints).commit()
    _log_stage("composition", t)

    # === STAGE 3: FRI ===
    t = time.perf_counter()
    folded = composed.fold()
    _log_stage("fri folding", t)

    # === STAGE 4: Queries ===
    t = time.perf_counter()
    proof = folded.answer_queries().finalize()
    _log_stage("queries", t)

    logger.info(
        "Proved '%s' (%d rows, domain %d, %d queries) in %.3fs",
        air.name, domain.trace_length, domain.extended_size, config.num_queries,
        time.perf_counter() - start,
    )
    return proof


def _log_stage(name: str, start: float) -> None:
    logger.debug("Stage %s took %.3fs", name, time.perf_counter() - start)
