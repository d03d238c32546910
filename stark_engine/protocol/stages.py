"""Prover pipeline stages.

    TraceReady -> Extended -> Committed -> CompositionDrawn ->
    CompositionCommitted -> FRIComplete -> QueriesAnswered -> Proof

Each stage object is produced only by its predecessor's advancing method and
can be advanced exactly once; the transcript travels with the stages, so
every absorb happens before the challenge that depends on it is drawn.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Set, Tuple

from stark_engine.constraints.base import Air, validate_air
from stark_engine.primitives.field import FF, FF3, GOLDILOCKS_PRIME
from stark_engine.primitives.merkle_tree import QueryProof
from stark_engine.primitives.transcript import Transcript
from stark_engine.protocol.commitment import TraceCommitment, commit_codewords, extend_columns, validate_trace
from stark_engine.protocol.composition import Composer, Weights
from stark_engine.protocol.config import StarkConfig
from stark_engine.protocol.domain import StarkDomain
from stark_engine.protocol.fri import FF3Coeffs, Fri, FriLayer
from stark_engine.protocol.proof import Proof
from stark_engine.witness.base import TraceTable

logger = logging.getLogger(__name__)

TRANSCRIPT_DOMAIN_SEPARATOR = b"stark-engine/stark/v1"


# --- Shared Setup ---

def start_transcript(air: Air, domain: StarkDomain, config: StarkConfig, public_inputs: Sequence[int]) -> Transcript:
    """Transcript with the statement absorbed: AIR, domain, parameters, public inputs."""
    transcript = Transcript(TRANSCRIPT_DOMAIN_SEPARATOR)
    transcript.absorb(air.name.encode("utf-8"))
    transcript.put([
        domain.trace_length,
        len(air.columns),
        config.expansion_factor,
        config.num_queries,
        config.folding_factor,
        config.final_degree_threshold,
        config.grinding_bits,
    ])
    transcript.put([len(public_inputs)] + [int(v) for v in public_inputs])
    return transcript


def build_fri(domain: StarkDomain, config: StarkConfig) -> Fri:
    return Fri(
        domain_length=domain.extended_size,
        degree_length=domain.composition_length,
        offset=domain.offset,
        omega=domain.omega,
        final_degree_threshold=config.final_degree_threshold,
        num_queries=config.num_queries,
        num_workers=config.num_workers,
    )


@dataclass
class ProverContext:
    """Per-proof objects every stage shares.

    Only the transcript and the record of advanced stages change.
    """
    air: Air
    config: StarkConfig
    domain: StarkDomain
    composer: Composer
    fri: Fri
    public_inputs: Tuple[int, ...]
    transcript: Transcript
    advanced: Set[str] = field(default_factory=set)


class _Stage:
    """Advance-once discipline shared by every stage.

    The record is kept on the shared context, so copies of a stage made with
    dataclasses.replace count as the same stage.
    """

    def _consume(self) -> None:
        stage = type(self).__name__
        if stage in self.ctx.advanced:
            raise RuntimeError(f"{stage} has already been advanced")
        self.ctx.advanced.add(stage)


# --- Stages ---

@dataclass(frozen=True)
class TraceReady(_Stage):
    ctx: ProverContext
    trace: TraceTable

    @classmethod
    def create(
        cls,
        air: Air,
        trace: TraceTable,
        public_inputs: Sequence[int],
        config: StarkConfig,
        check_constraints: bool = True,
    ) -> "TraceReady":
        """Validate the trace and absorb the statement.

        Args:
            check_constraints: Evaluate the AIR on the trace first and refuse
                to prove a violated one. Disabled only to exercise the verifier
                against dishonest provers.

        Raises:
            DomainSizeMismatch, MalformedTrace
        """
        validate_air(air)
        validate_trace(trace, air, config.max_trace_length)
        domain = StarkDomain.for_air(air, trace.length, config)
        publics = tuple(int(v) % GOLDILOCKS_PRIME for v in public_inputs)
        composer = Composer(air, domain, publics, config.num_workers)
        if check_constraints:
            composer.check_trace(trace)
        transcript = start_transcript(air, domain, config, publics)
        ctx = ProverContext(
            air=air,
            config=config,
            domain=domain,
            composer=composer,
            fri=build_fri(domain, config),
            public_inputs=publics,
            transcript=transcript,
        )
        logger.debug(
            "Proving '%s': %d rows x %d columns, evaluation domain %d",
            air.name, trace.length, trace.width, domain.extended_size,
        )
        return cls(ctx=ctx, trace=trace)

    def extend(self) -> "Extended":
        """Low-degree extend every trace column onto the evaluation domain."""
        self._consume()
        codewords = extend_columns(self.trace.to_field_columns(), self.ctx.domain, self.ctx.config.num_workers)
        return Extended(ctx=self.ctx, columns=tuple(self.trace.columns), codewords=codewords)


@dataclass(frozen=True)
class Extended(_Stage):
    ctx: ProverContext
    columns: Tuple[str, ...]
    codewords: Dict[str, FF]

    def commit(self) -> "Committed":
        """Merkle-commit the extended trace and absorb the root."""
        self._consume()
        tree = commit_codewords(self.columns, self.codewords, self.ctx.config.num_workers)
        commitment = TraceCommitment(columns=self.columns, codewords=self.codewords, tree=tree)
        self.ctx.transcript.absorb(commitment.root)
        return Committed(ctx=self.ctx, trace=commitment)


@dataclass(frozen=True)
class Committed(_Stage):
    ctx: ProverContext
    trace: TraceCommitment

    def draw_composition(self, check_degrees: bool = True) -> "CompositionDrawn":
        """Squeeze the composition weights and build the composition codeword.

        Raises:
            ConstraintDegreeExceeded
        """
        self._consume()
        codeword, weights = self.ctx.composer.compose(self.trace.codewords, self.ctx.transcript, check_degrees)
        return CompositionDrawn(ctx=self.ctx, trace=self.trace, weights=weights, codeword=codeword)


@dataclass(frozen=True)
class CompositionDrawn(_Stage):
    ctx: ProverContext
    trace: TraceCommitment
    weights: Weights
    codeword: FF3

    def commit(self) -> "CompositionCommitted":
        """Commit the composition codeword as the first FRI layer and absorb its root."""
        self._consume()
        layer = self.ctx.fri.commit_layer(self.codeword, 0)
        self.ctx.transcript.absorb(layer.root)
        return CompositionCommitted(ctx=self.ctx, trace=self.trace, composition=layer)


@dataclass(frozen=True)
class CompositionCommitted(_Stage):
    ctx: ProverContext
    trace: TraceCommitment
    composition: FriLayer

    def fold(self) -> "FRIComplete":
        """Run the FRI commit-and-fold rounds down to the final polynomial."""
        self._consume()
        layers, final_polynomial = self.ctx.fri.fold_layers(self.composition, self.ctx.transcript)
        return FRIComplete(ctx=self.ctx, trace=self.trace, layers=layers, final_polynomial=final_polynomial)


@dataclass(frozen=True)
class FRIComplete(_Stage):
    ctx: ProverContext
    trace: TraceCommitment
    layers: List[FriLayer]
    final_polynomial: List[FF3Coeffs]

    def answer_queries(self) -> "QueriesAnswered":
        """Grind, absorb the nonce, sample query indices and open every committed layer."""
        self._consume()
        transcript = self.ctx.transcript
        nonce = transcript.grind(self.ctx.config.grinding_bits)
        transcript.put([nonce])
        indices = self.ctx.fri.sample_indices(transcript)

        positions = self.ctx.domain.trace_query_positions(indices)
        trace_openings = tuple(self.trace.open(positions, self.ctx.config.num_workers))
        fri_openings = self.ctx.fri.open(self.layers, indices)
        return QueriesAnswered(
            ctx=self.ctx,
            trace_root=self.trace.root,
            fri_roots=tuple(layer.root for layer in self.layers),
            final_polynomial=tuple(self.final_polynomial),
            nonce=nonce,
            query_indices=tuple(indices),
            trace_openings=trace_openings,
            fri_openings=fri_openings,
        )


@dataclass(frozen=True)
class QueriesAnswered(_Stage):
    ctx: ProverContext
    trace_root: bytes
    fri_roots: Tuple[bytes, ...]
    final_polynomial: Tuple[FF3Coeffs, ...]
    nonce: int
    query_indices: Tuple[int, ...]
    trace_openings: Tuple[QueryProof, ...]
    fri_openings: Tuple[Tuple[QueryProof, ...], ...] = field(default_factory=tuple)

    def finalize(self) -> Proof:
        """Assemble the immutable proof."""
        self._consume()
        return Proof(
            air_name=self.ctx.air.name,
            trace_length=self.ctx.domain.trace_length,
            public_inputs=self.ctx.public_inputs,
            trace_root=self.trace_root,
            composition_root=self.fri_roots[0],
            fri_roots=self.fri_roots[1:],
            final_polynomial=self.final_polynomial,
            nonce=self.nonce,
            query_indices=self.query_indices,
            trace_openings=self.trace_openings,
            fri_openings=self.fri_openings,
        )
