"""Tests for proof serialization (binary and JSON)."""

import dataclasses
import json

import pytest

from stark_engine.primitives.field import GOLDILOCKS_PRIME
from stark_engine.protocol.config import StarkConfig
from stark_engine.protocol.proof import (
    MAGIC,
    Proof,
    load_proof_from_json,
    proof_from_bytes,
    proof_from_json,
    proof_to_bytes,
    proof_to_json,
    save_proof_json,
)
from stark_engine.protocol.prover import prove


@pytest.fixture(scope="module")
def proof(counter_air, countdown_run) -> Proof:
    config = StarkConfig(expansion_factor=2, num_queries=6, final_degree_threshold=4, grinding_bits=2, num_workers=1)
    return prove(counter_air, countdown_run.trace, countdown_run.public_inputs, config)


class TestBinary:

    def test_roundtrip(self, proof: Proof) -> None:
        data = proof.to_bytes()
        assert data.startswith(MAGIC)
        assert Proof.from_bytes(data) == proof

    def test_encoding_is_canonical(self, proof: Proof) -> None:
        assert proof_to_bytes(proof_from_bytes(proof_to_bytes(proof))) == proof_to_bytes(proof)

    @pytest.mark.parametrize("cut", [0, 3, 20, 100, -1])
    def test_truncation_raises(self, proof: Proof, cut: int) -> None:
        data = proof_to_bytes(proof)
        with pytest.raises(ValueError):
            proof_from_bytes(data[:cut])

    def test_trailing_bytes_raise(self, proof: Proof) -> None:
        with pytest.raises(ValueError, match="trailing"):
            proof_from_bytes(proof_to_bytes(proof) + b"\x00")

    def test_bad_magic_raises(self, proof: Proof) -> None:
        with pytest.raises(ValueError, match="magic"):
            proof_from_bytes(b"XXXX" + proof_to_bytes(proof)[4:])

    def test_non_canonical_element_raises(self, proof: Proof) -> None:
        bad = dataclasses.replace(proof, final_polynomial=((0, GOLDILOCKS_PRIME, 0),))
        with pytest.raises(ValueError, match="non-canonical"):
            proof_from_bytes(proof_to_bytes(bad))

    def test_final_polynomial_is_extension_valued(self, proof: Proof) -> None:
        assert proof.final_polynomial
        assert all(len(c) == 3 for c in proof.final_polynomial)
        with pytest.raises(ValueError, match="3 coefficients"):
            proof_to_bytes(dataclasses.replace(proof, final_polynomial=((1,),)))

    def test_short_digest_cannot_be_written(self, proof: Proof) -> None:
        with pytest.raises(ValueError):
            proof_to_bytes(dataclasses.replace(proof, trace_root=b"\x00" * 5))

    def test_size_measure(self, proof: Proof) -> None:
        assert proof.num_field_elements > len(proof.public_inputs)


class TestJson:

    def test_roundtrip(self, proof: Proof) -> None:
        j = proof_to_json(proof)
        assert proof_from_json(json.loads(json.dumps(j))) == proof

    def test_keys(self, proof: Proof) -> None:
        j = proof_to_json(proof)
        assert j["air"] == "counter_vm"
        assert j["traceLength"] == 8
        assert len(j["friOpenings"]) == len(proof.all_fri_roots)
        assert all(len(c) == 3 for c in j["finalPol"])
        assert all(len(o["values"]) == 3 for layer in j["friOpenings"] for o in layer)

    def test_file_roundtrip(self, proof: Proof, tmp_path) -> None:
        path = tmp_path / "proof.json"
        save_proof_json(proof, str(path))
        assert load_proof_from_json(str(path)) == proof

    def test_missing_key_raises(self, proof: Proof) -> None:
        j = proof_to_json(proof)
        del j["traceRoot"]
        with pytest.raises(KeyError):
            proof_from_json(j)
