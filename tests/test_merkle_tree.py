"""Tests for the blake3 Merkle tree."""

import dataclasses

import pytest

from stark_engine.primitives.field import GOLDILOCKS_PRIME
from stark_engine.primitives.merkle_tree import HASH_SIZE, MerkleTree, hash_leaf, hash_node


def _rows(n: int, width: int = 3):
    return [[(i * width + j) * 7919 % GOLDILOCKS_PRIME for j in range(width)] for i in range(n)]


@pytest.fixture
def tree() -> MerkleTree:
    t = MerkleTree(num_workers=1)
    t.merkelize(_rows(16))
    return t


class TestMerkleTree:

    def test_root_is_deterministic_across_worker_counts(self) -> None:
        rows = _rows(256)
        roots = set()
        for workers in (1, 2, 4):
            t = MerkleTree(num_workers=workers)
            t.merkelize(rows)
            roots.add(t.get_root())
        assert len(roots) == 1

    def test_root_of_two_leaves(self) -> None:
        rows = _rows(2)
        t = MerkleTree(num_workers=1)
        t.merkelize(rows)
        assert t.get_root() == hash_node(hash_leaf(rows[0]), hash_leaf(rows[1]))
        assert len(t.get_root()) == HASH_SIZE

    def test_requires_power_of_two(self) -> None:
        with pytest.raises(ValueError):
            MerkleTree().merkelize(_rows(6))

    def test_root_before_build_raises(self) -> None:
        with pytest.raises(ValueError):
            MerkleTree().get_root()

    @pytest.mark.parametrize("idx", [0, 5, 15])
    def test_query_proof_verifies(self, tree: MerkleTree, idx: int) -> None:
        proof = tree.get_query_proof(idx)
        assert proof.index == idx
        assert len(proof.mp) == 4
        assert MerkleTree.verify_group_proof(tree.get_root(), proof, 16)

    def test_query_out_of_range_raises(self, tree: MerkleTree) -> None:
        with pytest.raises(ValueError):
            tree.get_query_proof(16)


class TestMerkleVerification:
    """Tampered openings are rejected, never raised on."""

    def test_tampered_value(self, tree: MerkleTree) -> None:
        proof = tree.get_query_proof(3)
        bad = dataclasses.replace(proof, v=(proof.v[0] + 1,) + proof.v[1:])
        assert not MerkleTree.verify_group_proof(tree.get_root(), bad, 16)

    def test_tampered_sibling(self, tree: MerkleTree) -> None:
        proof = tree.get_query_proof(3)
        bad = dataclasses.replace(proof, mp=(bytes(HASH_SIZE),) + proof.mp[1:])
        assert not MerkleTree.verify_group_proof(tree.get_root(), bad, 16)

    def test_wrong_index(self, tree: MerkleTree) -> None:
        proof = tree.get_query_proof(3)
        assert not MerkleTree.verify_group_proof(tree.get_root(), dataclasses.replace(proof, index=2), 16)
        assert not MerkleTree.verify_group_proof(tree.get_root(), dataclasses.replace(proof, index=99), 16)

    def test_wrong_path_length(self, tree: MerkleTree) -> None:
        proof = tree.get_query_proof(3)
        assert not MerkleTree.verify_group_proof(tree.get_root(), dataclasses.replace(proof, mp=proof.mp[:-1]), 16)
        assert not MerkleTree.verify_group_proof(tree.get_root(), proof, 32)

    def test_non_canonical_value(self, tree: MerkleTree) -> None:
        proof = tree.get_query_proof(0)
        bad = dataclasses.replace(proof, v=(GOLDILOCKS_PRIME,) + proof.v[1:])
        assert not MerkleTree.verify_group_proof(tree.get_root(), bad, 16)

    def test_short_sibling(self, tree: MerkleTree) -> None:
        proof = tree.get_query_proof(0)
        bad = dataclasses.replace(proof, mp=(b"\x00",) + proof.mp[1:])
        assert not MerkleTree.verify_group_proof(tree.get_root(), bad, 16)
