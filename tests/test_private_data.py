"""Tests for the Merkle tree and private data selective disclosure."""

import json

import pytest

from eas_kit.eas.encoder import SchemaItem
from eas_kit.eas.private_data import (
    MerkleValue,
    PrivateData,
    StandardMerkleTree,
    generate_private_data_proof,
    get_multi_proof,
    make_merkle_tree,
    prepare_private_data_object,
)
from eas_kit.errors import ValidationError

VALUES = [
    ["0x1111111111111111111111111111111111111111", 5000000000000000000],
    ["0x2222222222222222222222222222222222222222", 2500000000000000000],
    ["0x3333333333333333333333333333333333333333", 1],
]
ENCODING = ["address", "uint256"]

SALTS = ["0x" + f"{i:02x}" * 32 for i in (1, 2, 3)]


@pytest.fixture
def tree():
    return StandardMerkleTree.of(VALUES, ENCODING)


@pytest.fixture
def private_data():
    return PrivateData([
        MerkleValue("location", "string", "New York", SALTS[0]),
        MerkleValue("timestamp", "uint256", 1633072800, SALTS[1]),
        MerkleValue("notes", "string", "This is a private note.", SALTS[2]),
    ])


# =============================================================================
# StandardMerkleTree
# =============================================================================

class TestStandardMerkleTree:

    def test_matches_openzeppelin_reference_root(self):
        # Two-leaf example published in the @openzeppelin/merkle-tree README
        reference = StandardMerkleTree.of(VALUES[:2], ENCODING)
        assert reference.root == "0xd4dee0beab2d53f2cc83e567171bd2820e49898130a22622b10ead383e90bd77"

    def test_every_single_proof_verifies(self, tree):
        for i, value in enumerate(VALUES):
            assert tree.verify(value, tree.get_proof(i))

    def test_tampered_value_fails(self, tree):
        proof = tree.get_proof(0)
        assert not tree.verify([VALUES[0][0], 1234], proof)

    def test_root_independent_of_input_order(self, tree):
        assert StandardMerkleTree.of(list(reversed(VALUES)), ENCODING).root == tree.root

    def test_multi_proof_verifies(self, tree):
        multi = tree.get_multi_proof([0, 2])
        assert len(multi["leaves"]) == 2
        assert tree.verify_multi_proof(multi)

    def test_multi_proof_of_all_leaves(self, tree):
        multi = tree.get_multi_proof([0, 1, 2])
        assert multi["proof"] == []
        assert tree.verify_multi_proof(multi)

    def test_single_leaf_tree(self):
        tree = StandardMerkleTree.of([VALUES[0]], ENCODING)
        assert tree.get_proof(0) == []
        assert tree.verify(VALUES[0], [])


class TestTreePrimitives:

    def test_empty_tree_rejected(self):
        with pytest.raises(ValueError):
            make_merkle_tree([])

    def test_duplicate_index_rejected(self):
        tree = make_merkle_tree([b"\x01" * 32, b"\x02" * 32])
        with pytest.raises(ValueError, match="duplicated"):
            get_multi_proof(tree, [1, 1])

    def test_non_leaf_index_rejected(self):
        tree = make_merkle_tree([b"\x01" * 32, b"\x02" * 32])
        with pytest.raises(ValueError, match="not a leaf"):
            get_multi_proof(tree, [0])


# =============================================================================
# PrivateData
# =============================================================================

class TestPrivateData:

    def test_salts_generated_when_missing(self):
        data = PrivateData([MerkleValue("notes", "string", "hi")])
        salt = data.values[0].salt
        assert salt.startswith("0x") and len(salt) == 66

    def test_root_is_deterministic_for_fixed_salts(self, private_data):
        again = PrivateData(private_data.values)
        assert again.get_full_tree().root == private_data.get_full_tree().root

    def test_salt_changes_root(self, private_data):
        values = list(private_data.values)
        values[0] = MerkleValue("location", "string", "New York", "0x" + "ff" * 32)
        assert PrivateData(values).get_full_tree().root != private_data.get_full_tree().root

    def test_multi_proof_discloses_selected_leaves(self, private_data):
        proof = private_data.generate_multi_proof([0, 1])
        names = sorted(leaf["name"] for leaf in proof["leaves"])
        assert names == ["location", "timestamp"]
        assert all(set(leaf) == {"type", "name", "value", "salt"} for leaf in proof["leaves"])
        assert PrivateData.verify_multi_proof(private_data.get_full_tree().root, proof)

    def test_tampered_disclosure_fails(self, private_data):
        proof = private_data.generate_multi_proof([0])
        proof["leaves"][0]["value"] = "Boston"
        assert not PrivateData.verify_multi_proof(private_data.get_full_tree().root, proof)


class TestPrivateDataHelpers:

    def test_prepare_from_schema_items(self):
        items = [SchemaItem("location", "string", "New York"), SchemaItem("timestamp", "uint256", 1)]
        data = prepare_private_data_object(items)
        assert [v.name for v in data.values] == ["location", "timestamp"]

    def test_prepare_empty_returns_none(self):
        assert prepare_private_data_object([]) is None

    def test_proof_for_named_fields(self, private_data):
        proof, proof_json = generate_private_data_proof(private_data, ["notes"])
        assert [leaf["name"] for leaf in proof["leaves"]] == ["notes"]
        assert json.loads(proof_json) == proof

    def test_proof_for_all_fields_by_default(self, private_data):
        proof, _ = generate_private_data_proof(private_data)
        assert len(proof["leaves"]) == 3
        assert proof["proof"] == []

    def test_unknown_field_rejected(self, private_data):
        with pytest.raises(ValidationError, match="unknown"):
            generate_private_data_proof(private_data, ["secret"])
