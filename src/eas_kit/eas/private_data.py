"""Private data attestations: a Merkle tree over salted field values.

The tree follows OpenZeppelin's ``StandardMerkleTree`` (double-hashed ABI
encoded leaves, sorted leaves, commutative pair hashing) so roots and
multi-proofs interoperate with the EAS SDK and explorer.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from eth_abi import encode
from eth_utils import keccak
from web3 import Web3

from eas_kit.eas.encoder import SchemaItem, coerce_value
from eas_kit.errors import ValidationError

logger = logging.getLogger("eas_kit.eas.private_data")

LEAF_ENCODING = ["string", "string", "bytes", "bytes32"]


# ---------------------------------------------------------------------------
# Merkle tree primitives
# ---------------------------------------------------------------------------


def _hash_pair(a: bytes, b: bytes) -> bytes:
    return keccak(b"".join(sorted((a, b))))


def _left_child(i: int) -> int:
    return 2 * i + 1


def _parent(i: int) -> int:
    if i <= 0:
        raise ValueError("Root has no parent")
    return (i - 1) // 2


def _sibling(i: int) -> int:
    if i <= 0:
        raise ValueError("Root has no siblings")
    return i + 1 if i % 2 else i - 1


def _check_leaf(tree: Sequence[bytes], i: int) -> None:
    if not (len(tree) // 2 <= i < len(tree)):
        raise ValueError(f"Index {i} is not a leaf")


def make_merkle_tree(leaves: Sequence[bytes]) -> list[bytes]:
    """Lay out a complete binary tree in an array, leaves at the end reversed."""
    if not leaves:
        raise ValueError("Expected non-zero number of leaves")
    tree: list[bytes] = [b""] * (2 * len(leaves) - 1)
    for i, leaf in enumerate(leaves):
        tree[len(tree) - 1 - i] = leaf
    for i in range(len(tree) - 1 - len(leaves), -1, -1):
        left = _left_child(i)
        tree[i] = _hash_pair(tree[left], tree[left + 1])
    return tree


def get_proof(tree: Sequence[bytes], index: int) -> list[bytes]:
    _check_leaf(tree, index)
    proof = []
    while index > 0:
        proof.append(tree[_sibling(index)])
        index = _parent(index)
    return proof


def process_proof(leaf: bytes, proof: Sequence[bytes]) -> bytes:
    node = leaf
    for sibling in proof:
        node = _hash_pair(node, sibling)
    return node


def get_multi_proof(tree: Sequence[bytes], indices: Sequence[int]) -> tuple[list[bytes], list[bytes], list[bool]]:
    """Return ``(leaves, proof, proof_flags)`` proving several leaves at once."""
    for i in indices:
        _check_leaf(tree, i)
    ordered = sorted(indices, reverse=True)
    if any(a == b for a, b in zip(ordered, ordered[1:])):
        raise ValueError("Cannot prove duplicated index")

    stack = list(ordered)
    proof: list[bytes] = []
    proof_flags: list[bool] = []
    while stack and stack[0] > 0:
        j = stack.pop(0)
        s = _sibling(j)
        p = _parent(j)
        if stack and s == stack[0]:
            proof_flags.append(True)
            stack.pop(0)
        else:
            proof_flags.append(False)
            proof.append(tree[s])
        stack.append(p)

    if not ordered:
        proof.append(tree[0])
    return [tree[i] for i in ordered], proof, proof_flags


def process_multi_proof(leaves: Sequence[bytes], proof: Sequence[bytes], proof_flags: Sequence[bool]) -> bytes:
    if len(proof) < sum(1 for flag in proof_flags if not flag):
        raise ValueError("Invalid multiproof format")
    if len(leaves) + len(proof) != len(proof_flags) + 1:
        raise ValueError("Provided leaves and multiproof are not compatible")

    stack = list(leaves)
    remaining = list(proof)
    for flag in proof_flags:
        a = stack.pop(0)
        b = stack.pop(0) if flag else remaining.pop(0)
        stack.append(_hash_pair(a, b))
    return stack.pop() if stack else remaining.pop(0)


def standard_leaf_hash(types: Sequence[str], values: Sequence[Any]) -> bytes:
    return keccak(keccak(encode(list(types), list(values))))


class StandardMerkleTree:
    """Merkle tree over ABI-typed tuples, compatible with OpenZeppelin's."""

    def __init__(self, tree: list[bytes], values: list[tuple[Any, ...]], tree_indices: list[int], encoding: list[str]):
        self.tree = tree
        self.values = values
        self.tree_indices = tree_indices
        self.encoding = encoding
        self._hash_lookup = {tree[ti]: vi for vi, ti in enumerate(tree_indices)}

    @classmethod
    def of(cls, values: Sequence[Sequence[Any]], encoding: Sequence[str]) -> StandardMerkleTree:
        hashed = sorted(
            ((standard_leaf_hash(encoding, v), i) for i, v in enumerate(values)),
            key=lambda pair: pair[0],
        )
        tree = make_merkle_tree([h for h, _ in hashed])
        tree_indices = [0] * len(values)
        for leaf_index, (_, value_index) in enumerate(hashed):
            tree_indices[value_index] = len(tree) - leaf_index - 1
        return cls(tree, [tuple(v) for v in values], tree_indices, list(encoding))

    @property
    def root(self) -> str:
        return Web3.to_hex(self.tree[0])

    def leaf_hash(self, value: Sequence[Any]) -> bytes:
        return standard_leaf_hash(self.encoding, value)

    def get_proof(self, value_index: int) -> list[str]:
        return [Web3.to_hex(node) for node in get_proof(self.tree, self.tree_indices[value_index])]

    def get_multi_proof(self, value_indices: Sequence[int]) -> dict[str, list]:
        """Return leaves (original values), proof nodes and flags."""
        leaves, proof, flags = get_multi_proof(self.tree, [self.tree_indices[i] for i in value_indices])
        return {
            "leaves": [self.values[self._hash_lookup[leaf]] for leaf in leaves],
            "proof": [Web3.to_hex(node) for node in proof],
            "proofFlags": flags,
        }

    def verify(self, value: Sequence[Any], proof: Sequence[str]) -> bool:
        node = process_proof(self.leaf_hash(value), [bytes.fromhex(p[2:]) for p in proof])
        return Web3.to_hex(node) == self.root

    def verify_multi_proof(self, multi_proof: dict[str, list]) -> bool:
        leaves = [self.leaf_hash(v) for v in multi_proof["leaves"]]
        proof = [bytes.fromhex(p[2:]) for p in multi_proof["proof"]]
        return Web3.to_hex(process_multi_proof(leaves, proof, multi_proof["proofFlags"])) == self.root


# ---------------------------------------------------------------------------
# EAS private data
# ---------------------------------------------------------------------------


@dataclass
class MerkleValue:
    name: str
    type: str
    value: Any
    salt: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "name": self.name, "value": self.value, "salt": self.salt}


@dataclass
class FullMerkleDataTree:
    root: str
    values: list[MerkleValue] = field(default_factory=list)


def _leaf_tuple(item: MerkleValue) -> tuple[str, str, bytes, bytes]:
    encoded_value = encode([item.type], [coerce_value(item.type, item.value)])
    return (item.type, item.name, encoded_value, bytes.fromhex(item.salt[2:]))


class PrivateData:
    """A set of salted values committed to by a single Merkle root."""

    def __init__(self, values: Sequence[MerkleValue]) -> None:
        self.values = [
            MerkleValue(v.name, v.type, v.value, v.salt or Web3.to_hex(os.urandom(32))) for v in values
        ]
        self.tree = StandardMerkleTree.of([_leaf_tuple(v) for v in self.values], LEAF_ENCODING)

    def get_full_tree(self) -> FullMerkleDataTree:
        return FullMerkleDataTree(root=self.tree.root, values=list(self.values))

    def generate_multi_proof(self, indexes: Sequence[int]) -> dict[str, Any]:
        """Multi-proof disclosing the values at *indexes* (salts included)."""
        proof = self.tree.get_multi_proof(indexes)
        by_leaf = {self.tree.leaf_hash(_leaf_tuple(v)): v for v in self.values}
        leaves = [by_leaf[self.tree.leaf_hash(leaf)].to_dict() for leaf in proof["leaves"]]
        return {"leaves": leaves, "proof": proof["proof"], "proofFlags": proof["proofFlags"]}

    @staticmethod
    def verify_multi_proof(root: str, multi_proof: dict[str, Any]) -> bool:
        leaves = [
            standard_leaf_hash(LEAF_ENCODING, _leaf_tuple(MerkleValue(**leaf)))
            for leaf in multi_proof["leaves"]
        ]
        proof = [bytes.fromhex(p[2:]) for p in multi_proof["proof"]]
        computed = process_multi_proof(leaves, proof, multi_proof["proofFlags"])
        return Web3.to_hex(computed).lower() == root.lower()


def prepare_private_data_object(schema_items: Sequence[SchemaItem]) -> Optional[PrivateData]:
    """Wrap schema items in a :class:`PrivateData`; ``None`` when there are none."""
    if not schema_items:
        logger.info("No private fields identified or provided. Returning no PrivateData object.")
        return None
    private_data = PrivateData([MerkleValue(name=i.name, type=i.type, value=i.value) for i in schema_items])
    logger.info("PrivateData object created successfully.")
    return private_data


def generate_private_data_proof(
    private_data: PrivateData,
    fields_to_disclose: Optional[Sequence[str]] = None,
) -> tuple[dict[str, Any], str]:
    """Build a multi-proof for the named fields (all fields when ``None``).

    Returns the proof object and its JSON form, ready to paste into the
    EAS explorer's private data verifier.
    """
    names = [v.name for v in private_data.values]
    if fields_to_disclose is None:
        indexes = list(range(len(names)))
    else:
        unknown = [f for f in fields_to_disclose if f not in names]
        if unknown:
            raise ValidationError(f"Cannot disclose unknown field(s): {', '.join(unknown)}")
        indexes = [names.index(f) for f in fields_to_disclose]

    proof = private_data.generate_multi_proof(indexes)
    return proof, json.dumps(proof, indent=2)
