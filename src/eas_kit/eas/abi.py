"""Minimal ABIs for the EAS and SchemaRegistry contracts.

Only the functions and events this package calls are included.
"""

from __future__ import annotations

from web3 import Web3
from web3.contract import Contract

from eas_kit.config import NetworkConfig

_ATTESTATION_REQUEST_DATA = {
    "name": "data",
    "type": "tuple",
    "components": [
        {"name": "recipient", "type": "address"},
        {"name": "expirationTime", "type": "uint64"},
        {"name": "revocable", "type": "bool"},
        {"name": "refUID", "type": "bytes32"},
        {"name": "data", "type": "bytes"},
        {"name": "value", "type": "uint256"},
    ],
}

_REVOCATION_REQUEST_DATA = {
    "name": "data",
    "type": "tuple",
    "components": [
        {"name": "uid", "type": "bytes32"},
        {"name": "value", "type": "uint256"},
    ],
}

_ATTESTATION = {
    "name": "",
    "type": "tuple",
    "components": [
        {"name": "uid", "type": "bytes32"},
        {"name": "schema", "type": "bytes32"},
        {"name": "time", "type": "uint64"},
        {"name": "expirationTime", "type": "uint64"},
        {"name": "revocationTime", "type": "uint64"},
        {"name": "refUID", "type": "bytes32"},
        {"name": "recipient", "type": "address"},
        {"name": "attester", "type": "address"},
        {"name": "revocable", "type": "bool"},
        {"name": "data", "type": "bytes"},
    ],
}

_SCHEMA_RECORD = {
    "name": "",
    "type": "tuple",
    "components": [
        {"name": "uid", "type": "bytes32"},
        {"name": "resolver", "type": "address"},
        {"name": "revocable", "type": "bool"},
        {"name": "schema", "type": "string"},
    ],
}

EAS_ABI: list[dict] = [
    {
        "type": "function",
        "name": "attest",
        "stateMutability": "payable",
        "inputs": [
            {
                "name": "request",
                "type": "tuple",
                "components": [{"name": "schema", "type": "bytes32"}, _ATTESTATION_REQUEST_DATA],
            }
        ],
        "outputs": [{"name": "", "type": "bytes32"}],
    },
    {
        "type": "function",
        "name": "revoke",
        "stateMutability": "payable",
        "inputs": [
            {
                "name": "request",
                "type": "tuple",
                "components": [{"name": "schema", "type": "bytes32"}, _REVOCATION_REQUEST_DATA],
            }
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "getAttestation",
        "stateMutability": "view",
        "inputs": [{"name": "uid", "type": "bytes32"}],
        "outputs": [_ATTESTATION],
    },
    {
        "type": "function",
        "name": "timestamp",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "data", "type": "bytes32"}],
        "outputs": [{"name": "", "type": "uint64"}],
    },
    {
        "type": "function",
        "name": "getTimestamp",
        "stateMutability": "view",
        "inputs": [{"name": "data", "type": "bytes32"}],
        "outputs": [{"name": "", "type": "uint64"}],
    },
    {
        "type": "function",
        "name": "version",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
    {
        "type": "event",
        "name": "Attested",
        "anonymous": False,
        "inputs": [
            {"name": "recipient", "type": "address", "indexed": True},
            {"name": "attester", "type": "address", "indexed": True},
            {"name": "uid", "type": "bytes32", "indexed": False},
            {"name": "schemaUID", "type": "bytes32", "indexed": True},
        ],
    },
    {
        "type": "event",
        "name": "Revoked",
        "anonymous": False,
        "inputs": [
            {"name": "recipient", "type": "address", "indexed": True},
            {"name": "attester", "type": "address", "indexed": True},
            {"name": "uid", "type": "bytes32", "indexed": False},
            {"name": "schemaUID", "type": "bytes32", "indexed": True},
        ],
    },
    {
        "type": "event",
        "name": "Timestamped",
        "anonymous": False,
        "inputs": [
            {"name": "data", "type": "bytes32", "indexed": True},
            {"name": "timestamp", "type": "uint64", "indexed": True},
        ],
    },
]

SCHEMA_REGISTRY_ABI: list[dict] = [
    {
        "type": "function",
        "name": "register",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "schema", "type": "string"},
            {"name": "resolver", "type": "address"},
            {"name": "revocable", "type": "bool"},
        ],
        "outputs": [{"name": "", "type": "bytes32"}],
    },
    {
        "type": "function",
        "name": "getSchema",
        "stateMutability": "view",
        "inputs": [{"name": "uid", "type": "bytes32"}],
        "outputs": [_SCHEMA_RECORD],
    },
    {
        "type": "event",
        "name": "Registered",
        "anonymous": False,
        "inputs": [
            {"name": "uid", "type": "bytes32", "indexed": True},
            {"name": "registerer", "type": "address", "indexed": True},
            {**_SCHEMA_RECORD, "name": "schema", "indexed": False},
        ],
    },
]


def eas_contract(w3: Web3, network: NetworkConfig) -> Contract:
    return w3.eth.contract(address=Web3.to_checksum_address(network.eas_address), abi=EAS_ABI)


def schema_registry_contract(w3: Web3, network: NetworkConfig) -> Contract:
    return w3.eth.contract(
        address=Web3.to_checksum_address(network.schema_registry_address),
        abi=SCHEMA_REGISTRY_ABI,
    )
