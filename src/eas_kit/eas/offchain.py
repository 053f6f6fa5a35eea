"""EIP-712 signing, UID derivation and signer recovery for off-chain attestations.

Three typed-data layouts exist, selected by the EAS contract version:

* legacy (< 1.0.0): primary type ``Attestation``, no ``version`` field
* v1 (< 1.3.0): primary type ``Attest`` with a leading ``version`` field
* v2: v1 plus a random 32-byte ``salt``
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Optional

from eth_account import Account
from eth_account.messages import SignableMessage, encode_typed_data
from eth_account.signers.local import LocalAccount
from web3 import Web3

from eas_kit.config import ZERO_ADDRESS, ZERO_HASH
from eas_kit.storage.models import EIP712Domain, OffchainMessage, Signature, SignedOffchainAttestation

DOMAIN_NAME = "EAS Attestation"

EIP712_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]


class OffchainAttestationVersion(IntEnum):
    LEGACY = 0
    V1 = 1
    V2 = 2


_BASE_FIELDS = [
    {"name": "schema", "type": "bytes32"},
    {"name": "recipient", "type": "address"},
    {"name": "time", "type": "uint64"},
    {"name": "expirationTime", "type": "uint64"},
    {"name": "revocable", "type": "bool"},
    {"name": "refUID", "type": "bytes32"},
    {"name": "data", "type": "bytes"},
]

ATTESTATION_TYPES: dict[OffchainAttestationVersion, tuple[str, list[dict[str, str]]]] = {
    OffchainAttestationVersion.LEGACY: ("Attestation", _BASE_FIELDS),
    OffchainAttestationVersion.V1: ("Attest", [{"name": "version", "type": "uint16"}, *_BASE_FIELDS]),
    OffchainAttestationVersion.V2: (
        "Attest",
        [{"name": "version", "type": "uint16"}, *_BASE_FIELDS, {"name": "salt", "type": "bytes32"}],
    ),
}


@dataclass
class OffchainAttestationParams:
    schema: str
    recipient: str
    time: int
    expiration_time: int
    revocable: bool
    data: bytes
    ref_uid: str = ZERO_HASH
    salt: Optional[str] = None


def _version_tuple(version: str) -> tuple[int, ...]:
    parts = [int(p) for p in re.findall(r"\d+", version)[:3]]
    return tuple(parts + [0] * (3 - len(parts)))


def version_for_contract(contract_version: str) -> OffchainAttestationVersion:
    """Map an EAS contract ``version()`` string to its off-chain layout."""
    parsed = _version_tuple(contract_version)
    if parsed < (1, 0, 0):
        return OffchainAttestationVersion.LEGACY
    if parsed < (1, 3, 0):
        return OffchainAttestationVersion.V1
    return OffchainAttestationVersion.V2


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return bytes.fromhex(value[2:] if value.startswith("0x") else value)


def get_offchain_uid(
    version: OffchainAttestationVersion,
    schema: str,
    recipient: str,
    time: int,
    expiration_time: int,
    revocable: bool,
    ref_uid: str,
    data: Any,
    salt: Optional[str] = None,
) -> str:
    """Derive the UID of an off-chain attestation (solidity-packed keccak)."""
    types = ["bytes", "address", "address", "uint64", "uint64", "bool", "bytes32", "bytes"]
    values: list[Any] = [
        schema.encode("utf-8"),
        Web3.to_checksum_address(recipient),
        ZERO_ADDRESS,
        time,
        expiration_time,
        revocable,
        _to_bytes(ref_uid),
        _to_bytes(data),
    ]
    if version >= OffchainAttestationVersion.V1:
        types.insert(0, "uint16")
        values.insert(0, int(version))
    if version >= OffchainAttestationVersion.V2:
        if salt is None:
            raise ValueError("A salt is required for version 2 off-chain attestations")
        types.append("bytes32")
        values.append(_to_bytes(salt))
    types.append("uint32")
    values.append(0)
    return Web3.to_hex(Web3.solidity_keccak(types, values))


def build_typed_data(
    domain: EIP712Domain,
    primary_type: str,
    types: dict[str, list[dict[str, str]]],
    message: OffchainMessage,
) -> dict[str, Any]:
    """Assemble the full EIP-712 payload for ``encode_typed_data``."""
    fields = {f["name"]: f["type"] for f in types[primary_type]}
    raw = message.model_dump(by_alias=True, exclude_none=True)
    signing_message = {
        name: _to_bytes(value) if fields.get(name, "").startswith("bytes") else value
        for name, value in raw.items()
        if name in fields
    }
    return {
        "types": {"EIP712Domain": EIP712_DOMAIN_TYPE, **types},
        "primaryType": primary_type,
        "domain": domain.model_dump(by_alias=True),
        "message": signing_message,
    }


def _signable(signed: SignedOffchainAttestation) -> SignableMessage:
    return encode_typed_data(
        full_message=build_typed_data(signed.domain, signed.primary_type, signed.types, signed.message)
    )


def sign_offchain_attestation(
    account: LocalAccount,
    domain: EIP712Domain,
    version: OffchainAttestationVersion,
    params: OffchainAttestationParams,
) -> SignedOffchainAttestation:
    """Sign *params* with *account* and return the SDK-compatible record."""
    primary_type, fields = ATTESTATION_TYPES[version]
    salt = params.salt
    if version >= OffchainAttestationVersion.V2 and salt is None:
        salt = Web3.to_hex(os.urandom(32))

    message = OffchainMessage(
        version=int(version) if version >= OffchainAttestationVersion.V1 else None,
        schema=params.schema,
        recipient=Web3.to_checksum_address(params.recipient),
        time=params.time,
        expiration_time=params.expiration_time,
        revocable=params.revocable,
        refUID=params.ref_uid,
        data=Web3.to_hex(params.data),
        salt=salt if version >= OffchainAttestationVersion.V2 else None,
    )
    uid = get_offchain_uid(
        version,
        message.schema_uid,
        message.recipient,
        message.time,
        message.expiration_time,
        message.revocable,
        message.ref_uid,
        message.data,
        message.salt,
    )
    types = {primary_type: fields}
    signable = encode_typed_data(full_message=build_typed_data(domain, primary_type, types, message))
    signed_message = account.sign_message(signable)

    return SignedOffchainAttestation(
        version=int(version),
        uid=uid,
        domain=domain,
        primary_type=primary_type,
        types=types,
        message=message,
        signature=Signature(
            v=signed_message.v,
            r="0x" + signed_message.r.to_bytes(32, "big").hex(),
            s="0x" + signed_message.s.to_bytes(32, "big").hex(),
        ),
    )


def recompute_uid(signed: SignedOffchainAttestation) -> str:
    m = signed.message
    return get_offchain_uid(
        OffchainAttestationVersion(signed.version),
        m.schema_uid,
        m.recipient,
        m.time,
        m.expiration_time,
        m.revocable,
        m.ref_uid,
        m.data,
        m.salt,
    )


def recover_signer(signed: SignedOffchainAttestation) -> str:
    """Recover the address that produced ``signed.signature``."""
    sig = signed.signature
    return Account.recover_message(_signable(signed), vrs=(sig.v, int(sig.r, 16), int(sig.s, 16)))
