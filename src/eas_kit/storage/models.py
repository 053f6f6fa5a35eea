"""Pydantic models for signed off-chain attestations as stored on disk.

The JSON layout (camelCase keys) matches the EAS SDK's
``SignedOffchainAttestation`` so files can be shared with other EAS tools.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EIP712Domain(_CamelModel):
    name: str
    version: str
    chain_id: int
    verifying_contract: str


class OffchainMessage(_CamelModel):
    """The signed attestation payload. ``version`` is absent for legacy layouts."""

    version: Optional[int] = None
    schema_uid: str = Field(alias="schema")
    recipient: str
    time: int
    expiration_time: int
    revocable: bool
    ref_uid: str = Field(alias="refUID")
    data: str
    salt: Optional[str] = None


class Signature(BaseModel):
    v: int
    r: str
    s: str


class SignedOffchainAttestation(_CamelModel):
    version: int
    uid: str
    domain: EIP712Domain
    primary_type: str
    types: dict[str, list[dict[str, str]]]
    message: OffchainMessage
    signature: Signature

    def to_record(self) -> dict[str, Any]:
        """Serialize to the on-disk JSON form."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class OffchainAttestationQuery(BaseModel):
    """Filter for stored attestations. Empty fields do not filter."""

    uid: Optional[str] = None
    schema_uid: Optional[str] = None
    recipient: Optional[str] = None
    attester: Optional[str] = None
    ref_uid: Optional[str] = None

    def is_empty(self) -> bool:
        return not any((self.uid, self.schema_uid, self.recipient, self.attester, self.ref_uid))
