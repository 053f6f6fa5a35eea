"""Tests for EIP-712 off-chain attestation signing and verification."""

import pytest
from web3 import Web3

from eas_kit.config import ZERO_HASH
from eas_kit.eas.attestation import verify_offchain_attestation
from eas_kit.eas.offchain import (
    OffchainAttestationVersion,
    get_offchain_uid,
    recompute_uid,
    recover_signer,
    version_for_contract,
)
from eas_kit.storage.models import SignedOffchainAttestation

from conftest import RECIPIENT, SCHEMA_UID


class TestVersionSelection:

    @pytest.mark.parametrize(
        "contract_version, expected",
        [
            ("0.26", OffchainAttestationVersion.LEGACY),
            ("1.0.1", OffchainAttestationVersion.V1),
            ("1.2.0", OffchainAttestationVersion.V1),
            ("1.3.0", OffchainAttestationVersion.V2),
            ("1.4.0", OffchainAttestationVersion.V2),
        ],
    )
    def test_layout_by_contract_version(self, contract_version, expected):
        assert version_for_contract(contract_version) == expected


class TestSigning:

    def test_v2_signature_recovers_signer(self, make_signed, account):
        signed = make_signed()
        assert signed.primary_type == "Attest"
        assert signed.message.salt is not None
        assert recover_signer(signed) == account.address
        assert recompute_uid(signed) == signed.uid

    def test_v2_salts_differ_between_signatures(self, make_signed):
        assert make_signed().uid != make_signed().uid

    def test_v1_layout(self, make_signed, account):
        signed = make_signed(version=OffchainAttestationVersion.V1)
        assert signed.message.version == 1
        assert signed.message.salt is None
        assert [f["name"] for f in signed.types["Attest"]][0] == "version"
        assert recover_signer(signed) == account.address

    def test_legacy_layout(self, make_signed, account):
        signed = make_signed(version=OffchainAttestationVersion.LEGACY)
        assert signed.primary_type == "Attestation"
        assert signed.message.version is None
        assert "version" not in [f["name"] for f in signed.types["Attestation"]]
        assert recover_signer(signed) == account.address
        assert recompute_uid(signed) == signed.uid

    def test_default_ref_uid_is_zero_hash(self, make_signed):
        assert make_signed().message.ref_uid == ZERO_HASH

    def test_record_uses_sdk_keys(self, make_signed):
        signed = make_signed()
        record = signed.to_record()
        assert set(record) == {"version", "uid", "domain", "primaryType", "types", "message", "signature"}
        assert record["message"]["schema"] == SCHEMA_UID
        assert "refUID" in record["message"]
        assert record["domain"]["chainId"] == 11155111
        assert SignedOffchainAttestation.model_validate(record) == signed


class TestUid:

    @staticmethod
    def packed_uid(version, schema, recipient, time, expiration, revocable, ref_uid, data, salt=None):
        """Hash the byte layout the EAS SDK feeds to solidityPackedKeccak256."""
        packed = b"" if version is OffchainAttestationVersion.LEGACY else int(version).to_bytes(2, "big")
        packed += schema.encode("utf-8")
        packed += bytes.fromhex(recipient[2:]) + bytes(20)
        packed += time.to_bytes(8, "big") + expiration.to_bytes(8, "big")
        packed += bytes([int(revocable)])
        packed += bytes.fromhex(ref_uid[2:]) + data
        if salt is not None:
            packed += bytes.fromhex(salt[2:])
        packed += bytes(4)
        return Web3.to_hex(Web3.keccak(packed))

    @pytest.mark.parametrize("version, salt", [
        (OffchainAttestationVersion.LEGACY, None),
        (OffchainAttestationVersion.V1, None),
        (OffchainAttestationVersion.V2, "0x" + "5a" * 32),
    ])
    def test_matches_sdk_packing(self, version, salt):
        data = bytes.fromhex("00" * 31 + "2a")
        ref_uid = "0x" + "0f" * 32
        uid = get_offchain_uid(version, SCHEMA_UID, RECIPIENT, 1700000000, 1800000000, False, ref_uid, data, salt=salt)
        assert uid == self.packed_uid(version, SCHEMA_UID, RECIPIENT, 1700000000, 1800000000, False, ref_uid, data, salt)

    def test_salt_required_for_v2(self):
        with pytest.raises(ValueError):
            get_offchain_uid(
                OffchainAttestationVersion.V2, SCHEMA_UID, RECIPIENT, 1, 0, True, ZERO_HASH, b"", salt=None
            )

    def test_uid_depends_on_version(self):
        args = (SCHEMA_UID, RECIPIENT, 1700000000, 0, True, ZERO_HASH, "0x")
        assert get_offchain_uid(OffchainAttestationVersion.LEGACY, *args) != get_offchain_uid(
            OffchainAttestationVersion.V1, *args
        )


class TestVerification:

    def test_valid(self, make_signed, account):
        valid, signer = verify_offchain_attestation(make_signed(), expected_attester=account.address.lower())
        assert valid
        assert signer == account.address

    def test_wrong_expected_attester(self, make_signed, other_account):
        valid, signer = verify_offchain_attestation(make_signed(), expected_attester=other_account.address)
        assert not valid
        assert signer != other_account.address

    def test_tampered_message(self, make_signed):
        signed = make_signed()
        tampered = signed.model_copy(update={"message": signed.message.model_copy(update={"time": 1})})
        valid, _ = verify_offchain_attestation(tampered)
        assert not valid

    def test_tampered_message_with_recomputed_uid_changes_signer(self, make_signed, account):
        signed = make_signed()
        message = signed.message.model_copy(update={"time": 1})
        tampered = signed.model_copy(update={"message": message})
        tampered = tampered.model_copy(update={"uid": recompute_uid(tampered)})
        valid, signer = verify_offchain_attestation(tampered, expected_attester=account.address)
        assert not valid
        assert signer != account.address
