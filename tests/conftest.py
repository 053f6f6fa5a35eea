"""Shared fixtures for the eas-kit test suite."""

import pytest
from eth_account import Account

from eas_kit.config import NetworkConfig
from eas_kit.eas.offchain import OffchainAttestationParams, OffchainAttestationVersion, sign_offchain_attestation
from eas_kit.storage.models import EIP712Domain

EAS_SEPOLIA = "0xC2679fBD37d54388Ce493F1DB75320D236e1815e"
SCHEMA_UID = "0xb16fa048b0d597f5a821747eba64efa4762ee5143e9a80600d0005386edfc995"
RECIPIENT = "0xFD50b031E778fAb33DfD2Fc3Ca66a1EeF0652165"


@pytest.fixture
def account():
    return Account.from_key("0x" + "11" * 32)


@pytest.fixture
def other_account():
    return Account.from_key("0x" + "22" * 32)


@pytest.fixture
def network():
    return NetworkConfig()


@pytest.fixture
def domain():
    return EIP712Domain(name="EAS Attestation", version="1.3.0", chain_id=11155111, verifying_contract=EAS_SEPOLIA)


@pytest.fixture
def make_signed(account, domain):
    """Factory for signed off-chain attestations with overridable fields."""

    def _make(version=OffchainAttestationVersion.V2, signer=None, **overrides):
        params = dict(
            schema=SCHEMA_UID,
            recipient=RECIPIENT,
            time=1700000000,
            expiration_time=0,
            revocable=True,
            data=bytes.fromhex("00" * 31 + "2a"),
        )
        params.update(overrides)
        return sign_offchain_attestation(signer or account, domain, version, OffchainAttestationParams(**params))

    return _make
