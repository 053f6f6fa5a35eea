"""Shared steps for the workflows: schema check, encode, attest."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from eth_account.signers.local import LocalAccount
from web3 import Web3

from eas_kit.config import ExampleEntry, NetworkConfig
from eas_kit.eas.attestation import OnChainAttestationData, create_onchain_attestation, get_attestation
from eas_kit.eas.schema import ensure_schema_registered
from eas_kit.errors import ConfigError, ValidationError
from eas_kit.helpers import prepare_schema_item, validate_attestation_data

logger = logging.getLogger("eas_kit.workflows")


@dataclass
class WorkflowResult:
    """Schema and attestation UIDs produced by one workflow step."""

    schema_uid: str
    attestation_uid: str
    data: dict[str, Any]


def require_schema_string(entry: ExampleEntry, name: str) -> str:
    if not entry.schema_string:
        raise ConfigError(f"'{name}' configuration needs a schemaString.")
    return entry.schema_string


def attest_entry(
    w3: Web3,
    account: LocalAccount,
    network: NetworkConfig,
    entry: ExampleEntry,
    data: dict[str, Any],
    name: str,
    recipient: Optional[str] = None,
    ref_uid: Optional[str] = None,
) -> WorkflowResult:
    """Make sure the entry's schema exists, then attest *data* against it.

    *recipient* and *ref_uid* override the values configured on the entry.
    """
    schema_string = require_schema_string(entry, name)
    schema_uid = ensure_schema_registered(
        w3,
        account,
        network,
        schema_string,
        schema_uid=entry.schema_uid,
        resolver=entry.resolver_address,
        revocable=entry.revocable,
    )
    logger.info("[%s] using schema %s", name, schema_uid)

    if not validate_attestation_data(schema_string, data):
        raise ValidationError(f"Data for '{name}' does not match schema: {schema_string}")

    attestation = OnChainAttestationData.from_entry(
        entry, schema_uid, schema_string, prepare_schema_item(schema_string, data)
    )
    if recipient is not None:
        attestation.recipient = recipient
    if ref_uid is not None:
        attestation.ref_uid = ref_uid

    uid = create_onchain_attestation(w3, account, network, attestation)
    return WorkflowResult(schema_uid=schema_uid, attestation_uid=uid, data=data)


def confirm_attestation(w3: Web3, network: NetworkConfig, uid: str) -> bool:
    """Read a freshly created attestation back from the contract."""
    if get_attestation(w3, network, uid) is None:
        logger.warning("Could not fetch the newly created attestation %s immediately.", uid)
        return False
    logger.info("Fetched and verified attestation %s.", uid)
    return True
