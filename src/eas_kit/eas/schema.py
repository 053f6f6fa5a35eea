"""Schema registration and lookup on the EAS SchemaRegistry."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import ContractLogicError, Web3Exception
from web3.logs import DISCARD

from eas_kit.chain.provider import send_transaction
from eas_kit.config import ZERO_ADDRESS, ZERO_HASH, NetworkConfig
from eas_kit.eas.abi import schema_registry_contract
from eas_kit.errors import TransactionError
from eas_kit.helpers import console

logger = logging.getLogger("eas_kit.eas.schema")


@dataclass
class SchemaRegistrationData:
    schema: str
    resolver_address: str = ZERO_ADDRESS
    revocable: bool = True


@dataclass
class SchemaRecord:
    uid: str
    schema: str
    resolver: str
    revocable: bool


def compute_schema_uid(schema: str, resolver: Optional[str] = None, revocable: bool = True) -> str:
    """The registry's UID for a schema: keccak of the packed (schema, resolver, revocable)."""
    resolver = Web3.to_checksum_address(resolver or ZERO_ADDRESS)
    return Web3.to_hex(Web3.solidity_keccak(["string", "address", "bool"], [schema, resolver, revocable]))


def _record_from_tuple(raw: tuple) -> SchemaRecord:
    uid, resolver, revocable, schema = raw
    return SchemaRecord(uid=Web3.to_hex(uid), schema=schema, resolver=resolver, revocable=revocable)


def _is_empty(record: SchemaRecord) -> bool:
    return record.uid == ZERO_HASH or record.schema == ""


def fetch_schema(w3: Web3, network: NetworkConfig, uid: str) -> Optional[SchemaRecord]:
    """Fetch a schema record by UID; ``None`` when it is not registered."""
    logger.info("Fetching schema with UID: %s", uid)
    registry = schema_registry_contract(w3, network)
    record = _record_from_tuple(registry.functions.getSchema(uid).call())
    if _is_empty(record):
        logger.warning("Schema with UID %s not found.", uid)
        return None
    logger.debug("Schema found: %s", record)
    return record


def check_existing_schema(
    w3: Web3,
    network: NetworkConfig,
    schema: str,
    resolver: Optional[str] = None,
    revocable: bool = True,
) -> Optional[str]:
    """Return the UID if this exact schema is already registered, else ``None``."""
    potential_uid = compute_schema_uid(schema, resolver, revocable)
    logger.info("Checking for existing schema with potential UID: %s", potential_uid)
    try:
        record = fetch_schema(w3, network, potential_uid)
    except (ContractLogicError, Web3Exception, ValueError) as exc:
        logger.error("Unexpected error checking existing schema: %s", exc)
        return None
    if record is None:
        logger.info("Schema not registered yet.")
        return None
    console.print(f"Schema already exists with UID: [cyan]{record.uid}[/cyan]")
    console.print(f"View schema at: {network.schema_url(record.uid)}")
    return record.uid


def register_schema(
    w3: Web3,
    account: LocalAccount,
    network: NetworkConfig,
    data: SchemaRegistrationData,
) -> str:
    """Register *data* on the SchemaRegistry and return its UID.

    Returns the existing UID without sending a transaction when the schema
    is already registered.
    """
    resolver = data.resolver_address or ZERO_ADDRESS
    existing = check_existing_schema(w3, network, data.schema, resolver, data.revocable)
    if existing:
        return existing

    console.print(f'\nAttempting to register schema: "{data.schema}"...')
    console.print(f"Resolver: {resolver}")
    console.print(f"Revocable: {data.revocable}")

    registry = schema_registry_contract(w3, network)
    fn = registry.functions.register(data.schema, Web3.to_checksum_address(resolver), data.revocable)
    receipt = send_transaction(w3, account, fn)
    tx_hash = Web3.to_hex(receipt["transactionHash"])
    if receipt["status"] == 0:
        raise TransactionError(f"Schema registration transaction failed on-chain (status 0). Hash: {tx_hash}")

    events = registry.events.Registered().process_receipt(receipt, errors=DISCARD)
    if events:
        uid = Web3.to_hex(events[0]["args"]["uid"])
    else:
        uid = compute_schema_uid(data.schema, resolver, data.revocable)
        logger.warning("No Registered event in receipt %s; using computed UID.", tx_hash)

    console.print("[green]Schema registered successfully![/green]")
    console.print(f"New Schema UID: [cyan]{uid}[/cyan]")
    console.print(f"View schema at: {network.schema_url(uid)}")
    return uid


def ensure_schema_registered(
    w3: Web3,
    account: LocalAccount,
    network: NetworkConfig,
    schema: str,
    schema_uid: Optional[str] = None,
    resolver: Optional[str] = None,
    revocable: bool = True,
) -> str:
    """Return a UID for *schema*, registering it only when needed.

    A configured *schema_uid* is used when its record exists and its schema
    string matches; otherwise the computed UID is checked, then registered.
    """
    if schema_uid:
        logger.info("Schema UID provided: %s. Verifying existence...", schema_uid)
        record = fetch_schema(w3, network, schema_uid)
        if record and record.schema == schema:
            logger.info("Schema found and matches configuration.")
            return schema_uid
        logger.warning("Provided schema UID not found or schema string mismatch. Attempting to register new schema.")

    return register_schema(
        w3,
        account,
        network,
        SchemaRegistrationData(schema=schema, resolver_address=resolver or ZERO_ADDRESS, revocable=revocable),
    )


def display_schema_details(record: SchemaRecord) -> None:
    console.print("\n[bold]--- Schema Record ---[/bold]")
    console.print(f"UID: {record.uid}")
    console.print(f"Resolver: {record.resolver}")
    console.print(f"Revocable: {record.revocable}")
    console.print(f"Schema Definition: {record.schema}")
    console.print("\n[bold]--- Schema Fields ---[/bold]")

    fields = [field.strip() for field in record.schema.split(",")]
    if fields == [""]:
        console.print("(No fields defined in schema string)")
    else:
        for index, field in enumerate(fields, start=1):
            field_type, _, name = field.partition(" ")
            console.print(f"  Field {index}: Name='{name.strip()}', Type='{field_type}'")
    console.print("---------------------")
