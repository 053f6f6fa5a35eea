"""On-chain and off-chain attestations against the EAS contract."""

from __future__ import annotations

import logging
import time as _time
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import ContractLogicError
from web3.logs import DISCARD
from web3.types import TxReceipt

from eas_kit.chain.provider import send_transaction
from eas_kit.config import ZERO_ADDRESS, ZERO_HASH, ExampleEntry, NetworkConfig
from eas_kit.eas.abi import eas_contract
from eas_kit.eas.encoder import SchemaDecodedItem, SchemaEncoder, SchemaItem
from eas_kit.eas.gas import estimate_gas_cost, report_actual_gas_cost
from eas_kit.eas.offchain import (
    DOMAIN_NAME,
    OffchainAttestationParams,
    recompute_uid,
    recover_signer,
    sign_offchain_attestation,
    version_for_contract,
)
from eas_kit.errors import TransactionError
from eas_kit.helpers import console, print_json
from eas_kit.storage.models import EIP712Domain, SignedOffchainAttestation

logger = logging.getLogger("eas_kit.eas.attestation")


@dataclass
class OnChainAttestationData:
    schema_uid: str
    schema_string: str
    data_to_encode: list[SchemaItem] = field(default_factory=list)
    recipient: str = ZERO_ADDRESS
    expiration_time: int = 0
    revocable: bool = True
    ref_uid: Optional[str] = None
    value: int = 0

    @classmethod
    def from_entry(
        cls,
        entry: ExampleEntry,
        schema_uid: str,
        schema_string: str,
        items: list[SchemaItem],
    ) -> OnChainAttestationData:
        """Take recipient, expiry, revocability and reference from a config entry."""
        return cls(
            schema_uid=schema_uid,
            schema_string=schema_string,
            data_to_encode=items,
            recipient=entry.recipient,
            expiration_time=entry.expiration_time,
            revocable=entry.revocable,
            ref_uid=entry.reference_uid,
        )


@dataclass
class OffChainAttestationData:
    schema_uid: str
    schema_string: str
    data_to_encode: list[SchemaItem] = field(default_factory=list)
    recipient: str = ZERO_ADDRESS
    expiration_time: int = 0
    revocable: bool = True
    ref_uid: Optional[str] = None
    time: Optional[int] = None  # Defaults to now


@dataclass
class RevocationData:
    schema_uid: str
    uid: str


@dataclass
class Attestation:
    uid: str
    schema: str
    ref_uid: str
    time: int
    expiration_time: int
    revocation_time: int
    recipient: str
    attester: str
    revocable: bool
    data: str

    def to_dict(self) -> dict:
        return {
            "uid": self.uid,
            "schema": self.schema,
            "refUID": self.ref_uid,
            "time": self.time,
            "expirationTime": self.expiration_time,
            "revocationTime": self.revocation_time,
            "recipient": self.recipient,
            "revocable": self.revocable,
            "attester": self.attester,
            "data": self.data,
        }


def _check_status(receipt: TxReceipt, action: str) -> str:
    tx_hash = Web3.to_hex(receipt["transactionHash"])
    if receipt["status"] == 0:
        logger.error("Transaction failed on-chain. Receipt: %s", dict(receipt))
        raise TransactionError(f"{action} transaction {tx_hash} reverted by the EVM.")
    return tx_hash


def create_onchain_attestation(
    w3: Web3,
    account: LocalAccount,
    network: NetworkConfig,
    data: OnChainAttestationData,
    estimate_gas: bool = True,
) -> str:
    """Encode, submit and confirm an attestation; return its UID.

    Raises
    ------
    GasEstimationError
        If *estimate_gas* is set and the estimate fails.
    TransactionError
        If the transaction reverts or no ``Attested`` event is found.
    """
    console.print(f"\nPreparing on-chain attestation with schema: [cyan]{data.schema_uid}[/cyan]")
    console.print(f"Recipient: {data.recipient}")

    encoded = SchemaEncoder(data.schema_string).encode_data(data.data_to_encode)
    logger.debug("Encoded schema data: %s", Web3.to_hex(encoded))

    request = (
        data.schema_uid,
        (
            Web3.to_checksum_address(data.recipient),
            data.expiration_time,
            data.revocable,
            data.ref_uid or ZERO_HASH,
            encoded,
            data.value,
        ),
    )
    eas = eas_contract(w3, network)

    if estimate_gas:
        estimate_gas_cost(
            w3,
            {
                "from": account.address,
                "to": eas.address,
                "data": eas.encode_abi("attest", args=[request]),
                "value": data.value,
            },
        )

    console.print("\nSubmitting attestation transaction...")
    receipt = send_transaction(w3, account, eas.functions.attest(request), value=data.value)
    tx_hash = _check_status(receipt, "Attestation")
    console.print("\n[green]Transaction submitted and confirmed![/green]")
    report_actual_gas_cost(receipt)

    events = eas.events.Attested().process_receipt(receipt, errors=DISCARD)
    uid = Web3.to_hex(events[0]["args"]["uid"]) if events else ""
    if not uid or uid == ZERO_HASH:
        logger.warning("Transaction Hash: %s", tx_hash)
        raise TransactionError("Failed to extract attestation UID from transaction logs.")

    console.print(f"Attestation UID: [cyan]{uid}[/cyan]")
    console.print(f"\nView your attestation at: {network.attestation_url(uid)}")
    return uid


def get_offchain_domain(w3: Web3, network: NetworkConfig) -> EIP712Domain:
    """Build the EIP-712 domain from the contract's ``version()`` and chain id."""
    eas = eas_contract(w3, network)
    return EIP712Domain(
        name=DOMAIN_NAME,
        version=eas.functions.version().call(),
        chain_id=w3.eth.chain_id,
        verifying_contract=eas.address,
    )


def create_offchain_attestation(
    w3: Web3,
    account: LocalAccount,
    network: NetworkConfig,
    data: OffChainAttestationData,
) -> SignedOffchainAttestation:
    """Encode and EIP-712 sign an attestation without sending a transaction."""
    console.print(f"Creating off-chain attestation with schema: [cyan]{data.schema_uid}[/cyan]")
    console.print(f"Recipient: {data.recipient}")

    encoded = SchemaEncoder(data.schema_string).encode_data(data.data_to_encode)
    logger.debug("Encoded schema data for off-chain: %s", Web3.to_hex(encoded))

    domain = get_offchain_domain(w3, network)
    version = version_for_contract(domain.version)
    logger.info("EAS contract version %s, off-chain layout %s", domain.version, version.name)

    params = OffchainAttestationParams(
        schema=data.schema_uid,
        recipient=data.recipient,
        time=data.time if data.time is not None else int(_time.time()),
        expiration_time=data.expiration_time,
        revocable=data.revocable,
        ref_uid=data.ref_uid or ZERO_HASH,
        data=encoded,
    )
    signed = sign_offchain_attestation(account, domain, version, params)

    console.print("\n[green]Off-chain attestation signed successfully![/green]")
    print_json(signed)
    return signed


def verify_offchain_attestation(
    signed: SignedOffchainAttestation,
    expected_attester: Optional[str] = None,
) -> tuple[bool, str]:
    """Check the UID and signature; return ``(valid, recovered_signer)``."""
    computed_uid = recompute_uid(signed)
    if computed_uid.lower() != signed.uid.lower():
        logger.warning("UID mismatch: stored %s, computed %s", signed.uid, computed_uid)
        return False, ""
    signer = recover_signer(signed)
    if expected_attester and signer.lower() != expected_attester.lower():
        logger.warning("Signer %s does not match expected attester %s", signer, expected_attester)
        return False, signer
    return True, signer


def get_attestation(w3: Web3, network: NetworkConfig, uid: str) -> Optional[Attestation]:
    """Fetch an attestation by UID; ``None`` when it does not exist."""
    console.print(f"\nFetching attestation with UID: [cyan]{uid}[/cyan]...")
    eas = eas_contract(w3, network)
    try:
        raw = eas.functions.getAttestation(uid).call()
    except ContractLogicError as exc:
        if "invalid" in str(exc).lower():
            logger.warning("Attestation with UID %s not found or invalid.", uid)
            return None
        raise

    (att_uid, schema, created, expiration, revocation, ref_uid, recipient, attester, revocable, payload) = raw
    if Web3.to_hex(att_uid) == ZERO_HASH:
        console.print("Attestation not found.")
        return None

    attestation = Attestation(
        uid=Web3.to_hex(att_uid),
        schema=Web3.to_hex(schema),
        ref_uid=Web3.to_hex(ref_uid),
        time=created,
        expiration_time=expiration,
        revocation_time=revocation,
        recipient=recipient,
        attester=attester,
        revocable=revocable,
        data=Web3.to_hex(payload),
    )
    console.print("\nAttestation found:")
    print_json(attestation.to_dict())
    return attestation


def revoke_onchain_attestation(
    w3: Web3,
    account: LocalAccount,
    network: NetworkConfig,
    data: RevocationData,
) -> str:
    """Revoke an attestation; return the transaction hash."""
    console.print(
        f"\nAttempting to revoke attestation with UID: [cyan]{data.uid}[/cyan] using schema: {data.schema_uid}..."
    )
    eas = eas_contract(w3, network)
    receipt = send_transaction(w3, account, eas.functions.revoke((data.schema_uid, (data.uid, 0))))
    tx_hash = _check_status(receipt, "Revocation")
    console.print("[green]Attestation revoked successfully![/green]")
    return tx_hash


def timestamp_offchain_attestation(
    w3: Web3,
    account: LocalAccount,
    network: NetworkConfig,
    uid: str,
) -> str:
    """Anchor an off-chain attestation UID on-chain; return the transaction hash."""
    console.print(f"Timestamping off-chain attestation UID: [cyan]{uid}[/cyan]")
    eas = eas_contract(w3, network)
    receipt = send_transaction(w3, account, eas.functions.timestamp(uid))
    tx_hash = _check_status(receipt, "Timestamping")

    events = eas.events.Timestamped().process_receipt(receipt, errors=DISCARD)
    if events:
        logger.info("Timestamped at %s", events[0]["args"]["timestamp"])
    console.print(f"[green]Transaction successful![/green] Hash: {tx_hash}")
    return tx_hash


def get_timestamp(w3: Web3, network: NetworkConfig, uid: str) -> int:
    """Return when *uid* was timestamped on-chain, or 0 if it never was."""
    return eas_contract(w3, network).functions.getTimestamp(uid).call()


# ------------------------------------------------------------------
# Monitoring
# ------------------------------------------------------------------


@dataclass
class MonitoredAttestation:
    block_number: int
    attestation: Attestation
    decoded: list[SchemaDecodedItem] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "blockNumber": self.block_number,
            **self.attestation.to_dict(),
            "decodedData": {item.name: item.value for item in self.decoded},
        }


def find_attested_events(
    w3: Web3,
    network: NetworkConfig,
    schema_uid: str,
    from_block: int,
    to_block: Union[int, str] = "latest",
) -> list:
    """``Attested`` logs for *schema_uid* in the inclusive block range."""
    eas = eas_contract(w3, network)
    logs = eas.events.Attested().get_logs(
        argument_filters={"schemaUID": schema_uid},
        from_block=from_block,
        to_block=to_block,
    )
    logger.debug("Blocks %s..%s: %d Attested event(s) for %s", from_block, to_block, len(logs), schema_uid)
    return list(logs)


def monitor_attestations(
    w3: Web3,
    network: NetworkConfig,
    schema_uid: str,
    schema_string: str,
    from_block: Optional[int] = None,
    to_block: Optional[int] = None,
    polls: int = 1,
    interval: float = 12.0,
    sleep: Callable[[float], None] = _time.sleep,
) -> list[MonitoredAttestation]:
    """Watch for new attestations of one schema and decode their data.

    With *to_block* the range ``from_block..to_block`` is scanned once.
    Otherwise the chain head is polled *polls* times, *interval* seconds
    apart, each poll scanning the blocks produced since the previous one.
    Scanning starts at the current head when *from_block* is not given.
    """
    if polls < 1:
        raise ValueError("polls must be at least 1")
    encoder = SchemaEncoder(schema_string)
    start = w3.eth.block_number if from_block is None else from_block
    found: list[MonitoredAttestation] = []

    for poll in range(polls):
        if poll:
            sleep(interval)
        head = w3.eth.block_number if to_block is None else to_block
        if head < start:
            logger.debug("No new blocks since %s", start - 1)
            continue

        console.print(f"Scanning blocks {start}..{head} for schema [cyan]{schema_uid}[/cyan]...")
        for log in find_attested_events(w3, network, schema_uid, start, head):
            uid = Web3.to_hex(log["args"]["uid"])
            attestation = get_attestation(w3, network, uid)
            if attestation is None:
                continue
            decoded = encoder.decode_data(attestation.data)
            console.print("Decoded data:")
            print_json({item.name: item.value for item in decoded})
            found.append(MonitoredAttestation(log["blockNumber"], attestation, decoded))

        start = head + 1
        if to_block is not None:
            break

    logger.info("Found %d attestation(s) for schema %s", len(found), schema_uid)
    return found
