"""CLI for eas-kit - Ethereum Attestation Service examples from the terminal."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

import typer
from eth_account.signers.local import LocalAccount
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from web3 import Web3

from eas_kit import __version__
from eas_kit.chain.chains import CHAINS, network_for_chain
from eas_kit.chain.keystore import create_keystore, load_address, unlock_account
from eas_kit.chain.provider import get_provider, get_provider_signer
from eas_kit.config import (
    ZERO_ADDRESS,
    ZERO_HASH,
    ExampleEntry,
    KitConfig,
    NetworkConfig,
    get_batch,
    load_credentials,
    get_entry,
    load_config,
    require_fields,
    require_uid,
)
from eas_kit.eas.attestation import (
    OffChainAttestationData,
    OnChainAttestationData,
    RevocationData,
    create_offchain_attestation,
    create_onchain_attestation,
    get_attestation,
    get_timestamp,
    monitor_attestations,
    revoke_onchain_attestation,
    timestamp_offchain_attestation,
    verify_offchain_attestation,
)
from eas_kit.eas.gas_comparison import run_gas_comparison
from eas_kit.eas.graphql import EASGraphQLClient, render_attestations, render_schemas
from eas_kit.eas.private_data import generate_private_data_proof, prepare_private_data_object
from eas_kit.eas.schema import SchemaRegistrationData, display_schema_details, fetch_schema, register_schema
from eas_kit.errors import ConfigError, KitError, SchemaError, ValidationError
from eas_kit.helpers import console, prepare_schema_item, print_json, validate_attestation_data
from eas_kit.storage.models import OffchainAttestationQuery, SignedOffchainAttestation
from eas_kit.storage.offchain_store import OffchainAttestationStore
from eas_kit.workflows.event_checkin import CHAINED_SECTION_NAME, run_event_checkin, run_event_checkin_chained
from eas_kit.workflows.geocaching import run_geocaching
from eas_kit.workflows.impact_monitoring import run_impact_monitoring
from eas_kit.workflows.proofmode import run_proofmode
from eas_kit.workflows.qr import run_qr

logger = logging.getLogger("eas_kit.cli")

app = typer.Typer(
    name="eas-kit",
    help="Register schemas and create, fetch, revoke and store Ethereum attestations.",
    no_args_is_help=True,
)

_state: dict[str, Any] = {"config": None, "store": None, "keystore": None, "chain": None}

LIST_LIMIT = 5


def _version_callback(value: bool):
    if value:
        console.print(f"eas-kit {__version__}")
        raise typer.Exit()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=verbose)],
        force=True,
    )
    # web3 and urllib3 are noisy at DEBUG
    for name in ("web3", "urllib3", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


@app.callback()
def main(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Examples YAML file (default: $EAS_KIT_CONFIG, ./config/examples.yaml, then the packaged preset)",
    ),
    store: Optional[Path] = typer.Option(
        None,
        "--store",
        help="JSON file holding signed off-chain attestations",
        envvar="EAS_KIT_STORE",
    ),
    keystore: Optional[Path] = typer.Option(
        None,
        "--keystore",
        help="Directory with an encrypted keystore.json to sign with instead of PRIVATE_KEY",
    ),
    chain: Optional[str] = typer.Option(
        None,
        "--chain",
        help="Use the EAS deployment of this chain instead of the configured network",
        envvar="EAS_KIT_CHAIN",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Register schemas and create, fetch, revoke and store Ethereum attestations."""
    _setup_logging(verbose)
    _state["config"] = config
    _state["store"] = store
    _state["keystore"] = keystore
    _state["chain"] = chain


# ------------------------------------------------------------------
# Shared helpers
# ------------------------------------------------------------------


@contextmanager
def _command(name: str) -> Iterator[None]:
    """Report failures of command *name* and exit with status 1."""
    try:
        yield
    except (typer.Exit, typer.Abort):
        raise
    except KitError as e:
        logger.debug("%s failed", name, exc_info=True)
        console.print(f"[red]Error running {name}: {e}[/red]")
        raise typer.Exit(1)
    except Exception as e:
        logger.exception("Unexpected error in %s", name)
        console.print(f"[red]Error running {name}: {e}[/red]")
        raise typer.Exit(1)


def _config() -> KitConfig:
    config = load_config(_state["config"])
    if _state["chain"]:
        try:
            network = network_for_chain(_state["chain"])
        except KeyError as e:
            raise ConfigError(str(e.args[0])) from e
        logger.info("Using %s EAS deployment at %s", network.chain, network.eas_address)
        config = config.model_copy(update={"network": network})
    return config


def _store() -> OffchainAttestationStore:
    return OffchainAttestationStore(_state["store"])


def _signer(network: NetworkConfig) -> tuple[Web3, LocalAccount]:
    keystore_dir = _state["keystore"]
    if keystore_dir is None:
        return get_provider_signer(network)
    password = console.input("[bold]Keystore password: [/bold]", password=True)
    return get_provider_signer(network, account=unlock_account(keystore_dir, password))


def _entry(config: KitConfig, name: str) -> ExampleEntry:
    entry = get_entry(config, name)
    logger.info("Using configuration for '%s'", name)
    logger.debug("%s", entry.model_dump(by_alias=True, exclude_none=True))
    return entry


def _onchain_schema(w3: Web3, network: NetworkConfig, entry: ExampleEntry, label: str = "schemaUid") -> tuple[str, str]:
    """Fetch the entry's schema record; return ``(uid, schema_string)``.

    The on-chain schema string wins when the configured one differs.
    """
    schema_uid = require_uid(entry.schema_uid, label)
    console.print(f"\nFetching schema record for UID: [cyan]{schema_uid}[/cyan] to verify schema string...")
    record = fetch_schema(w3, network, schema_uid)
    if record is None:
        raise SchemaError(f"Schema {schema_uid} not found on-chain.")
    if entry.schema_string and entry.schema_string != record.schema:
        logger.warning(
            'Schema string in config ("%s") does not match on-chain record ("%s"). Using on-chain schema.',
            entry.schema_string,
            record.schema,
        )
    return schema_uid, record.schema


def _validated_items(schema_string: str, fields: dict):
    if not validate_attestation_data(schema_string, fields):
        raise ValidationError("Attestation data validation failed. Aborting creation.")
    return prepare_schema_item(schema_string, fields)


def _sign_offchain(w3: Web3, account: LocalAccount, network: NetworkConfig, entry: ExampleEntry) -> SignedOffchainAttestation:
    fields = require_fields(entry)
    schema_uid, schema_string = _onchain_schema(w3, network, entry)
    data = OffChainAttestationData(
        schema_uid=schema_uid,
        schema_string=schema_string,
        data_to_encode=_validated_items(schema_string, fields),
        recipient=entry.recipient,
        expiration_time=entry.expiration_time,
        revocable=entry.revocable,
        ref_uid=entry.reference_uid,
    )
    return create_offchain_attestation(w3, account, network, data)


def _nonzero(value: Optional[str]) -> Optional[str]:
    if not value or value in (ZERO_ADDRESS, ZERO_HASH):
        return None
    return value


# ------------------------------------------------------------------
# Schemas
# ------------------------------------------------------------------


@app.command("register-schema")
def register_schema_cmd():
    """Register the configured schema string (no-op if it already exists)."""
    with _command("register-schema"):
        config = _config()
        entry = _entry(config, "register-schema")
        if not entry.schema_string:
            raise ValidationError("Invalid or missing 'schemaString'")
        w3, account = _signer(config.network)
        uid = register_schema(
            w3,
            account,
            config.network,
            SchemaRegistrationData(
                schema=entry.schema_string,
                resolver_address=entry.resolver_address,
                revocable=entry.revocable,
            ),
        )
        console.print(Panel(
            f"Schema UID: [cyan]{uid}[/cyan]\n"
            f"[dim]{config.network.schema_url(uid)}[/dim]",
            title="Schema",
        ))


@app.command("fetch-schema")
def fetch_schema_cmd():
    """Fetch a schema record by UID and list its fields."""
    with _command("fetch-schema"):
        config = _config()
        entry = _entry(config, "fetch-schema")
        schema_uid = require_uid(entry.schema_uid, "schemaUid")
        record = fetch_schema(get_provider(config.network), config.network, schema_uid)
        if record is None:
            console.print(f"[yellow]Schema {schema_uid} not found.[/yellow]")
            return
        display_schema_details(record)


# ------------------------------------------------------------------
# Attestations
# ------------------------------------------------------------------


@app.command("attest-onchain")
def attest_onchain_cmd(
    no_estimate: bool = typer.Option(False, "--no-estimate", help="Skip the gas estimate before sending"),
):
    """Create an on-chain attestation from the configured fields."""
    with _command("attest-onchain"):
        config = _config()
        entry = _entry(config, "attest-onchain")
        fields = require_fields(entry)
        w3, account = _signer(config.network)
        schema_uid, schema_string = _onchain_schema(w3, config.network, entry)
        console.print("\nValidating attestation data against schema...")
        items = _validated_items(schema_string, fields)
        uid = create_onchain_attestation(
            w3,
            account,
            config.network,
            OnChainAttestationData.from_entry(entry, schema_uid, schema_string, items),
            estimate_gas=not no_estimate,
        )
        console.print(f"\n[green]Attestation created.[/green] UID: [cyan]{uid}[/cyan]")


@app.command("attest-offchain")
def attest_offchain_cmd(
    save: bool = typer.Option(False, "--save", help="Also append the signed attestation to the store"),
):
    """Sign an off-chain attestation from the configured fields."""
    with _command("attest-offchain"):
        config = _config()
        entry = _entry(config, "attest-offchain")
        w3, account = _signer(config.network)
        signed = _sign_offchain(w3, account, config.network, entry)
        store = _store()
        if save and store.save(signed):
            console.print(f"Saved to [cyan]{store.path}[/cyan]")


@app.command("get-attestation")
def get_attestation_cmd(
    uid: Optional[str] = typer.Option(None, "--uid", "-u", help="Attestation UID (overrides the config)"),
):
    """Fetch an attestation by UID."""
    with _command("get-attestation"):
        config = _config()
        if uid is None:
            uid = _entry(config, "get-attestation").attestation_uid
        uid = require_uid(uid, "attestationUid")
        attestation = get_attestation(get_provider(config.network), config.network, uid)
        if attestation is None:
            console.print(f"[yellow]Attestation {uid} not found.[/yellow]")


@app.command("monitor")
def monitor_cmd(
    from_block: Optional[int] = typer.Option(None, "--from-block", help="First block to scan (default: chain head)"),
    to_block: Optional[int] = typer.Option(None, "--to-block", help="Scan up to this block once instead of polling"),
    polls: int = typer.Option(1, "--polls", min=1, help="Number of times to poll the chain head"),
    interval: float = typer.Option(12.0, "--interval", min=0.0, help="Seconds between polls"),
):
    """Report new attestations of the configured schema with their decoded data."""
    with _command("monitor"):
        config = _config()
        entry = _entry(config, "monitor")
        w3 = get_provider(config.network)
        schema_uid, schema_string = _onchain_schema(w3, config.network, entry)
        found = monitor_attestations(
            w3,
            config.network,
            schema_uid,
            schema_string,
            from_block=from_block,
            to_block=to_block,
            polls=polls,
            interval=interval,
        )
        if not found:
            console.print("[yellow]No new attestations found.[/yellow]")
            return

        table = Table(title=f"Attestations for {schema_uid}")
        table.add_column("Block", justify="right")
        table.add_column("UID", style="cyan")
        table.add_column("Attester")
        for hit in found:
            table.add_row(str(hit.block_number), hit.attestation.uid, hit.attestation.attester)
        console.print(table)


@app.command("revoke-attestation")
def revoke_attestation_cmd():
    """Revoke the configured attestation."""
    with _command("revoke-attestation"):
        config = _config()
        entry = _entry(config, "revoke-attestation")
        data = RevocationData(
            schema_uid=require_uid(entry.schema_uid, "schemaUid"),
            uid=require_uid(entry.attestation_uid, "attestationUid"),
        )
        w3, account = _signer(config.network)
        tx_hash = revoke_onchain_attestation(w3, account, config.network, data)
        console.print(f"Revocation transaction: [cyan]{tx_hash}[/cyan]")


@app.command("chained-attestation")
def chained_attestation_cmd():
    """Create each attestation of the configured batch in order."""
    with _command("chained-attestation"):
        config = _config()
        batch = get_batch(config, "chained-attestation")
        w3, account = _signer(config.network)
        uids: list[str] = []
        for i, att in enumerate(batch):
            schema_uid, schema_string = _onchain_schema(w3, config.network, att, label=f"attestations[{i}].schemaUid")
            try:
                fields = require_fields(att)
                items = _validated_items(schema_string, fields)
            except ValidationError as e:
                raise ValidationError(f"Attestation #{i}: {e}") from e
            uid = create_onchain_attestation(
                w3,
                account,
                config.network,
                OnChainAttestationData.from_entry(att, schema_uid, schema_string, items),
            )
            console.print(f"Attestation #{i} created. UID: [cyan]{uid}[/cyan]")
            uids.append(uid)

        table = Table(title="Chained Attestations")
        table.add_column("#", justify="right")
        table.add_column("UID", style="cyan")
        table.add_column("Ref UID", style="dim")
        for i, (att, uid) in enumerate(zip(batch, uids)):
            table.add_row(str(i), uid, att.reference_uid)
        console.print(table)


# ------------------------------------------------------------------
# Off-chain storage
# ------------------------------------------------------------------


@app.command("timestamp-offchain")
def timestamp_offchain_cmd():
    """Sign an off-chain attestation and anchor its UID on-chain."""
    with _command("timestamp-offchain"):
        config = _config()
        entry = _entry(config, "timestamp-offchain")
        w3, account = _signer(config.network)
        signed = _sign_offchain(w3, account, config.network, entry)
        tx_hash = timestamp_offchain_attestation(w3, account, config.network, signed.uid)
        anchored_at = get_timestamp(w3, config.network, signed.uid)
        console.print(Panel(
            f"UID: [cyan]{signed.uid}[/cyan]\n"
            f"Tx: [cyan]{tx_hash}[/cyan]\n"
            f"Timestamp: {anchored_at}",
            title="Off-chain Attestation Timestamped",
        ))


@app.command("save-offchain")
def save_offchain_cmd():
    """Sign an off-chain attestation and append it to the local store."""
    with _command("save-offchain"):
        config = _config()
        entry = _entry(config, "save-offchain")
        w3, account = _signer(config.network)
        signed = _sign_offchain(w3, account, config.network, entry)
        store = _store()
        if store.save(signed):
            console.print(f"[green]Saved[/green] {signed.uid} to [cyan]{store.path}[/cyan]")
        else:
            console.print(f"[yellow]Attestation {signed.uid} is already stored.[/yellow]")


@app.command("load-offchain")
def load_offchain_cmd(
    uid: Optional[str] = typer.Option(None, "--uid", help="Only the attestation with this UID"),
    attester: Optional[str] = typer.Option(None, "--attester", help="Only attestations signed by this address"),
):
    """Load stored off-chain attestations, filtered by the configured query."""
    with _command("load-offchain"):
        config = _config()
        entry = _entry(config, "load-offchain")
        query = OffchainAttestationQuery(
            uid=uid or _nonzero(entry.attestation_uid),
            schema_uid=_nonzero(entry.schema_uid),
            recipient=_nonzero(entry.recipient),
            attester=attester,
            ref_uid=_nonzero(entry.reference_uid),
        )
        records = _store().load(query)
        if not records:
            console.print("[yellow]No matching off-chain attestations found.[/yellow]")
            return
        for record in records:
            print_json(record)
        console.print(f"\n{len(records)} attestation(s) loaded.")


@app.command("verify-offchain")
def verify_offchain_cmd(
    uid: Optional[str] = typer.Option(None, "--uid", help="Only the attestation with this UID"),
    attester: Optional[str] = typer.Option(
        None, "--attester", help="Also require every signature to come from this address"
    ),
):
    """Check the UID and signature of stored off-chain attestations."""
    with _command("verify-offchain"):
        config = _config()
        entry = _entry(config, "verify-offchain")
        store = _store()
        query = OffchainAttestationQuery(uid=uid or _nonzero(entry.attestation_uid))
        records = store.load(query)
        if not records:
            console.print("[yellow]No off-chain attestations to verify.[/yellow]")
            return

        expected = Web3.to_checksum_address(attester) if attester else None
        table = Table(title="Off-chain Attestation Verification")
        table.add_column("UID", style="cyan")
        table.add_column("Signer")
        table.add_column("Status")
        failures = 0
        for record in records:
            valid, signer = verify_offchain_attestation(record, expected_attester=expected)
            failures += not valid
            table.add_row(record.uid, signer or "-", "[green]valid[/green]" if valid else "[red]invalid[/red]")
        console.print(table)
        if failures:
            console.print(f"[red]{failures} attestation(s) failed verification.[/red]")
            raise typer.Exit(1)


# ------------------------------------------------------------------
# Indexer queries
# ------------------------------------------------------------------


@app.command("list-items")
def list_items_cmd(
    limit: int = typer.Option(LIST_LIMIT, "--limit", "-n", help="Maximum results per query"),
):
    """List attestations and schemas for an address, and attestations referencing a UID."""
    with _command("list-items"):
        config = _config()
        entry = _entry(config, "list-items")
        with EASGraphQLClient(config.network.graphql_endpoint) as client:
            address = entry.recipient
            render_attestations(
                client.list_attestations_for_address(address, "either", limit),
                f"Attestations for {address}",
            )
            render_schemas(client.list_schemas_for_address(address, limit), f"Schemas created by {address}")
            render_attestations(
                client.list_referencing_attestations(entry.reference_uid, limit),
                f"Attestations referencing {entry.reference_uid}",
            )


# ------------------------------------------------------------------
# Private data
# ------------------------------------------------------------------


def _private_data_items(config: KitConfig, entry: ExampleEntry):
    fields = require_fields(entry)
    if entry.schema_string:
        return prepare_schema_item(entry.schema_string, fields)
    if not entry.schema_uid:
        raise ValidationError("Neither 'schemaUid' nor 'schemaString' provided.")
    console.print(f"Fetching schema string for UID: [cyan]{entry.schema_uid}[/cyan]...")
    _, schema_string = _onchain_schema(get_provider(config.network), config.network, entry)
    return prepare_schema_item(schema_string, fields)


def _show_private_data(private_data) -> None:
    tree = private_data.get_full_tree()
    console.print(f"Calculated Merkle Root: [cyan]{tree.root}[/cyan]")
    console.print("PrivateData Leaves:")
    print_json([value.to_dict() for value in tree.values])


@app.command("private-data")
def private_data_cmd():
    """Build a salted Merkle tree over the configured fields and show its root."""
    with _command("private-data"):
        config = _config()
        entry = _entry(config, "private-data")
        private_data = prepare_private_data_object(_private_data_items(config, entry))
        if private_data is None:
            raise ValidationError("No fields to build private data from.")
        _show_private_data(private_data)


@app.command("private-data-proofs")
def private_data_proofs_cmd():
    """Build private data and a proof disclosing the configured fields."""
    with _command("private-data-proofs"):
        config = _config()
        entry = _entry(config, "private-data-proofs")
        console.print("\n[bold]--- 1. PrivateData Object Creation ---[/bold]")
        private_data = prepare_private_data_object(_private_data_items(config, entry))
        if private_data is None:
            raise ValidationError("No fields to build private data from.")
        _show_private_data(private_data)

        console.print("\n[bold]--- 2. Proof Generation ---[/bold]")
        _, proof_json = generate_private_data_proof(private_data, entry.fields_to_disclose)
        console.print(
            "\nIf this privateData object was submitted as an attestation, "
            "you can verify it by pasting the following proof into the UI:"
        )
        console.print_json(proof_json)


@app.command("private-data-proofs-onchain")
def private_data_proofs_onchain_cmd():
    """Attest the Merkle root of the configured fields, then print a disclosure proof."""
    with _command("private-data-proofs-onchain"):
        config = _config()
        network = config.network
        entry = _entry(config, "private-data-proofs-onchain")
        items = _private_data_items(config, entry)
        w3, account = _signer(network)

        console.print("\n[bold]--- 1. PrivateData Object Creation ---[/bold]")
        private_data = prepare_private_data_object(items)
        if private_data is None:
            raise ValidationError("No fields to build private data from.")
        _show_private_data(private_data)

        root = private_data.get_full_tree().root
        root_items = prepare_schema_item(network.private_data_schema_string, {"privateData": root})
        uid = create_onchain_attestation(
            w3,
            account,
            network,
            OnChainAttestationData.from_entry(
                entry, network.private_data_schema_uid, network.private_data_schema_string, root_items
            ),
        )

        console.print("\n[bold]--- 2. Proof Generation ---[/bold]")
        _, proof_json = generate_private_data_proof(private_data, entry.fields_to_disclose)
        console.print(f"\nVerify the disclosed fields of {network.attestation_url(uid)} with this proof:")
        console.print_json(proof_json)


@app.command("gas-comparison")
def gas_comparison_cmd(
    skip_schema_check: bool = typer.Option(
        False, "--skip-schema-check", help="Do not check that the coordinate schemas are registered"
    ),
):
    """Compare gas for storing polygon coordinates as a string vs int40 arrays."""
    with _command("gas-comparison"):
        config = _config()
        entry = _entry(config, "gas-comparison")
        w3, account = _signer(config.network)
        run_gas_comparison(w3, account, config.network, entry, check_schemas=not skip_schema_check)


# ------------------------------------------------------------------
# workflow sub-commands
# ------------------------------------------------------------------

workflow_app = typer.Typer(
    name="workflow",
    help="Multi-step attestation workflows.",
    no_args_is_help=True,
)
app.add_typer(workflow_app, name="workflow")


@workflow_app.command("impact-monitoring")
def workflow_impact_monitoring():
    """Attest the GeoJSON bounds of a monitored area and read it back."""
    with _command("impact-monitoring"):
        config = _config()
        w3, account = _signer(config.network)
        run_impact_monitoring(w3, account, config.network, _entry(config, "impact-monitoring"))


@workflow_app.command("event-checkin")
def workflow_event_checkin():
    """Attest an event check-in with an IP-derived location."""
    with _command("event-checkin"):
        config = _config()
        w3, account = _signer(config.network)
        run_event_checkin(w3, account, config.network, _entry(config, "event-checkin"))


@workflow_app.command("event-checkin-chained")
def workflow_event_checkin_chained(
    delay: int = typer.Option(5, "--delay", help="Seconds to wait between ticket purchase and check-in"),
):
    """Attest a ticket purchase, then a check-in that references it."""
    with _command("event-checkin-chained"):
        config = _config()
        entries = get_batch(config, CHAINED_SECTION_NAME)
        w3, account = _signer(config.network)
        ticket, checkin = run_event_checkin_chained(w3, account, config.network, entries, delay_ticks=delay)
        console.print(Panel(
            f"Ticket:   [cyan]{ticket.attestation_uid}[/cyan]\n"
            f"Check-in: [cyan]{checkin.attestation_uid}[/cyan]",
            title="Event Check-In",
        ))


@workflow_app.command("geocaching")
def workflow_geocaching():
    """Attest a (simulated) geocache find to the signer."""
    with _command("geocaching"):
        config = _config()
        w3, account = _signer(config.network)
        run_geocaching(w3, account, config.network, _entry(config, "geocaching"))


@workflow_app.command("proofmode")
def workflow_proofmode(
    sample_dir: Path = typer.Option(Path("sample-data"), "--sample-dir", help="Directory holding Test_PM-*.zip"),
):
    """Attest the location recorded in a ProofMode bundle."""
    with _command("proofmode"):
        config = _config()
        w3, account = _signer(config.network)
        run_proofmode(w3, account, config.network, _entry(config, "proofmode"), sample_dir)


@workflow_app.command("qr")
def workflow_qr(
    image: Path = typer.Option(Path("examples/qrcode.png"), "--image", help="Image of a QR code holding [lat, lon]"),
):
    """Attest the location encoded in a QR code image."""
    with _command("qr"):
        config = _config()
        entry = _entry(config, "qr")
        w3, account = _signer(config.network)
        result = run_qr(w3, account, config.network, entry, image)
        console.print(f"Attestation UID: [cyan]{result.attestation_uid}[/cyan]")


# ------------------------------------------------------------------
# chains / keystore
# ------------------------------------------------------------------


@app.command("chains")
def chains_cmd():
    """List the networks with known EAS deployments."""
    table = Table(title="Supported Chains")
    table.add_column("Name", style="cyan")
    table.add_column("Chain ID", justify="right")
    table.add_column("EAS")
    table.add_column("Schema Registry")
    table.add_column("Explorer", style="dim")
    for name, chain in CHAINS.items():
        table.add_row(name, str(chain.chain_id), chain.eas_address, chain.schema_registry_address, chain.explorer_url)
    console.print(table)


keystore_app = typer.Typer(
    name="keystore",
    help="Manage an encrypted signing key.",
    no_args_is_help=True,
)
app.add_typer(keystore_app, name="keystore")


@keystore_app.command("create")
def keystore_create(
    directory: Path = typer.Argument(Path("."), help="Directory to write keystore.json into"),
    from_env: bool = typer.Option(
        False, "--from-env", help="Encrypt the PRIVATE_KEY from the environment instead of generating a key"
    ),
):
    """Save an attester key as an encrypted keystore."""
    with _command("keystore create"):
        private_key = None
        if from_env:
            private_key = load_credentials().private_key
            if not private_key:
                raise ConfigError("PRIVATE_KEY is not set in the environment.")

        password = console.input("[bold]Set keystore password: [/bold]", password=True)
        confirm = console.input("[bold]Confirm password: [/bold]", password=True)
        if password != confirm:
            raise ConfigError("Passwords do not match.")
        address = create_keystore(directory, password, private_key=private_key)

    console.print(Panel(
        f"[bold green]Keystore {'imported' if from_env else 'created'}![/bold green]\n\n"
        f"Address: [cyan]{address}[/cyan]\n\n"
        f"[dim]Sign with it using 'eas-kit --keystore {directory} <command>'.\n"
        f"Fund it with test ETH before sending transactions.[/dim]",
        title="Signing Key",
    ))


@keystore_app.command("address")
def keystore_address(
    directory: Path = typer.Argument(Path("."), help="Directory holding keystore.json"),
):
    """Show the address of a keystore without decrypting it."""
    address = load_address(directory)
    if address is None:
        console.print("[yellow]No keystore found.[/yellow] Run 'eas-kit keystore create' first.")
        raise typer.Exit(1)
    console.print(f"Keystore address: [cyan]{address}[/cyan]")
