"""Compare the gas cost of storing polygon coordinates as a string or as int40 arrays."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from eth_account.signers.local import LocalAccount
from web3 import Web3

from eas_kit.config import ZERO_HASH, ExampleEntry, NetworkConfig
from eas_kit.eas.abi import eas_contract
from eas_kit.eas.encoder import SchemaEncoder
from eas_kit.eas.gas import GasEstimate, compare_gas, estimate_gas_cost
from eas_kit.eas.schema import check_existing_schema
from eas_kit.errors import SchemaError, ValidationError
from eas_kit.helpers import console, extract_and_scale_coordinates, prepare_schema_item, strip_trailing_commas

logger = logging.getLogger("eas_kit.eas.gas_comparison")

STRING_SCHEMA = "string coordinates"
INT_SCHEMA_SINGLE = "int40[2][] coordinates"
INT_SCHEMA_MULTI = "int40[2][][] coordinates"

# Sepolia registrations of the schemas above (no resolver, revocable)
STRING_SCHEMA_UID = "0x04a2530a09a090418d6ed5162b95c27147250febd8aa3bdeee0d80afcb67a303"
INT_SCHEMA_SINGLE_UID = "0xf51739bab26a7d1b8f8b1c81b4f345608575d1b02abf9eb185ceb3c5b8aaa18d"
INT_SCHEMA_MULTI_UID = "0xed410a64d72edd35d1d47b177fe7fc37426b9ca76fdc04fc53e3d0b192f8d5a8"


@dataclass
class GasComparison:
    multi_feature: bool
    string_estimate: GasEstimate
    int_estimate: GasEstimate
    summary: str


def parse_geojson(raw: Any) -> dict:
    """Accept a GeoJSON mapping or a JSON string that may carry trailing commas."""
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str):
        raise ValidationError("Expected 'coordinates' to be a GeoJSON string or mapping.")
    try:
        parsed = json.loads(strip_trailing_commas(raw))
    except json.JSONDecodeError as exc:
        logger.error("Raw string was: %s", raw)
        raise ValidationError(f"Failed to parse coordinates string into JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ValidationError("Coordinates JSON must be a GeoJSON object.")
    return parsed


def ensure_comparison_schemas(w3: Web3, network: NetworkConfig) -> None:
    """Fail unless the three coordinate schemas are registered."""
    for schema in (STRING_SCHEMA, INT_SCHEMA_SINGLE, INT_SCHEMA_MULTI):
        if check_existing_schema(w3, network, schema, None, True) is None:
            raise SchemaError(f"Schema does not exist for: {schema}. Register it before comparing gas.")


def _estimate(
    w3: Web3,
    account: LocalAccount,
    network: NetworkConfig,
    entry: ExampleEntry,
    schema: str,
    schema_uid: str,
    data: dict[str, Any],
) -> GasEstimate:
    encoded = SchemaEncoder(schema).encode_data(prepare_schema_item(schema, data))
    request = (
        schema_uid,
        (
            Web3.to_checksum_address(entry.recipient),
            entry.expiration_time,
            entry.revocable,
            entry.reference_uid or ZERO_HASH,
            encoded,
            0,
        ),
    )
    eas = eas_contract(w3, network)
    return estimate_gas_cost(
        w3,
        {"from": account.address, "to": eas.address, "data": eas.encode_abi("attest", args=[request]), "value": 0},
    )


def run_gas_comparison(
    w3: Web3,
    account: LocalAccount,
    network: NetworkConfig,
    entry: ExampleEntry,
    check_schemas: bool = True,
) -> GasComparison:
    """Estimate both encodings of the configured GeoJSON and compare them."""
    if not entry.data or "coordinates" not in entry.data:
        raise ValidationError("Invalid or missing 'fields.coordinates'")
    if check_schemas:
        ensure_comparison_schemas(w3, network)

    geojson = parse_geojson(entry.data["coordinates"])
    scaled = extract_and_scale_coordinates(geojson)
    if scaled is None:
        raise ValidationError("Coordinate scaling failed. Cannot estimate gas.")

    multi_feature = isinstance(scaled[0][0], list)
    int_schema = INT_SCHEMA_MULTI if multi_feature else INT_SCHEMA_SINGLE
    int_schema_uid = INT_SCHEMA_MULTI_UID if multi_feature else INT_SCHEMA_SINGLE_UID
    console.print(f"\nDetected {'Multi-Feature' if multi_feature else 'Single-Feature'} output.")
    console.print(f'Using String Schema: "{STRING_SCHEMA}" (UID: {STRING_SCHEMA_UID})')
    console.print(f'Using Int Schema: "{int_schema}" (UID: {int_schema_uid})')

    console.print("\nEstimating gas for STRING schema...")
    string_estimate = _estimate(
        w3, account, network, entry, STRING_SCHEMA, STRING_SCHEMA_UID, {"coordinates": json.dumps(geojson, indent=2)}
    )
    console.print("\nEstimating gas for INT schema...")
    int_estimate = _estimate(w3, account, network, entry, int_schema, int_schema_uid, {"coordinates": scaled})

    console.print("\n[bold]--- Gas Estimation Results ---[/bold]")
    console.print(f"String Schema Estimated Gas: {string_estimate.estimated_gas:,} units")
    console.print(f"String Schema Estimated Cost: {string_estimate.estimated_cost_eth:.8f} ETH")
    console.print(f"Int40 Array Schema Estimated Gas: {int_estimate.estimated_gas:,} units")
    console.print(f"Int40 Array Schema Estimated Cost: {int_estimate.estimated_cost_eth:.8f} ETH")
    difference = string_estimate.estimated_gas - int_estimate.estimated_gas
    console.print(f"\nGas Difference (String - Int): {difference:,} units")
    summary = compare_gas(string_estimate, int_estimate)
    console.print(summary)

    return GasComparison(
        multi_feature=multi_feature,
        string_estimate=string_estimate,
        int_estimate=int_estimate,
        summary=summary,
    )
