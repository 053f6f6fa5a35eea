"""Record the discovery of a geocache by the signing account."""

from __future__ import annotations

import logging
import random
import time
from typing import Any

from eth_account.signers.local import LocalAccount
from web3 import Web3

from eas_kit.config import ExampleEntry, NetworkConfig
from eas_kit.helpers import console, print_json
from eas_kit.workflows.base import WorkflowResult, attest_entry

logger = logging.getLogger("eas_kit.workflows.geocaching")

SECTION_NAME = "geocaching"
DEFAULT_LATITUDE = "40.7128"
DEFAULT_LONGITUDE = "-74.0060"


def simulate_qr_scan(latitude: str = DEFAULT_LATITUDE, longitude: str = DEFAULT_LONGITUDE) -> dict[str, str]:
    """Stand-in for scanning the QR code placed at a cache."""
    label = f"cache-{random.randrange(1000)}"
    data = {
        "cacheId": Web3.to_hex(Web3.keccak(text=label)),
        "latitude": latitude,
        "longitude": longitude,
    }
    logger.info("Simulated QR scan of %s", label)
    return data


def run_geocaching(
    w3: Web3,
    account: LocalAccount,
    network: NetworkConfig,
    entry: ExampleEntry,
) -> WorkflowResult:
    console.print("\n[bold]--- Starting Geocaching Workflow ---[/bold]")
    console.print(f"Finder Address (Signer): {account.address}")

    configured: dict[str, Any] = dict(entry.data or {})
    scan = simulate_qr_scan(
        latitude=str(configured.get("latitude", DEFAULT_LATITUDE)),
        longitude=str(configured.get("longitude", DEFAULT_LONGITUDE)),
    )
    console.print("Simulated QR Data:")
    print_json(scan)

    data = {
        **configured,
        **scan,
        "timestamp": int(time.time()),
        "finderAddress": account.address,
    }
    result = attest_entry(w3, account, network, entry, data, SECTION_NAME, recipient=account.address)

    console.print("\n[green]--- Geocaching Workflow Completed Successfully ---[/green]")
    return result
