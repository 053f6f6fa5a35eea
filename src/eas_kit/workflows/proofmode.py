"""Attest the location and capture time recorded in a ProofMode bundle.

A ProofMode export is a zip holding the captured media plus a
``*.proof.json`` file with the device metadata. The workflow unpacks the
first ``Test_PM-*.zip`` in the sample data directory and attests the
location it contains.
"""

from __future__ import annotations

import json
import logging
import zipfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from eth_account.signers.local import LocalAccount
from web3 import Web3

from eas_kit.config import ExampleEntry, NetworkConfig
from eas_kit.errors import KitError, ValidationError
from eas_kit.helpers import console
from eas_kit.workflows.base import WorkflowResult, attest_entry

logger = logging.getLogger("eas_kit.workflows.proofmode")

SECTION_NAME = "proofmode"
ZIP_PATTERN = "Test_PM-*.zip"
RECIPE_TYPE = "ProofMode"
# IPFS upload is not performed; the recipe carries this placeholder CID
PLACEHOLDER_CID = "QmExampleCIDofTheZipFile"


class ProofModeError(KitError):
    """The ProofMode bundle is missing or unreadable."""


@dataclass
class ProofModeData:
    location: str
    location_type: str
    timestamp: int


def find_proofmode_zip(sample_dir: Path) -> Path:
    if not sample_dir.is_dir():
        raise ProofModeError(f"Sample data directory not found at {sample_dir}")
    matches = sorted(sample_dir.glob(ZIP_PATTERN))
    if not matches:
        raise ProofModeError(f"No ProofMode zip file found in {sample_dir}. Expected {ZIP_PATTERN}.")
    logger.info("Found ProofMode zip file: %s", matches[0])
    return matches[0]


def extract_zip(zip_path: Path, dest_dir: Path) -> Path:
    """Unpack *zip_path* into *dest_dir*, overwriting existing files."""
    dest_dir.mkdir(parents=True, exist_ok=True)
    try:
        with zipfile.ZipFile(zip_path) as archive:
            archive.extractall(dest_dir)
    except (zipfile.BadZipFile, OSError) as exc:
        raise ProofModeError(f"Failed to extract zip file {zip_path}: {exc}") from exc
    logger.info("Zip file extracted to %s", dest_dir)
    return dest_dir


def _parse_generated(value: str) -> int:
    if not value:
        return 0
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unrecognised 'Proof Generated' value %r; using 0.", value)
        return 0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


def process_proofmode_data(proof_dir: Path) -> ProofModeData:
    """Read location and capture time from the bundle's ``*.proof.json``.

    Raises ``ValidationError`` when the proof carries no coordinates.
    """
    if not proof_dir.is_dir():
        raise ProofModeError(f"ProofMode directory not found at {proof_dir}")
    proof_files = sorted(proof_dir.rglob("*.proof.json"))
    if not proof_files:
        raise ProofModeError(f"No proof.json file found in {proof_dir}")

    try:
        proof = json.loads(proof_files[0].read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ProofModeError(f"Could not read {proof_files[0]}: {exc}") from exc

    latitude = proof.get("Location.Latitude")
    longitude = proof.get("Location.Longitude")
    if not latitude or not longitude:
        raise ValidationError("Location data is required. The proof does not contain latitude/longitude.")

    location = f"{latitude},{longitude}"
    data = ProofModeData(
        location=location,
        location_type="decimalDegrees",
        timestamp=_parse_generated(str(proof.get("Proof Generated") or "")),
    )
    logger.info("ProofMode data: %s", data)
    return data


def run_proofmode(
    w3: Web3,
    account: LocalAccount,
    network: NetworkConfig,
    entry: ExampleEntry,
    sample_dir: Path,
    content_id: str = PLACEHOLDER_CID,
) -> WorkflowResult:
    console.print("\n[bold]--- Starting ProofMode Workflow ---[/bold]")

    zip_path = find_proofmode_zip(sample_dir)
    extract_dir = extract_zip(zip_path, sample_dir / zip_path.stem)
    proof = process_proofmode_data(extract_dir)
    recipe = [RECIPE_TYPE, content_id]

    data = {
        "srs": "EPSG:4326",
        "specVersion": 1,
        "memo": "",
        **(entry.data or {}),
        "locationType": proof.location_type,
        "location": proof.location,
        "eventTimestamp": proof.timestamp,
        "recipeType": RECIPE_TYPE,
        "recipePayload": recipe,
    }
    result = attest_entry(w3, account, network, entry, data, SECTION_NAME, recipient=account.address)

    console.print("\n[green]--- ProofMode Workflow Completed Successfully ---[/green]")
    return result
