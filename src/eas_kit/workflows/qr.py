"""Attest a location read from a QR code image.

The QR code carries a JSON array ``[latitude, longitude]``. The workflow
decodes the image, turns the pair into a GeoJSON Point and attests it
on-chain to the signer.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from eth_account.signers.local import LocalAccount
from web3 import Web3

from eas_kit.config import ExampleEntry, NetworkConfig
from eas_kit.errors import KitError, ValidationError
from eas_kit.helpers import console
from eas_kit.workflows.base import WorkflowResult, attest_entry

logger = logging.getLogger("eas_kit.workflows.qr")

SECTION_NAME = "qr"


class QRCodeError(KitError):
    """The image is missing, unreadable or holds no QR code."""


def decode_qr_image(image_path: Path) -> str:
    """Return the text encoded in the QR code of *image_path*."""
    import cv2

    image_path = Path(image_path)
    if not image_path.is_file():
        raise QRCodeError(f"QR code image not found at {image_path}")

    image = cv2.imread(str(image_path))
    if image is None:
        raise QRCodeError(f"Could not read image {image_path}")

    text, points, _ = cv2.QRCodeDetector().detectAndDecode(image)
    if points is None:
        raise QRCodeError(f"No QR code found in {image_path}")
    if not text:
        raise QRCodeError(f"QR code in {image_path} could not be decoded")
    logger.info("Decoded QR code data: %s", text)
    return text


def parse_lat_lon(text: str) -> tuple[float, float]:
    """Parse ``"[latitude, longitude]"`` into a pair of floats.

    Raises ``ValidationError`` for anything other than a JSON array of two
    finite numbers within the WGS84 ranges.
    """
    invalid = ValidationError(f'Invalid QR code data format. Expected "[latitude, longitude]". Received: {text}')
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise invalid from exc

    if not isinstance(parsed, list) or len(parsed) != 2:
        raise invalid
    # bool is an int subclass; true/false are not coordinates
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in parsed):
        raise invalid

    lat, lon = (float(v) for v in parsed)
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise invalid
    if not -90 <= lat <= 90:
        raise ValidationError(f"Latitude {lat} is out of range [-90, 90]")
    if not -180 <= lon <= 180:
        raise ValidationError(f"Longitude {lon} is out of range [-180, 180]")
    return lat, lon


def location_point(lat: float, lon: float) -> dict:
    # GeoJSON orders positions longitude first
    return {"type": "Point", "coordinates": [lon, lat]}


def run_qr(
    w3: Web3,
    account: LocalAccount,
    network: NetworkConfig,
    entry: ExampleEntry,
    image_path: Path,
    decode: Callable[[Path], str] = decode_qr_image,
) -> WorkflowResult:
    console.print("\n[bold]--- Starting QR Code Location Workflow ---[/bold]")
    console.print(f"Decoding QR code from: [cyan]{image_path}[/cyan]...")
    lat, lon = parse_lat_lon(decode(image_path))
    console.print(f"Parsed latitude: {lat}, longitude: {lon}")

    now = datetime.now(timezone.utc)
    data = {
        "srs": "EPSG:4326",
        "specVersion": 1,
        **(entry.data or {}),
        "locationType": "geojson",
        "location": json.dumps(location_point(lat, lon)),
        "eventTimestamp": int(now.timestamp()),
        "memo": f"Location proof from QR code: {now.isoformat()}",
    }
    result = attest_entry(w3, account, network, entry, data, SECTION_NAME, recipient=account.address)

    console.print(f"\n[green]--- QR Code Workflow Completed ---[/green] {network.attestation_url(result.attestation_uid)}")
    return result
