"""Validation, marshaling and console helpers shared by the commands."""

from __future__ import annotations

import json
import logging
import re
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel
from rich.console import Console

from eas_kit.eas.encoder import SchemaEncoder, SchemaItem
from eas_kit.errors import KitError, ValidationError

logger = logging.getLogger("eas_kit.helpers")

console = Console()

COORDINATE_SCALE = 10**9

_TRAILING_COMMA_RE = re.compile(r",\s*([\]}])")


# ---------------------------------------------------------------------------
# Schema data
# ---------------------------------------------------------------------------


def prepare_schema_item(schema_string: str, data: dict[str, Any]) -> list[SchemaItem]:
    """Order *data* by the schema's fields and attach their types.

    Every schema field must be present in *data*; extra keys are ignored.
    """
    encoder = SchemaEncoder(schema_string)
    missing = [item.name for item in encoder.schema if item.name not in data]
    if missing:
        raise ValidationError(
            f"Field(s) {', '.join(repr(m) for m in missing)} from schema not found in provided data."
        )
    known = {item.name for item in encoder.schema}
    extra = [key for key in data if key not in known]
    if extra:
        logger.warning("Ignoring fields not in schema: %s", ", ".join(extra))
    return [SchemaItem(name=item.name, type=item.type, value=data[item.name]) for item in encoder.schema]


def validate_attestation_data(schema_string: str, data: dict[str, Any]) -> bool:
    """Return True if *data* encodes cleanly against *schema_string*."""
    logger.info("Validating data against schema: %s", schema_string)
    try:
        SchemaEncoder(schema_string).encode_data(prepare_schema_item(schema_string, data))
    except KitError as exc:
        logger.error("Data validation failed: %s", exc)
        return False
    logger.info("Data structure appears valid for the schema.")
    return True


# ---------------------------------------------------------------------------
# GeoJSON coordinates
# ---------------------------------------------------------------------------


def strip_trailing_commas(text: str) -> str:
    """Remove trailing commas before ``]`` or ``}`` so strict JSON parses."""
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def _scale_ring(ring: list) -> list[list[int]]:
    return [[round(float(lon) * COORDINATE_SCALE), round(float(lat) * COORDINATE_SCALE)] for lon, lat, *_ in ring]


def _polygon_features(geojson: dict) -> list[dict]:
    kind = geojson.get("type")
    if kind == "FeatureCollection":
        return [f.get("geometry") or {} for f in geojson.get("features", [])]
    if kind == "Feature":
        return [geojson.get("geometry") or {}]
    return [geojson]


def extract_and_scale_coordinates(geojson: Any) -> Optional[list]:
    """Scale each polygon's outer ring by 1e9 into integers.

    One polygon yields an ``int40[2][]`` value (a list of points); several
    yield ``int40[2][][]`` (a list of rings). Returns ``None`` when no
    polygon can be extracted.
    """
    if not isinstance(geojson, dict):
        logger.error("Expected a GeoJSON object, got %s", type(geojson).__name__)
        return None

    rings = []
    for geometry in _polygon_features(geojson):
        if geometry.get("type") != "Polygon":
            logger.warning("Skipping unsupported geometry type: %s", geometry.get("type"))
            continue
        coordinates = geometry.get("coordinates") or []
        if not coordinates:
            continue
        try:
            rings.append(_scale_ring(coordinates[0]))
        except (TypeError, ValueError) as exc:
            logger.error("Invalid polygon coordinates: %s", exc)
            return None

    if not rings:
        logger.error("No polygon coordinates found in GeoJSON input.")
        return None
    return rings[0] if len(rings) == 1 else rings


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def to_jsonable(obj: Any) -> Any:
    """Convert bytes, models and decimals into JSON-friendly values."""
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(obj, (bytes, bytearray)):
        return "0x" + bytes(obj).hex()
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    if hasattr(obj, "__dataclass_fields__"):
        return {k: to_jsonable(getattr(obj, k)) for k in obj.__dataclass_fields__}
    return obj


def dumps(obj: Any, indent: int = 2) -> str:
    return json.dumps(to_jsonable(obj), indent=indent)


def print_json(obj: Any) -> None:
    console.print_json(dumps(obj))
