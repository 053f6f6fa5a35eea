"""ABI encoding of attestation data according to an EAS schema string.

A schema string is a comma-separated list of ``<type> <name>`` pairs, e.g.
``"uint256 eventId, uint8 voteIndex"``. Data is encoded as a single ABI tuple
of the schema's types, the same layout the EAS contracts and indexer decode.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence, Union

from eth_abi import decode, encode, is_encodable_type
from eth_abi.exceptions import DecodingError, EncodingError
from eth_utils import is_hex, to_checksum_address
from web3 import Web3

from eas_kit.errors import SchemaError

# Type aliases accepted by the EAS SDK
_TYPE_ALIASES = {"ipfsHash": "bytes32"}


@dataclass
class SchemaItem:
    """A named, typed value to encode."""

    name: str
    type: str
    value: Any = None


@dataclass
class SchemaDecodedItem:
    name: str
    type: str
    value: Any


def _is_bytes32_hex(value: str) -> bool:
    return isinstance(value, str) and value.startswith("0x") and len(value) == 66 and is_hex(value)


def coerce_value(abi_type: str, value: Any) -> Any:
    """Convert a config/JSON value into what ``eth_abi`` expects for *abi_type*.

    Arrays are handled recursively. Integers may be given as decimal or
    ``0x`` strings. A ``bytes32`` value that is not 32-byte hex is encoded as
    a right-padded UTF-8 string of at most 31 bytes.
    """
    if abi_type.endswith("]"):
        if not isinstance(value, (list, tuple)):
            raise SchemaError(f"Expected a list for type {abi_type}, got {type(value).__name__}")
        inner = abi_type[: abi_type.rindex("[")]
        return [coerce_value(inner, item) for item in value]

    if abi_type.startswith(("uint", "int")):
        if isinstance(value, bool):
            raise SchemaError(f"Expected an integer for type {abi_type}, got a boolean")
        if isinstance(value, str):
            try:
                return int(value, 16) if value.startswith(("0x", "-0x")) else int(value)
            except ValueError as exc:
                raise SchemaError(f"Invalid integer value {value!r} for type {abi_type}") from exc
        return int(value)

    if abi_type == "bool":
        if isinstance(value, str):
            return value.strip().lower() in ("true", "1", "yes")
        return bool(value)

    if abi_type == "address":
        try:
            return to_checksum_address(value)
        except (TypeError, ValueError) as exc:
            raise SchemaError(f"Invalid address value {value!r}") from exc

    if abi_type == "bytes32":
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        if _is_bytes32_hex(value):
            return bytes.fromhex(value[2:])
        raw = str(value).encode("utf-8")
        if len(raw) > 31:
            raise SchemaError(f"bytes32 string must be less than 32 bytes: {value!r}")
        return raw.ljust(32, b"\x00")

    if abi_type.startswith("bytes"):
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        if isinstance(value, str) and is_hex(value):
            return bytes.fromhex(value[2:] if value.startswith("0x") else value)
        raise SchemaError(f"Expected hex data for type {abi_type}, got {value!r}")

    if abi_type == "string":
        return value if isinstance(value, str) else str(value)

    return value


def _to_display(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(value)
    if isinstance(value, (list, tuple)):
        return [_to_display(v) for v in value]
    return value


class SchemaEncoder:
    """Parses a schema string and encodes/decodes data for it."""

    def __init__(self, schema: str) -> None:
        self.schema_string = schema
        self.schema: list[SchemaItem] = self._parse(schema)

    @staticmethod
    def _parse(schema: str) -> list[SchemaItem]:
        items: list[SchemaItem] = []
        if not schema or not schema.strip():
            return items
        for raw_field in schema.split(","):
            parts = raw_field.strip().split()
            if len(parts) < 2:
                raise SchemaError(f"Invalid schema field {raw_field.strip()!r}: expected '<type> <name>'")
            field_type = _TYPE_ALIASES.get(parts[0], parts[0])
            name = " ".join(parts[1:])
            if not is_encodable_type(field_type):
                raise SchemaError(f"Invalid or unsupported type {parts[0]!r} for field {name!r}")
            items.append(SchemaItem(name=name, type=field_type))
        return items

    @staticmethod
    def is_schema_valid(schema: str) -> bool:
        try:
            SchemaEncoder(schema)
        except SchemaError:
            return False
        return True

    @property
    def types(self) -> list[str]:
        return [item.type for item in self.schema]

    def encode_data(self, params: Sequence[SchemaItem]) -> bytes:
        """Encode *params*; they must match the schema's fields in order."""
        if len(params) != len(self.schema):
            raise SchemaError(
                f"Invalid number of values: expected {len(self.schema)}, got {len(params)}"
            )
        values = []
        for expected, given in zip(self.schema, params):
            given_type = _TYPE_ALIASES.get(given.type, given.type)
            if given.name != expected.name or given_type != expected.type:
                raise SchemaError(
                    f"Incompatible param {given.name!r} ({given.type}); "
                    f"expected {expected.name!r} ({expected.type})"
                )
            values.append(coerce_value(expected.type, given.value))
        try:
            return encode(self.types, values)
        except (EncodingError, TypeError, ValueError, OverflowError) as exc:
            raise SchemaError(f"Failed to encode data for schema {self.schema_string!r}: {exc}") from exc

    def decode_data(self, data: Union[str, bytes]) -> list[SchemaDecodedItem]:
        raw = bytes.fromhex(data[2:] if data.startswith("0x") else data) if isinstance(data, str) else data
        try:
            values = decode(self.types, raw)
        except DecodingError as exc:
            raise SchemaError(f"Failed to decode data for schema {self.schema_string!r}: {exc}") from exc
        return [
            SchemaDecodedItem(name=item.name, type=item.type, value=_to_display(value))
            for item, value in zip(self.schema, values)
        ]
