"""Configuration system for eas-kit.

Loads the examples file (``config/examples.yaml`` by default), supports
environment variable expansion, applies per-entry defaults, and exposes the
secrets (private key, RPC credentials) read from the environment or a
``.env`` file.

The examples file is keyed by command name. Each value is a list of entries;
an entry is either a single attestation/schema description or a batch of
them under an ``attestations`` key. The optional top-level ``network`` key
overrides the contract addresses and endpoints.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, model_validator
from pydantic.alias_generators import to_camel

from eas_kit.errors import ConfigError, ValidationError

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
ZERO_HASH = "0x" + "00" * 32

DEFAULT_CONFIG_FILENAME = "examples.yaml"
_PRESETS_DIR = Path(__file__).resolve().parent / "presets"


# ---------------------------------------------------------------------------
# Environment-variable expansion helper
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def _expand_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with their environment values.

    If the variable is not set the placeholder is left as-is so that
    validation can catch it later.
    """

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))

    return _ENV_VAR_RE.sub(_replace, value)


def _expand_env_recursive(obj: object) -> object:
    """Walk an arbitrary nested structure and expand env vars in strings."""
    if isinstance(obj, str):
        return _expand_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _expand_env_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# Pydantic v2 models
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    """YAML keys are camelCase (``schemaUid``); attributes are snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NetworkConfig(_CamelModel):
    """EAS deployment and endpoints. Defaults target Sepolia (EAS v0.26)."""

    chain: str = "sepolia"
    rpc_url: str = ""  # Overrides the chain's Infura template when set
    eas_address: str = "0xC2679fBD37d54388Ce493F1DB75320D236e1815e"
    schema_registry_address: str = "0x0a7E2Ff54e76B8E6659aedc9103FB21c038050D0"
    graphql_endpoint: str = "https://sepolia.easscan.org/graphql"
    explorer_url: str = "https://sepolia.easscan.org"
    # Schema used for attesting Merkle roots of private data objects
    private_data_schema_uid: str = "0x20351f973fdec1478924c89dfa533d8f872defa108d9c3c6512267d7e7e5dbc2"
    private_data_schema_string: str = "bytes32 privateData"

    def attestation_url(self, uid: str) -> str:
        return f"{self.explorer_url}/attestation/view/{uid}"

    def schema_url(self, uid: str) -> str:
        return f"{self.explorer_url}/schema/view/{uid}"


class ExampleEntry(_CamelModel):
    """One attestation/schema description from the examples file.

    Absent and ``null`` keys both fall back to the defaults below.
    """

    schema_uid: Optional[str] = None
    schema_string: Optional[str] = None
    data: Optional[dict[str, Any]] = Field(default=None, alias="fields")
    recipient: str = ZERO_ADDRESS
    revocable: bool = True
    expiration_time: int = 0
    reference_uid: str = ZERO_HASH
    private_data: Optional[Any] = None
    attestation_uid: Optional[str] = None
    resolver_address: str = ZERO_ADDRESS
    create_private_data: bool = False
    fields_to_disclose: Optional[list[str]] = None

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, raw: Any) -> Any:
        if isinstance(raw, dict):
            return {k: v for k, v in raw.items() if v is not None}
        return raw


class BatchEntry(_CamelModel):
    """A group of attestations processed in order by one command."""

    attestations: list[ExampleEntry] = Field(default_factory=list)


Entry = Union[ExampleEntry, BatchEntry]


class KitConfig(BaseModel):
    """Root configuration object: network settings plus example sections."""

    network: NetworkConfig = Field(default_factory=NetworkConfig)
    examples: dict[str, list[Entry]] = Field(default_factory=dict)


@dataclass(frozen=True)
class Credentials:
    """Secrets read from the environment. Never written back to disk."""

    private_key: Optional[str]
    infura_api_key: Optional[str]
    rpc_url: Optional[str]


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def _parse_entry(raw: Any) -> Entry:
    if not isinstance(raw, dict):
        raise ConfigError(f"Expected a mapping for each example entry, got {type(raw).__name__}")
    if isinstance(raw.get("attestations"), list):
        return BatchEntry.model_validate(raw)
    return ExampleEntry.model_validate(raw)


def parse_config(raw_data: dict) -> KitConfig:
    """Validate an already-parsed mapping into a :class:`KitConfig`."""
    expanded = _expand_env_recursive(raw_data)
    network_raw = expanded.pop("network", None) or {}
    try:
        network = NetworkConfig.model_validate(network_raw)
        examples: dict[str, list[Entry]] = {}
        for name, entries in expanded.items():
            # Sections whose value is not a list are ignored, like comments
            if not isinstance(entries, list):
                continue
            examples[name] = [_parse_entry(entry) for entry in entries]
    except PydanticValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    return KitConfig(network=network, examples=examples)


def default_config_path(base: Path | None = None) -> Path:
    """Resolve the examples file to use when none is given explicitly.

    Order: ``$EAS_KIT_CONFIG``, ``<base>/config/examples.yaml``, then the
    preset shipped with the package.
    """
    env_path = os.environ.get("EAS_KIT_CONFIG")
    if env_path:
        return Path(env_path)
    if base is None:
        base = Path.cwd()
    local = base / "config" / DEFAULT_CONFIG_FILENAME
    if local.exists():
        return local
    return _PRESETS_DIR / DEFAULT_CONFIG_FILENAME


def load_config(path: Path | None = None) -> KitConfig:
    """Load and validate the examples configuration from a YAML file.

    Environment variable placeholders (``${VAR}``) are expanded before
    validation.

    Raises
    ------
    ConfigError
        If the file does not exist, is not valid YAML, or does not contain a
        top-level mapping.
    """
    if path is None:
        path = default_config_path()
    if not path.exists():
        raise ConfigError(f"Config file not found at {path}")

    try:
        raw_data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse {path}: {exc}") from exc

    if raw_data is None:
        raw_data = {}
    if not isinstance(raw_data, dict):
        raise ConfigError(f"Invalid config structure in {path}. Expected a top-level mapping.")
    return parse_config(raw_data)


def save_config(config: KitConfig, path: Path) -> None:
    """Serialize a :class:`KitConfig` to a YAML file (camelCase keys)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data: dict[str, Any] = {
        "network": config.network.model_dump(mode="python", by_alias=True),
    }
    for name, entries in config.examples.items():
        data[name] = [e.model_dump(mode="python", by_alias=True, exclude_none=True) for e in entries]
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(data, fh, default_flow_style=False, sort_keys=False)


def get_examples(config: KitConfig, name: str) -> list[Entry]:
    """Return the entries configured for command *name*.

    Raises ``ConfigError`` when the section is missing or empty.
    """
    entries = config.examples.get(name)
    if not entries:
        raise ConfigError(f"Configuration for '{name}' not found or is empty.")
    return entries


def get_entry(config: KitConfig, name: str) -> ExampleEntry:
    """Return the first single entry configured for *name*."""
    entry = get_examples(config, name)[0]
    if not isinstance(entry, ExampleEntry):
        raise ConfigError(f"Configuration for '{name}' must be a single entry, not a batch.")
    return entry


def get_batch(config: KitConfig, name: str) -> list[ExampleEntry]:
    """Return the attestations of the first batch entry configured for *name*."""
    entry = get_examples(config, name)[0]
    if not isinstance(entry, BatchEntry) or not entry.attestations:
        raise ConfigError(f"No attestations found in batch for '{name}'.")
    return entry.attestations


def load_credentials(env_file: Path | None = None) -> Credentials:
    """Read secrets from the environment, loading ``.env`` first if present."""
    load_dotenv(dotenv_path=env_file)
    return Credentials(
        private_key=os.environ.get("PRIVATE_KEY") or None,
        infura_api_key=os.environ.get("INFURA_API_KEY") or None,
        rpc_url=os.environ.get("RPC_URL") or None,
    )


# ---------------------------------------------------------------------------
# Field-presence checks
# ---------------------------------------------------------------------------


def require_uid(value: Optional[str], label: str) -> str:
    """Ensure *value* is a ``0x``-prefixed string; return it."""
    if not value or not isinstance(value, str) or not value.startswith("0x"):
        raise ValidationError(f"Invalid or missing '{label}'")
    return value


def require_address(value: Optional[str], label: str) -> str:
    """Ensure *value* looks like a 20-byte hex address; return it."""
    if not value or not isinstance(value, str) or not value.startswith("0x") or len(value) != 42:
        raise ValidationError(f"Invalid or missing '{label}'")
    return value


def require_fields(entry: ExampleEntry) -> dict[str, Any]:
    """Ensure the entry carries a non-empty ``fields`` mapping; return it."""
    if not entry.data or not isinstance(entry.data, dict):
        raise ValidationError("Invalid or missing 'fields'")
    return entry.data
