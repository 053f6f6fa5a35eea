"""Exception hierarchy for eas-kit.

Every error raised on purpose by the toolkit derives from :class:`KitError`
so that the CLI can report it uniformly and exit with a non-zero status.
"""

from __future__ import annotations


class KitError(Exception):
    """Base class for all toolkit errors."""


class ConfigError(KitError):
    """Missing or malformed configuration (YAML, environment, CLI options)."""


class ValidationError(KitError):
    """Attestation data or config fields failed a presence/format check."""


class SchemaError(KitError):
    """A schema string could not be parsed or data does not match it."""


class TransactionError(KitError):
    """A submitted transaction reverted or produced no usable result."""


class GasEstimationError(KitError):
    """Gas could not be estimated or priced for a transaction."""


class GraphQLError(KitError):
    """The EAS GraphQL indexer returned an error or an unusable response."""


class StorageError(KitError):
    """The local off-chain attestation store could not be read or written."""
