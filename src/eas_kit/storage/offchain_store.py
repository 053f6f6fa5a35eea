"""Append-only JSON file store for signed off-chain attestations.

The file holds a flat JSON array of records in the EAS SDK's camelCase
format. Records are keyed by ``uid`` and never modified once written.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from eas_kit.eas.offchain import recover_signer
from eas_kit.errors import StorageError
from eas_kit.storage.models import OffchainAttestationQuery, SignedOffchainAttestation

logger = logging.getLogger("eas_kit.storage.offchain_store")

DEFAULT_STORE_FILENAME = "offchain-attestations.json"


def default_store_path() -> Path:
    """``$EAS_KIT_STORE`` or ``./offchain-attestations.json``."""
    return Path(os.environ.get("EAS_KIT_STORE") or Path.cwd() / DEFAULT_STORE_FILENAME)


def _same(a: str, b: str) -> bool:
    return a.lower() == b.lower()


class OffchainAttestationStore:
    """Read/append access to the signed attestation file at *path*."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path else default_store_path()

    # ------------------------------------------------------------------
    # File access
    # ------------------------------------------------------------------

    def _read(self) -> list[SignedOffchainAttestation]:
        if not self.path.exists():
            return []
        try:
            content = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Failed to read off-chain storage file: {self.path}") from exc
        if not content.strip():
            return []
        try:
            raw = json.loads(content)
        except ValueError as exc:
            raise StorageError(f"Off-chain storage file is not valid JSON: {self.path}") from exc
        if not isinstance(raw, list):
            logger.warning("Off-chain storage file %s does not hold a list; treating as empty.", self.path)
            return []
        try:
            return [SignedOffchainAttestation.model_validate(record) for record in raw]
        except PydanticValidationError as exc:
            raise StorageError(f"Malformed attestation record in {self.path}: {exc}") from exc

    def _write(self, records: list[SignedOffchainAttestation]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps([r.to_record() for r in records], indent=2)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".offchain-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Failed to write off-chain storage file: {self.path}") from exc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def save(self, attestation: SignedOffchainAttestation) -> bool:
        """Append *attestation*. Returns ``False`` if its uid is already stored."""
        logger.info("Saving off-chain attestation with UID %s to %s", attestation.uid, self.path)
        records = self._read()
        if any(_same(r.uid, attestation.uid) for r in records):
            logger.warning("Attestation with UID %s already exists in storage. Skipping save.", attestation.uid)
            return False
        records.append(attestation)
        self._write(records)
        logger.info("Attestation saved successfully.")
        return True

    def load(self, query: Optional[OffchainAttestationQuery] = None) -> list[SignedOffchainAttestation]:
        """Return stored attestations matching every populated query field."""
        records = self._read()
        if query is None or query.is_empty():
            logger.info("Loaded %d total attestations.", len(records))
            return records

        def matches(att: SignedOffchainAttestation) -> bool:
            if query.uid and not _same(att.uid, query.uid):
                return False
            if query.schema_uid and not _same(att.message.schema_uid, query.schema_uid):
                return False
            if query.recipient and not _same(att.message.recipient, query.recipient):
                return False
            if query.ref_uid and not _same(att.message.ref_uid, query.ref_uid):
                return False
            if query.attester and not _same(recover_signer(att), query.attester):
                return False
            return True

        found = [att for att in records if matches(att)]
        logger.info("Found %d matching attestations.", len(found))
        return found

    def get(self, uid: str) -> Optional[SignedOffchainAttestation]:
        for record in self._read():
            if _same(record.uid, uid):
                return record
        return None

    def __len__(self) -> int:
        return len(self._read())
