"""Password-protected attester key.

Instead of leaving ``PRIVATE_KEY`` in ``.env``, the attester key can live in
``keystore.json`` (the Web3 Secret Storage format). Commands that sign unlock
it into a :class:`LocalAccount` and hand that to
:func:`eas_kit.chain.provider.get_provider_signer`.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

from eas_kit.errors import ConfigError

logger = logging.getLogger("eas_kit.chain.keystore")

KEYSTORE_FILENAME = "keystore.json"


def keystore_path(keystore_dir: Path) -> Path:
    return Path(keystore_dir) / KEYSTORE_FILENAME


def create_keystore(keystore_dir: Path, password: str, private_key: Optional[str] = None) -> str:
    """Encrypt an attester key into ``keystore.json`` and return its address.

    With *private_key* an existing key (for example the one from ``.env``) is
    imported; otherwise a fresh key is generated.

    Raises
    ------
    ConfigError
        If a keystore already exists, the password is empty or the key is
        malformed.
    """
    path = keystore_path(keystore_dir)
    if path.exists():
        raise ConfigError(f"Keystore already exists at {path}. Delete it first to replace it.")
    if not password:
        raise ConfigError("Keystore password must not be empty.")

    try:
        account = Account.from_key(private_key) if private_key else Account.create()
    except ValueError as exc:
        raise ConfigError(f"Invalid private key: {exc}") from exc

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(Account.encrypt(account.key, password), indent=2), encoding="utf-8")
    logger.info("Stored attester %s in %s", account.address, path)
    return account.address


def load_address(keystore_dir: Path) -> Optional[str]:
    """Checksummed address stored in the keystore, or ``None`` without one."""
    path = keystore_path(keystore_dir)
    if not path.exists():
        return None
    raw = json.loads(path.read_text(encoding="utf-8")).get("address", "")
    return Web3.to_checksum_address(raw if raw.startswith("0x") else "0x" + raw)


def unlock_account(keystore_dir: Path, password: str) -> LocalAccount:
    """Decrypt the keystore into a signing account.

    Raises
    ------
    ConfigError
        If there is no keystore or the password does not decrypt it.
    """
    path = keystore_path(keystore_dir)
    if not path.exists():
        raise ConfigError(f"No keystore found at {path}. Run 'eas-kit keystore create' first.")

    try:
        key = Account.decrypt(json.loads(path.read_text(encoding="utf-8")), password)
    except ValueError as exc:
        raise ConfigError(f"Failed to unlock keystore: {exc}") from exc

    account: LocalAccount = Account.from_key(key)
    logger.debug("Unlocked keystore for %s", account.address)
    return account
