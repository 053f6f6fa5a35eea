"""Web3 provider and signer acquisition for EAS networks."""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlparse

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.contract.contract import ContractFunction
from web3.middleware import ExtraDataToPOAMiddleware
from web3.types import TxReceipt

from eas_kit.chain.chains import get_chain
from eas_kit.config import NetworkConfig, load_credentials
from eas_kit.errors import ConfigError

logger = logging.getLogger("eas_kit.chain.provider")


def resolve_rpc_url(
    network: NetworkConfig,
    infura_key: Optional[str] = None,
    rpc_url: Optional[str] = None,
) -> str:
    """Pick the RPC endpoint: explicit URL, then the network's, then Infura."""
    url = rpc_url or network.rpc_url
    if url:
        return url
    if not infura_key:
        raise ConfigError("INFURA_API_KEY is not set in the environment (or set RPC_URL).")
    return get_chain(network.chain).rpc_url.format(api_key=infura_key)


def needs_poa_middleware(w3: Web3, network: NetworkConfig) -> bool:
    """Everything but Ethereum mainnet gets the POA extra-data middleware.

    Chains outside the registry (reached through an explicit RPC URL) are
    identified by asking the node for its chain id.
    """
    try:
        chain_id = get_chain(network.chain).chain_id
    except KeyError:
        chain_id = w3.eth.chain_id
        logger.debug("Chain %r is not registered; node reports chain id %s", network.chain, chain_id)
    return chain_id != 1


def _connect(network: NetworkConfig, url: str) -> Web3:
    w3 = Web3(Web3.HTTPProvider(url))

    if needs_poa_middleware(w3, network):
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

    logger.info("Connected to %s via %s", network.chain, urlparse(url).hostname)
    return w3


def get_provider(network: NetworkConfig) -> Web3:
    """Return a read-only Web3 instance; no private key is needed."""
    creds = load_credentials()
    url = resolve_rpc_url(network, creds.infura_api_key, creds.rpc_url)
    return _connect(network, url)


def get_provider_signer(
    network: NetworkConfig,
    private_key: Optional[str] = None,
    infura_key: Optional[str] = None,
    account: Optional[LocalAccount] = None,
) -> tuple[Web3, LocalAccount]:
    """Return a Web3 instance and the local account that signs transactions.

    An already unlocked *account* (see :func:`eas_kit.chain.keystore.unlock_account`)
    takes precedence over any private key. Missing arguments are read from the
    environment (``PRIVATE_KEY``, ``INFURA_API_KEY``, ``RPC_URL``).

    Raises
    ------
    ConfigError
        If the private key is missing, or no ``RPC_URL`` is set and the
        Infura key is missing.
    """
    creds = load_credentials()
    infura_key = infura_key or creds.infura_api_key
    if account is None:
        private_key = private_key or creds.private_key
        if not private_key:
            raise ConfigError("PRIVATE_KEY is not set in the environment.")
        account = Account.from_key(private_key)

    url = resolve_rpc_url(network, infura_key, creds.rpc_url)
    w3 = _connect(network, url)
    logger.info("Using signer %s", account.address)
    return w3, account


def send_transaction(
    w3: Web3,
    account: LocalAccount,
    fn: ContractFunction,
    value: int = 0,
) -> TxReceipt:
    """Build, sign, and send a contract call, then wait for its receipt.

    Uses EIP-1559 fee parameters with a legacy gas price fallback.
    """
    params: dict = {
        "from": account.address,
        "value": value,
        "nonce": w3.eth.get_transaction_count(account.address),
        "chainId": w3.eth.chain_id,
    }

    latest = w3.eth.get_block("latest")
    base_fee = latest.get("baseFeePerGas")
    if base_fee is not None:
        max_priority = Web3.to_wei(1.5, "gwei")
        params["maxFeePerGas"] = base_fee * 2 + max_priority
        params["maxPriorityFeePerGas"] = max_priority
    else:
        params["gasPrice"] = w3.eth.gas_price

    tx = fn.build_transaction(params)
    signed = account.sign_transaction(tx)
    tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
    logger.info("Transaction submitted: %s", Web3.to_hex(tx_hash))
    logger.debug("Waiting for transaction confirmation...")
    return w3.eth.wait_for_transaction_receipt(tx_hash)
