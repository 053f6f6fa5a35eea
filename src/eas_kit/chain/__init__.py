"""Network, provider and signer helpers."""

from eas_kit.chain.chains import CHAINS, Chain, get_chain, list_chain_names, network_for_chain
from eas_kit.chain.provider import get_provider, get_provider_signer, send_transaction

__all__ = [
    "CHAINS",
    "Chain",
    "get_chain",
    "get_provider",
    "get_provider_signer",
    "list_chain_names",
    "network_for_chain",
    "send_transaction",
]
