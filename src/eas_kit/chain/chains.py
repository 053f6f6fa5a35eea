"""Chain definitions for networks with an EAS deployment."""

from __future__ import annotations

from dataclasses import dataclass

from eas_kit.config import NetworkConfig


@dataclass(frozen=True)
class Chain:
    """An EVM-compatible network with EAS contracts."""

    name: str
    chain_id: int
    rpc_url: str  # Infura template, ``{api_key}`` is substituted
    native_symbol: str
    explorer_url: str
    eas_address: str
    schema_registry_address: str


CHAINS: dict[str, Chain] = {
    "sepolia": Chain(
        name="sepolia",
        chain_id=11155111,
        rpc_url="https://sepolia.infura.io/v3/{api_key}",
        native_symbol="ETH",
        explorer_url="https://sepolia.easscan.org",
        eas_address="0xC2679fBD37d54388Ce493F1DB75320D236e1815e",
        schema_registry_address="0x0a7E2Ff54e76B8E6659aedc9103FB21c038050D0",
    ),
    "mainnet": Chain(
        name="mainnet",
        chain_id=1,
        rpc_url="https://mainnet.infura.io/v3/{api_key}",
        native_symbol="ETH",
        explorer_url="https://easscan.org",
        eas_address="0xA1207F3BBa224E2c9c3c6D5aF63D0eb1582Ce587",
        schema_registry_address="0xA7b39296258348C78294F95B872b282326A97BDF",
    ),
    "base": Chain(
        name="base",
        chain_id=8453,
        rpc_url="https://base-mainnet.infura.io/v3/{api_key}",
        native_symbol="ETH",
        explorer_url="https://base.easscan.org",
        eas_address="0x4200000000000000000000000000000000000021",
        schema_registry_address="0x4200000000000000000000000000000000000020",
    ),
    "optimism": Chain(
        name="optimism",
        chain_id=10,
        rpc_url="https://optimism-mainnet.infura.io/v3/{api_key}",
        native_symbol="ETH",
        explorer_url="https://optimism.easscan.org",
        eas_address="0x4200000000000000000000000000000000000021",
        schema_registry_address="0x4200000000000000000000000000000000000020",
    ),
    "arbitrum": Chain(
        name="arbitrum",
        chain_id=42161,
        rpc_url="https://arbitrum-mainnet.infura.io/v3/{api_key}",
        native_symbol="ETH",
        explorer_url="https://arbitrum.easscan.org",
        eas_address="0xbD75f629A22Dc1ceD33dDA0b68c546A1c035c458",
        schema_registry_address="0xA310da9c5B885E7fb3fbA9D66E9Ba6Df512b78eB",
    ),
}


def get_chain(name: str) -> Chain:
    """Get a chain by name. Raises ``KeyError`` if not found."""
    if name not in CHAINS:
        raise KeyError(
            f"Unknown chain '{name}'. Available: {list_chain_names()}"
        )
    return CHAINS[name]


def list_chain_names() -> list[str]:
    """Return the names of all supported chains."""
    return list(CHAINS.keys())


def network_for_chain(name: str) -> NetworkConfig:
    """Build a :class:`NetworkConfig` pointing at *name*'s EAS deployment."""
    chain = get_chain(name)
    return NetworkConfig(
        chain=chain.name,
        eas_address=chain.eas_address,
        schema_registry_address=chain.schema_registry_address,
        graphql_endpoint=f"{chain.explorer_url}/graphql",
        explorer_url=chain.explorer_url,
    )
