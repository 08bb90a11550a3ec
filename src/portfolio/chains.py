"""Supported chain table and per-chain lookups.

One canonical table: the 12 chains the 1inch Portfolio API serves for
ERC-20 overviews. Aggregation results follow this order.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ChainInfo:
    id: int
    name: str
    explorer: str
    coingecko_platform: str | None = None


SUPPORTED_CHAINS: dict[int, ChainInfo] = {
    1: ChainInfo(1, "Ethereum", "https://etherscan.io", "ethereum"),
    42161: ChainInfo(42161, "Arbitrum", "https://arbiscan.io", "arbitrum-one"),
    56: ChainInfo(56, "BNB Chain", "https://bscscan.com", "binance-smart-chain"),
    100: ChainInfo(100, "Gnosis", "https://gnosisscan.io", "xdai"),
    10: ChainInfo(10, "Optimism", "https://optimistic.etherscan.io", "optimistic-ethereum"),
    146: ChainInfo(146, "Sonic", "https://explorer.soniclabs.com", "sonic"),
    137: ChainInfo(137, "Polygon", "https://polygonscan.com", "polygon-pos"),
    8453: ChainInfo(8453, "Base", "https://basescan.org", "base"),
    324: ChainInfo(324, "ZKsync Era", "https://explorer.zksync.io", "zksync"),
    59144: ChainInfo(59144, "Linea", "https://lineascan.build", "linea"),
    43114: ChainInfo(43114, "Avalanche", "https://snowtrace.io", "avalanche"),
    130: ChainInfo(130, "Unichain", "https://unichain.blockscout.com", "unichain"),
}

CHAIN_TO_COINGECKO_PLATFORM: dict[int, str] = {
    chain.id: chain.coingecko_platform
    for chain in SUPPORTED_CHAINS.values()
    if chain.coingecko_platform
}


def is_chain_supported(chain_id: int) -> bool:
    return chain_id in SUPPORTED_CHAINS


def get_chain_name(chain_id: int) -> str:
    chain = SUPPORTED_CHAINS.get(chain_id)
    return chain.name if chain else f"Chain {chain_id}"


def get_explorer_url(chain_id: int, tx_hash: str) -> str:
    chain = SUPPORTED_CHAINS.get(chain_id)
    base = chain.explorer if chain else "https://etherscan.io"
    return f"{base}/tx/{tx_hash}"
