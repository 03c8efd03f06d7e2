from __future__ import annotations

import logging
from typing import List

from tradergraph.config.settings import DEFAULT_CHAIN

logger = logging.getLogger(__name__)

# Chain key -> Alchemy network slug
CHAIN_NETWORKS = {
    "eth": "eth-mainnet",
    "avax": "avax-mainnet",
    "base": "base-mainnet",
    "bnb": "bnb-mainnet",
    "arbi": "arb-mainnet",
    "poly": "polygon-mainnet",
    "opt": "opt-mainnet",
    "sonic": "sonic-mainnet",
}

# Relative windows accepted by /api/traders, in seconds
TIME_WINDOWS = {
    "2h": 2 * 3600,
    "6h": 6 * 3600,
    "24h": 24 * 3600,
    "3d": 3 * 24 * 3600,
    "7d": 7 * 24 * 3600,
    "30d": 30 * 24 * 3600,
}


def supported_chains() -> List[str]:
    return list(CHAIN_NETWORKS.keys())


def is_supported_chain(chain: str) -> bool:
    return chain in CHAIN_NETWORKS


def resolve_chain(chain: str) -> str:
    """Return `chain` if known, else the default chain."""
    if chain in CHAIN_NETWORKS:
        return chain
    logger.warning("Unsupported chain: %s, falling back to %s", chain, DEFAULT_CHAIN)
    return DEFAULT_CHAIN


def network_for(chain: str) -> str:
    return CHAIN_NETWORKS[resolve_chain(chain)]
