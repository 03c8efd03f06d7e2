from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional



# Request model

@dataclass(frozen=True)
class TraderQuery:
    """
    One /api/traders request: which token, on which chain, over which window.
    """

    address: str
    time: str = "all"
    chain: str = "eth"

    # optional knobs
    now_ts: Optional[int] = None
    top_n: int = 0              # 0 = settings.TOP_TRADERS

    @property
    def cache_key(self) -> str:
        key = f"{self.chain}-{self.address}-{self.time}"
        return f"{key}-top{self.top_n}" if self.top_n else key



# Aggregation models

@dataclass(frozen=True)
class TxSummary:

    hash: str
    timestamp: Optional[str]
    value: float


@dataclass
class TraderAggregate:

    address: str
    volume: float = 0.0
    transactions: List[TxSummary] = field(default_factory=list)


@dataclass(frozen=True)
class LinkRecord:

    source: str
    target: str
    timestamp: Optional[str]
    hash: str
    value: float



# Graph models

@dataclass
class GraphNode:

    id: str
    volume: float
    type: str                   # "whale" | "retail"
    transactions: List[TxSummary] = field(default_factory=list)


@dataclass
class GraphStats:

    total_transfers: int = 0
    timestamped: int = 0
    total_traders: int = 0
    top_traders: int = 0
    total_links: int = 0
    timestamped_links: int = 0


@dataclass
class GraphResult:

    nodes: List[GraphNode] = field(default_factory=list)
    links: List[LinkRecord] = field(default_factory=list)
    chain: Optional[str] = None
    stats: Optional[GraphStats] = None
    message: Optional[str] = None

    @classmethod
    def empty(cls, message: str, chain: Optional[str] = None) -> "GraphResult":
        return cls(nodes=[], links=[], chain=chain, message=message)

    @property
    def is_empty(self) -> bool:
        return not self.nodes
