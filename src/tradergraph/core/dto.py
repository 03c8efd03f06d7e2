from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional


def iso_from_unix(unix_ts: int) -> str:
    # millisecond precision, UTC, "Z" suffix
    return datetime.fromtimestamp(int(unix_ts), tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.000Z")


@dataclass
class TransferRecord:
    """
    One token transfer as returned by the data provider.

    `value` is the decimal amount when the provider supplies one; otherwise
    `raw_value` holds the hex integer amount. Only `block_number` and
    `timestamp` are written after ingestion (by timestamp enrichment).
    """

    tx_hash: str
    from_address: Optional[str]
    to_address: Optional[str]
    value: Optional[float] = None
    raw_value: Optional[str] = None
    block_number: Optional[int] = None
    timestamp: Optional[str] = None


@dataclass(frozen=True)
class TransferFilter:
    contract_address: str
    from_block: int = 0
    to_block: Optional[int] = None      # None = latest
    category: str = "erc20"
    max_count: int = 1000


@dataclass(frozen=True)
class TransferPage:
    transfers: List[TransferRecord] = field(default_factory=list)
    page_key: Optional[str] = None


@dataclass(frozen=True)
class BlockInfo:
    number: int
    timestamp: int


@dataclass(frozen=True)
class TransactionInfo:
    tx_hash: str
    block_number: Optional[int]


@dataclass(frozen=True)
class BlockTimestampEntry:
    block_number: int
    unix_timestamp: int
    iso_timestamp: str

    @classmethod
    def from_block(cls, block: BlockInfo) -> "BlockTimestampEntry":
        return cls(
            block_number=block.number,
            unix_timestamp=block.timestamp,
            iso_timestamp=iso_from_unix(block.timestamp),
        )
