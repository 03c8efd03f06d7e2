from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, Optional, Tuple

from tradergraph.config import settings
from tradergraph.core.dto import TransferRecord
from tradergraph.core.models import LinkRecord, TraderAggregate, TxSummary


WEI_PER_TOKEN = Decimal("1000000000000000000")


def _parse_raw_amount(raw: str) -> Optional[int]:
    s = str(raw).strip()
    try:
        if s.lower().startswith("0x"):
            return int(s, 16)
        return int(s)
    except ValueError:
        return None


def resolve_value(tx: TransferRecord) -> float:
    """
    Decimal amount of a transfer. Falls back to the raw integer amount
    scaled by 10^18 when the provider gave no decimal value.
    """
    if tx.value is None and tx.raw_value:
        amount = _parse_raw_amount(tx.raw_value)
        if amount is None:
            return 0.0
        return float(Decimal(amount) / WEI_PER_TOKEN)
    return float(tx.value or 0)


@dataclass
class FoldResult:
    aggregates: Dict[str, TraderAggregate] = field(default_factory=dict)
    links: Dict[Tuple[str, str], LinkRecord] = field(default_factory=dict)
    counted: int = 0


class TraderAggregator:
    """
    Folds transfers into net volume per address plus one link per
    ordered (from, to) pair. No I/O.

    - volume: received minus sent
    - links: the last transfer seen for a pair replaces earlier ones
    - transactions: first `max_tx_per_node` per address, in input order
    """

    def __init__(self, max_tx_per_node: int = settings.MAX_TX_PER_NODE) -> None:
        self.max_tx_per_node = max_tx_per_node

    def fold(self, transfers: Iterable[TransferRecord]) -> FoldResult:
        out = FoldResult()

        for tx in transfers:
            value = resolve_value(tx)
            if value <= 0 or not tx.from_address or not tx.to_address:
                continue
            out.counted += 1

            sender = self._aggregate(out, tx.from_address)
            receiver = self._aggregate(out, tx.to_address)
            sender.volume -= value
            receiver.volume += value

            summary = TxSummary(hash=tx.tx_hash, timestamp=tx.timestamp or None, value=value)
            self._append(sender, summary)
            # a self-transfer is listed once in its history
            if receiver is not sender:
                self._append(receiver, summary)

            out.links[(tx.from_address, tx.to_address)] = LinkRecord(
                source=tx.from_address,
                target=tx.to_address,
                timestamp=tx.timestamp or None,
                hash=tx.tx_hash,
                value=value,
            )

        return out

    # -------------------------
    # Helpers
    # -------------------------

    @staticmethod
    def _aggregate(out: FoldResult, address: str) -> TraderAggregate:
        agg = out.aggregates.get(address)
        if agg is None:
            agg = TraderAggregate(address=address)
            out.aggregates[address] = agg
        return agg

    def _append(self, agg: TraderAggregate, summary: TxSummary) -> None:
        if len(agg.transactions) < self.max_tx_per_node:
            agg.transactions.append(summary)
