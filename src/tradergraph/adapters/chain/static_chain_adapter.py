from dataclasses import replace
from tradergraph.ports.chain_data_port import ChainDataPort
from tradergraph.core.dto import BlockInfo, TransactionInfo, TransferFilter, TransferPage, TransferRecord
from typing import Optional, Dict, List

class StaticChainAdapter(ChainDataPort):
    def __init__(self,
                 transfers: Optional[List[TransferRecord]] = None,
                 block_timestamps: Optional[Dict[int, int]] = None,
                 tx_blocks: Optional[Dict[str, int]] = None,
                 latest_block: Optional[int] = None,
                 page_size: int = 1000,
                 chain: str = "eth",
                 ):
        self.chain = chain
        self._transfers = transfers or []
        self._blocks = dict(block_timestamps or {})
        self._tx_blocks = dict(tx_blocks or {})
        self._page_size = page_size
        if latest_block is None:
            known = list(self._blocks) + [t.block_number for t in self._transfers if t.block_number is not None]
            latest_block = max(known) if known else 0
        self._latest = latest_block

    def get_latest_block_number(self):
        return self._latest

    def get_block(self, number):
        ts = self._blocks.get(int(number))
        if ts is None:
            return None
        return BlockInfo(number=int(number), timestamp=ts)

    def get_asset_transfers(self, flt: TransferFilter, page_key=None):
        hi = self._latest if flt.to_block is None else flt.to_block
        # rows without a block number only match ranges starting at genesis
        items = [
            t for t in self._transfers
            if (t.block_number is None and flt.from_block == 0)
            or (t.block_number is not None and flt.from_block <= t.block_number <= hi)
        ]
        size = min(self._page_size, flt.max_count)
        start = int(page_key) if page_key else 0
        end = start + size
        # fresh copies, as a remote provider would return
        page = [replace(t) for t in items[start:end]]
        next_key = str(end) if end < len(items) else None
        return TransferPage(transfers=page, page_key=next_key)

    def get_transaction(self, tx_hash):
        block = self._tx_blocks.get(tx_hash)
        if block is None:
            return None
        return TransactionInfo(tx_hash=tx_hash, block_number=block)
