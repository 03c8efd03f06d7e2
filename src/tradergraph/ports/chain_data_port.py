from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from tradergraph.core.dto import BlockInfo, TransactionInfo, TransferFilter, TransferPage

class ChainDataPort(ABC):
    """
    Abstract Class for fetching token-transfer facts from one chain.
    """

    chain: str = "eth"

    # --- Blocks ---

    @abstractmethod
    def get_latest_block_number(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def get_block(self, number: int) -> Optional[BlockInfo]:
        raise NotImplementedError

    # --- Token transfers (one page per call) ---

    @abstractmethod
    def get_asset_transfers(
        self,
        flt: TransferFilter,
        page_key: Optional[str] = None,
    ) -> TransferPage:
        raise NotImplementedError

    # --- Transactions ---

    @abstractmethod
    def get_transaction(self, tx_hash: str) -> Optional[TransactionInfo]:
        raise NotImplementedError
