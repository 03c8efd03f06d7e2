from typing import Any, Dict, List, Optional
import itertools
import threading
import requests

from tradergraph.config.settings import (
    ALCHEMY_API_KEY,
    ALCHEMY_URL_TEMPLATE,
    ALCHEMY_REQUESTS_PER_SEC,
    ALCHEMY_TIMEOUT_SEC,
    ALCHEMY_MAX_RETRIES,
)
from tradergraph.config.chains import network_for, resolve_chain

from tradergraph.adapters.chain.rate_limiter import SimpleRateLimiter, backoff_sleep
from tradergraph.core.errors import DataSourceError, RateLimitError
from tradergraph.ports.chain_data_port import ChainDataPort
from tradergraph.core.dto import (
    BlockInfo,
    TransactionInfo,
    TransferFilter,
    TransferPage,
    TransferRecord,
)


def _hex_to_int(val: Any) -> Optional[int]:
    if val is None:
        return None
    if isinstance(val, int):
        return val
    s = str(val)
    try:
        return int(s, 16) if s.lower().startswith("0x") else int(s)
    except ValueError:
        return None


class AlchemyChainAdapter(ChainDataPort):

    def __init__(
        self,
        chain: str = "eth",
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        requests_per_sec: float = ALCHEMY_REQUESTS_PER_SEC,
        timeout_sec: float = ALCHEMY_TIMEOUT_SEC,
        max_retries: int = ALCHEMY_MAX_RETRIES,
    ) -> None:
        self.chain = resolve_chain(chain)
        self._api_key = api_key or ALCHEMY_API_KEY
        self._url = ALCHEMY_URL_TEMPLATE.format(network=network_for(self.chain), api_key=self._api_key)
        self._timeout = timeout_sec
        self._max_retries = max_retries

        self._rl = SimpleRateLimiter(requests_per_sec)
        # shared only when injected; otherwise one Session per worker thread
        self._session = session
        self._local = threading.local()
        self._ids = itertools.count(1)

    # ---------- internal ----------

    def _http(self) -> requests.Session:
        if self._session is not None:
            return self._session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
        return session

    def _call(self, method: str, params: List[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }

        last_err: Optional[Exception] = None

        for attempt in range(self._max_retries):
            try:
                self._rl.wait()
                resp = self._http().post(
                    self._url,
                    json=payload,
                    timeout=self._timeout,
                )
                if resp.status_code == 429:
                    last_err = RateLimitError(f"{method}: HTTP 429")
                    backoff_sleep(attempt)
                    continue
                resp.raise_for_status()
                data = resp.json()

                err = data.get("error")
                if err:
                    message = str(err.get("message", err))
                    if err.get("code") == 429 or "rate" in message.lower():
                        last_err = RateLimitError(message)
                        backoff_sleep(attempt)
                        continue
                    raise DataSourceError(f"{method}: {message}")

                return data.get("result")

            except DataSourceError:
                # RPC-level errors other than throttling are not retried
                raise
            except (requests.RequestException, ValueError) as e:
                last_err = e
                backoff_sleep(attempt)

        if isinstance(last_err, RateLimitError):
            raise RateLimitError(f"Alchemy {method} rate limited after retries: {last_err}")
        raise DataSourceError(f"Alchemy {method} failed after retries: {last_err}")

    @staticmethod
    def _to_record(r: Dict[str, Any]) -> TransferRecord:
        raw = r.get("rawContract") or {}
        value = r.get("value")
        meta = r.get("metadata") or {}
        return TransferRecord(
            tx_hash=r.get("hash", ""),
            from_address=(r.get("from") or "").lower() or None,
            to_address=(r.get("to") or "").lower() or None,
            value=float(value) if value is not None else None,
            raw_value=raw.get("value"),
            block_number=_hex_to_int(r.get("blockNum")),
            timestamp=meta.get("blockTimestamp"),
        )

    # ---------- port methods ----------

    def get_latest_block_number(self) -> int:
        result = self._call("eth_blockNumber", [])
        number = _hex_to_int(result)
        if number is None:
            raise DataSourceError(f"Invalid block number result: {result}")
        return number

    def get_block(self, number: int) -> Optional[BlockInfo]:
        result = self._call("eth_getBlockByNumber", [hex(int(number)), False])
        if not result:
            return None
        ts = _hex_to_int(result.get("timestamp"))
        if not ts:
            return None
        return BlockInfo(number=int(number), timestamp=ts)

    def get_asset_transfers(
        self,
        flt: TransferFilter,
        page_key: Optional[str] = None,
    ) -> TransferPage:
        params: Dict[str, Any] = {
            "fromBlock": hex(int(flt.from_block)),
            "toBlock": hex(int(flt.to_block)) if flt.to_block is not None else "latest",
            "contractAddresses": [flt.contract_address],
            "category": [flt.category],
            "maxCount": hex(int(flt.max_count)),
            "excludeZeroValue": True,
        }
        if page_key:
            params["pageKey"] = page_key

        result = self._call("alchemy_getAssetTransfers", [params]) or {}
        rows = result.get("transfers")
        rows = rows if isinstance(rows, list) else []
        return TransferPage(
            transfers=[self._to_record(r) for r in rows],
            page_key=result.get("pageKey") or None,
        )

    def get_transaction(self, tx_hash: str) -> Optional[TransactionInfo]:
        result = self._call("eth_getTransactionByHash", [tx_hash])
        if not result:
            return None
        return TransactionInfo(
            tx_hash=tx_hash,
            block_number=_hex_to_int(result.get("blockNumber")),
        )
