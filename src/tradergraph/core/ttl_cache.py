from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    expires_at: float


class TTLCache(Generic[T]):
    """
    In-process key -> value store with per-entry expiry.

    Expired entries are dropped lazily on read, and by a sweep that runs at
    most once every `check_period` seconds on write. `clock` defaults to
    `time.monotonic` and can be replaced in tests.
    """

    def __init__(
        self,
        ttl: float,
        check_period: float = 0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be > 0")
        self._ttl = float(ttl)
        self._check_period = float(check_period)
        self._clock = clock
        self._lock = threading.Lock()
        self._data: Dict[str, CacheEntry[T]] = {}
        self._last_sweep = clock()

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._data[key]
                return None
            return entry.value

    def set(self, key: str, value: T) -> None:
        with self._lock:
            now = self._clock()
            self._data[key] = CacheEntry(value=value, expires_at=now + self._ttl)
            if self._check_period > 0 and now - self._last_sweep >= self._check_period:
                self._sweep(now)

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            self._sweep(self._clock())
            return len(self._data)

    def stats(self) -> Dict[str, Any]:
        return {"keys": len(self), "ttl": self._ttl}

    def _sweep(self, now: float) -> None:
        expired = [k for k, e in self._data.items() if e.expires_at <= now]
        for k in expired:
            del self._data[k]
        self._last_sweep = now
