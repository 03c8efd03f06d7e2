import random
import threading
import time


class SimpleRateLimiter:
    def __init__(self, requests_per_sec: float) -> None:
        if requests_per_sec <= 0:
            raise ValueError("requests_per_sec must be > 0")
        self._min_interval = 1.0 / requests_per_sec
        self._next_ts = 0.0
        self._lock = threading.Lock()

    def wait(self) -> None:
        # reserve a slot under the lock, sleep outside it
        with self._lock:
            now = time.monotonic()
            slot = max(now, self._next_ts)
            self._next_ts = slot + self._min_interval
        sleep_for = slot - now
        if sleep_for > 0:
            time.sleep(sleep_for)


def backoff_sleep(attempt: int, base: float = 0.5, cap: float = 8.0) -> None:
    t = min(cap, base * (2 ** attempt))
    t *= 0.7 + random.random() * 0.6
    time.sleep(t)
