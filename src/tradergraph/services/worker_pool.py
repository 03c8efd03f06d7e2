from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Hashable, List, Optional, Sequence, TypeVar

from tradergraph.core.outcomes import FAILED, OK, SKIPPED, UnitOutcome

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)


class BoundedWorkerPool:
    """
    Runs groups of upstream calls with at most `permits` in flight.

    Each `run_group` call submits one unit per item, waits for all of them,
    and returns outcomes in item order. A unit returning None is `skipped`;
    a unit raising is `failed` and logged, never re-raised.
    """

    def __init__(self, permits: int, name: str = "pool") -> None:
        if permits < 1:
            raise ValueError("permits must be >= 1")
        self.permits = permits
        self.name = name

    def run_group(
        self,
        fn: Callable[[K], Optional[object]],
        items: Sequence[K],
    ) -> List[UnitOutcome]:
        if not items:
            return []
        workers = min(self.permits, len(items))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=self.name) as pool:
            futures = [pool.submit(fn, item) for item in items]
            return [self._outcome(item, fut) for item, fut in zip(items, futures)]

    def _outcome(self, key, fut) -> UnitOutcome:
        try:
            value = fut.result()
        except Exception as e:
            logger.warning("%s: unit %r failed: %s", self.name, key, e)
            return UnitOutcome(key=key, status=FAILED, reason=f"{e.__class__.__name__}: {e}")
        if value is None:
            return UnitOutcome(key=key, status=SKIPPED, reason="no result")
        return UnitOutcome(key=key, status=OK, value=value)
