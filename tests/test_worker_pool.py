import threading
import time
import unittest

from tradergraph.core.outcomes import FAILED, OK, SKIPPED
from tradergraph.services.worker_pool import BoundedWorkerPool


class _PeakCounter:
    def __init__(self) -> None:
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def __call__(self, item: int) -> int:
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
        time.sleep(0.02)
        with self._lock:
            self.active -= 1
        return item * 10


class BoundedWorkerPoolTests(unittest.TestCase):
    def test_never_exceeds_permits(self) -> None:
        counter = _PeakCounter()

        outcomes = BoundedWorkerPool(2).run_group(counter, list(range(6)))

        self.assertLessEqual(counter.peak, 2)
        self.assertEqual([o.value for o in outcomes], [0, 10, 20, 30, 40, 50])

    def test_outcomes_follow_item_order(self) -> None:
        def slow_first(item: int) -> int:
            time.sleep(0.03 if item == 0 else 0)
            return item

        outcomes = BoundedWorkerPool(3).run_group(slow_first, [0, 1, 2])

        self.assertEqual([o.key for o in outcomes], [0, 1, 2])
        self.assertTrue(all(o.status == OK for o in outcomes))

    def test_none_is_skipped_and_exception_is_failed(self) -> None:
        def unit(item: str):
            if item == "none":
                return None
            if item == "boom":
                raise RuntimeError("upstream down")
            return item

        outcomes = BoundedWorkerPool(2).run_group(unit, ["ok", "none", "boom"])

        self.assertEqual([o.status for o in outcomes], [OK, SKIPPED, FAILED])
        self.assertEqual(outcomes[0].value, "ok")
        self.assertIn("RuntimeError: upstream down", outcomes[2].reason)

    def test_empty_group(self) -> None:
        self.assertEqual(BoundedWorkerPool(2).run_group(str, []), [])

    def test_rejects_zero_permits(self) -> None:
        with self.assertRaises(ValueError):
            BoundedWorkerPool(0)


if __name__ == "__main__":
    unittest.main()
