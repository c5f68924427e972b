import asyncio
import unittest
from collections import Counter

from smartcity.services.worker_pool import run_bounded


class TestRunBounded(unittest.IsolatedAsyncioTestCase):

    async def test_collects_all_results_and_claims_each_item_once(self):
        seen = Counter()

        async def handler(item):
            seen[item] += 1
            await asyncio.sleep(0)
            return item * 2

        outcome = await run_bounded(list(range(20)), handler, concurrency=6, deadline=5)

        self.assertEqual(sorted(outcome.results), [i * 2 for i in range(20)])
        self.assertEqual(set(seen.values()), {1})
        self.assertEqual(outcome.claimed, 20)
        self.assertEqual(outcome.scheduled, 20)
        self.assertFalse(outcome.timed_out)

    async def test_concurrency_ceiling_is_respected(self):
        in_flight = 0
        peak = 0

        async def handler(item):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return item

        outcome = await run_bounded(list(range(30)), handler, concurrency=6, deadline=5)

        self.assertEqual(len(outcome.results), 30)
        self.assertEqual(peak, 6)

    async def test_failures_are_swallowed(self):
        async def handler(item):
            if item % 3 == 0:
                raise RuntimeError(f"flow 503 for {item}")
            return item

        outcome = await run_bounded(list(range(9)), handler, concurrency=2, deadline=5)

        self.assertEqual(sorted(outcome.results), [1, 2, 4, 5, 7, 8])
        self.assertEqual(outcome.failed, 3)

    async def test_none_results_are_dropped(self):
        async def handler(item):
            return None if item == 1 else item

        outcome = await run_bounded([0, 1, 2], handler, concurrency=3, deadline=5)
        self.assertEqual(sorted(outcome.results), [0, 2])

    async def test_deadline_returns_partial_results_and_cancels_stragglers(self):
        cancelled = []

        async def handler(item):
            try:
                await asyncio.sleep(0 if item < 4 else 10)
            except asyncio.CancelledError:
                cancelled.append(item)
                raise
            return item

        outcome = await run_bounded(list(range(10)), handler, concurrency=4, deadline=0.2)

        self.assertTrue(outcome.timed_out)
        self.assertEqual(sorted(outcome.results), [0, 1, 2, 3])
        self.assertEqual(len(cancelled), 4)
        self.assertEqual(outcome.claimed, 8)

    async def test_empty_input(self):
        async def handler(item):
            raise AssertionError("should not be called")

        outcome = await run_bounded([], handler, concurrency=6, deadline=1)
        self.assertEqual(outcome.results, [])
        self.assertFalse(outcome.timed_out)


if __name__ == '__main__':
    unittest.main()
