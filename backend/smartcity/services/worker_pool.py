import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass
class PoolOutcome:
    """What a bounded run managed to collect before finishing or hitting its deadline."""
    results: List[Any] = field(default_factory=list)
    scheduled: int = 0
    claimed: int = 0
    failed: int = 0
    timed_out: bool = False


async def run_bounded(
    items: Sequence[Any],
    handler: Callable[[Any], Awaitable[Optional[Any]]],
    concurrency: int = 6,
    deadline: float = 8.0,
) -> PoolOutcome:
    """
    Runs `handler` over `items` with at most `concurrency` calls in flight.

    Workers share a single cursor; each index is claimed by exactly one worker.
    A handler exception only drops that item. When `deadline` seconds pass the
    collected results are snapshotted and every unfinished call is cancelled,
    so the outcome is a best-effort partial result in completion order.
    """
    items = list(items)
    outcome = PoolOutcome(scheduled=len(items))
    if not items:
        return outcome

    collected: List[Any] = []
    cursor = 0

    async def worker() -> None:
        nonlocal cursor
        while cursor < len(items):
            index = cursor
            cursor += 1
            outcome.claimed += 1
            try:
                result = await handler(items[index])
            except Exception as e:
                outcome.failed += 1
                logger.debug(f"Dropping item {index}: {e}")
                continue
            if result is not None:
                collected.append(result)

    worker_count = max(1, min(int(concurrency), len(items)))
    tasks = [asyncio.create_task(worker()) for _ in range(worker_count)]
    try:
        _, pending = await asyncio.wait(tasks, timeout=deadline)
        outcome.results = list(collected)
        if pending:
            outcome.timed_out = True
            logger.info(f"Deadline of {deadline}s reached with {len(collected)}/{len(items)} results collected")
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
    return outcome
