"""
Bounded-concurrency batch processing over the cascade.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Awaitable, Callable, Deque, Dict, List, Optional, Sequence, Tuple

import structlog

from lodecore.protocols import AcquisitionResult, AcquisitionTarget

logger = structlog.get_logger(__name__)

AcquireFn = Callable[[AcquisitionTarget], Awaitable[AcquisitionResult]]


class BatchProcessor:
    """
    Runs ``acquire`` over many targets with at most ``concurrency`` in flight.

    A pending queue feeds an in-flight set; whenever any in-flight
    acquisition finishes, successful or not, its slot goes to the next
    queued target. A failing target becomes a failed result and never
    disturbs its siblings. Results come back in input order.
    """

    def __init__(self, acquire: AcquireFn) -> None:
        self._acquire = acquire
        self.max_in_flight_observed = 0
        self.batches_processed = 0

    async def process_all(
        self, targets: Sequence[AcquisitionTarget | str], concurrency: int
    ) -> List[AcquisitionResult]:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")

        queue: Deque[Tuple[int, AcquisitionTarget]] = deque(
            (index, AcquisitionTarget.coerce(target)) for index, target in enumerate(targets)
        )
        results: List[Optional[AcquisitionResult]] = [None] * len(queue)
        in_flight: Dict[asyncio.Task, Tuple[int, AcquisitionTarget]] = {}

        logger.info("Starting batch", targets=len(queue), concurrency=concurrency)
        try:
            while queue or in_flight:
                while queue and len(in_flight) < concurrency:
                    index, target = queue.popleft()
                    task = asyncio.ensure_future(self._acquire(target))
                    in_flight[task] = (index, target)
                self.max_in_flight_observed = max(self.max_in_flight_observed, len(in_flight))

                done, _ = await asyncio.wait(in_flight.keys(), return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    index, target = in_flight.pop(task)
                    results[index] = self._collect(task, target)
        finally:
            for task in in_flight:
                task.cancel()
            if in_flight:
                await asyncio.gather(*in_flight.keys(), return_exceptions=True)

        self.batches_processed += 1
        succeeded = sum(1 for r in results if r is not None and r.succeeded)
        logger.info("Batch complete", targets=len(results), succeeded=succeeded, failed=len(results) - succeeded)
        return [r for r in results if r is not None]

    @staticmethod
    def _collect(task: asyncio.Task, target: AcquisitionTarget) -> AcquisitionResult:
        if task.cancelled():
            return AcquisitionResult.failure(target, "acquisition cancelled")
        error = task.exception()
        if error is not None:
            logger.warning("Acquisition raised, recording failure", url=target.url, error=str(error))
            return AcquisitionResult.failure(target, f"{type(error).__name__}: {error}")
        return task.result()
