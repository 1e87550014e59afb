"""Bounded parallel evaluation of independent, side-effect-free tasks.

Small workloads run in-process. Medium workloads go through a thread pool
behind a semaphore that caps in-flight tasks, and large ones through a
process pool. Task functions must be module-level so they pickle, and their
arguments must be immutable snapshots. Results always come back in
submission order, so every mode produces identical output.
"""

import threading
from collections.abc import Callable, Sequence
from concurrent.futures import (
    Executor,
    Future,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    as_completed,
)

from loguru import logger

from quini_engine.config import settings

SEQUENTIAL = "sequential"
LIMITER = "limiter"
POOL = "pool"


class ParallelEvaluator:
    """Run task batches in the mode their workload size calls for.

    Any failure of a parallel mode is logged and the batch is recomputed
    sequentially; the evaluator then stays sequential (``degraded``) for the
    rest of its life. A failure of the sequential run propagates.
    """

    def __init__(
        self,
        limiter_threshold: int | None = None,
        pool_threshold: int | None = None,
        max_workers: int | None = None,
        max_in_flight: int | None = None,
    ):
        self.limiter_threshold = limiter_threshold or settings.PARALLEL_LIMITER_THRESHOLD
        self.pool_threshold = pool_threshold or settings.PARALLEL_POOL_THRESHOLD
        self.max_workers = max_workers or settings.PARALLEL_MAX_WORKERS
        self.max_in_flight = max_in_flight or settings.PARALLEL_MAX_IN_FLIGHT
        self.degraded = False

    def mode(self, workload: int) -> str:
        if self.degraded or workload < self.limiter_threshold:
            return SEQUENTIAL
        if workload <= self.pool_threshold:
            return LIMITER
        return POOL

    def map(self, func: Callable, tasks: Sequence[tuple], workload: int | None = None) -> list:
        """Apply ``func(*task)`` to every task and return results in task order.

        Args:
            func: Module-level pure function.
            tasks: Argument tuples, one per task.
            workload: Number of underlying items (candidates, subsets) the
                tasks cover; decides the mode. Defaults to ``len(tasks)``.
        """
        workload = len(tasks) if workload is None else workload
        mode = self.mode(workload)
        if mode == SEQUENTIAL or len(tasks) <= 1:
            return [func(*task) for task in tasks]

        try:
            if mode == LIMITER:
                return self._run_limited(func, tasks)
            return self._run_pool(func, tasks)
        except Exception as e:
            logger.warning(
                "[executor] {} mode failed on {} tasks ({}: {}); falling back to sequential",
                mode, len(tasks), type(e).__name__, e,
            )
            self.degraded = True
            return [func(*task) for task in tasks]

    def _run_limited(self, func: Callable, tasks: Sequence[tuple]) -> list:
        limiter = threading.BoundedSemaphore(self.max_in_flight)
        with ThreadPoolExecutor(max_workers=self.max_in_flight) as executor:
            futures = []
            for task in tasks:
                limiter.acquire()
                future = executor.submit(func, *task)
                future.add_done_callback(lambda _f: limiter.release())
                futures.append(future)
            return self._collect(futures)

    def _run_pool(self, func: Callable, tasks: Sequence[tuple]) -> list:
        with self._process_pool() as executor:
            futures = [executor.submit(func, *task) for task in tasks]
            return self._collect(futures)

    def _process_pool(self) -> Executor:
        return ProcessPoolExecutor(max_workers=self.max_workers)

    @staticmethod
    def _collect(futures: list[Future]) -> list:
        positions = {future: i for i, future in enumerate(futures)}
        results = [None] * len(futures)
        for future in as_completed(futures):
            results[positions[future]] = future.result()
        return results
