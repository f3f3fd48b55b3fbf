"""
Thread pool management for concurrent hashing and fetching.

Provides a bounded pool of worker threads draining a shared job queue
and feeding a shared result queue. The caller collects exactly one
outcome per submitted job.
"""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Callable, Generic, Optional, Sequence, TypeVar


J = TypeVar('J')
R = TypeVar('R')


@dataclass
class TaskOutcome(Generic[J, R]):
    """Outcome of one job: a result, an error, or skipped."""
    job: J
    result: Optional[R] = None
    error: Optional[Exception] = None
    skipped: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.skipped


def resolve_pool_size(workers: int, dynamic: bool) -> int:
    """
    Compute the effective pool size.

    Sizes below 2 select the sequential path and are returned unchanged.
    With ``dynamic`` the size is scaled by the number of CPUs.
    """
    if workers < 2:
        return max(workers, 1)
    if dynamic:
        return workers * (os.cpu_count() or 1)
    return workers


class WorkerPool(Generic[J, R]):
    """
    Bounded pool of worker threads.

    Usage:
        pool = WorkerPool(size=8)
        outcomes = pool.run(hash_one, paths)
        hashed = [o.result for o in outcomes if o.succeeded]

    Outcomes arrive in completion order, not submission order.
    """

    def __init__(
        self,
        size: int,
        stop_on_error: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        if size < 1:
            raise ValueError(f"Pool size must be at least 1, got {size}")

        self.size = size
        self.stop_on_error = stop_on_error
        self.logger = logger or logging.getLogger(__name__)

    def run(
        self,
        func: Callable[[J], R],
        jobs: Sequence[J]
    ) -> list[TaskOutcome[J, R]]:
        """
        Apply ``func`` to every job on the pool's threads.

        Exceptions raised by ``func`` are captured in the outcome and never
        propagate. Returns one outcome per job.
        """
        workload = len(jobs)
        if workload == 0:
            return []

        job_queue: Queue[J] = Queue()
        results: Queue[TaskOutcome[J, R]] = Queue()
        stop = threading.Event()

        for job in jobs:
            job_queue.put(job)

        worker_count = min(self.size, workload)
        self.logger.info(f"WorkerPool - Using {worker_count} workers for {workload} jobs")

        with ThreadPoolExecutor(max_workers=worker_count, thread_name_prefix='bench-worker') as executor:
            for _ in range(worker_count):
                executor.submit(self._worker, func, job_queue, results, stop)

            outcomes = [results.get() for _ in range(workload)]

        return outcomes

    def _worker(
        self,
        func: Callable[[J], R],
        jobs: Queue[J],
        results: Queue[TaskOutcome[J, R]],
        stop: threading.Event
    ) -> None:
        """Consume jobs until the queue is empty."""
        while True:
            try:
                job = jobs.get_nowait()
            except Empty:
                return

            if stop.is_set():
                results.put(TaskOutcome(job=job, skipped=True))
                continue

            try:
                result = func(job)
            except Exception as e:
                self.logger.debug(f"WorkerPool - Job {job!r} failed: {e}")
                if self.stop_on_error:
                    stop.set()
                results.put(TaskOutcome(job=job, error=e))
            else:
                results.put(TaskOutcome(job=job, result=result))
