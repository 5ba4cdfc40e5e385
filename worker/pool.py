# ============================================================================
# WORKER POOL
# ============================================================================
# STATUS: Core - Bounded-concurrency job execution
# PURPOSE: Feed jobs through a bounded queue to a fixed set of worker tasks
# CREATED: 18 OCT 2026
# ============================================================================
"""
Worker Pool

One feeder task streams jobs into a bounded queue (capacity 2N); N worker
tasks drain it. Each job runs independently; an exception raised by a job
is offered to a set-once FirstError cell.

Completion policy is fail-fast-but-drain:
- once an error is recorded the feeder stops enqueuing,
- jobs already queued are still processed by the workers,
- run() raises the first recorded error after every worker finished.

Cancellation (an asyncio.Event) is checked by the feeder before each
dispatch and by workers before each job; queued jobs are dropped once it
fires and the run ends with RunCancelled.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_STOP = object()


class RunCancelled(Exception):
    """The run was cancelled before all jobs were processed."""


class FirstError:
    """Set-once, read-many holder for the first failure of a run."""

    def __init__(self):
        self._error: Optional[BaseException] = None
        self._event = asyncio.Event()

    def offer(self, error: BaseException) -> bool:
        """Record `error` unless one is already held. Returns True if recorded."""
        if self._error is not None:
            return False
        self._error = error
        self._event.set()
        return True

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    def is_set(self) -> bool:
        return self._error is not None

    async def wait(self) -> None:
        await self._event.wait()


class WorkerPool(Generic[T]):
    """
    Runs an async handler over a job list with bounded concurrency.

    Usage:
        pool = WorkerPool(analyzer.process, max_workers=128, cancel_event=stop)
        await pool.run(jobs)    # raises the first job error, if any
    """

    def __init__(
        self,
        handler: Callable[[T], Awaitable[None]],
        max_workers: int,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.handler = handler
        self.max_workers = max_workers
        self.cancel_event = cancel_event or asyncio.Event()

    def worker_count(self, job_count: int) -> int:
        return min(self.max_workers, job_count)

    async def run(self, jobs: Sequence[T]) -> None:
        """
        Process every job, then raise the first recorded error, if any.

        Args:
            jobs: Jobs in dispatch order
        """
        if not jobs:
            return

        workers = self.worker_count(len(jobs))
        queue: asyncio.Queue = asyncio.Queue(maxsize=2 * workers)
        errors = FirstError()

        tasks = [asyncio.create_task(self._feed(jobs, queue, errors, workers))]
        tasks.extend(
            asyncio.create_task(self._work(queue, errors)) for _ in range(workers)
        )

        logger.debug(f"Started feeder and {workers} workers for {len(jobs)} jobs")

        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        if errors.error is not None:
            raise errors.error

    async def _feed(
        self,
        jobs: Sequence[T],
        queue: asyncio.Queue,
        errors: FirstError,
        workers: int,
    ) -> None:
        for job in jobs:
            if self.cancel_event.is_set():
                errors.offer(RunCancelled("run cancelled, stopped dispatching jobs"))
                break
            if errors.is_set():
                break
            if not await self._put(queue, job, errors):
                break

        # one sentinel per worker closes the queue; a cancelled feeder sends
        # none, its workers are cancelled alongside it
        for _ in range(workers):
            await queue.put(_STOP)

    async def _put(self, queue: asyncio.Queue, job: T, errors: FirstError) -> bool:
        """Enqueue `job` unless an error or cancellation arrives first."""
        if not queue.full():
            queue.put_nowait(job)
            return True

        put = asyncio.create_task(queue.put(job))
        halted = asyncio.create_task(errors.wait())
        cancelled = asyncio.create_task(self.cancel_event.wait())
        try:
            await asyncio.wait(
                {put, halted, cancelled},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (put, halted, cancelled):
                if not task.done():
                    task.cancel()
            await asyncio.gather(put, halted, cancelled, return_exceptions=True)

        if not put.cancelled():
            return True
        if self.cancel_event.is_set():
            errors.offer(RunCancelled("run cancelled, stopped dispatching jobs"))
        return False

    async def _work(self, queue: asyncio.Queue, errors: FirstError) -> None:
        while True:
            job = await queue.get()
            if job is _STOP:
                return
            if self.cancel_event.is_set():
                errors.offer(RunCancelled("run cancelled, dropped queued jobs"))
                continue

            try:
                await self.handler(job)
            except Exception as e:
                if errors.offer(e):
                    logger.error(f"Job {job} failed, no further jobs will be dispatched: {e}")
                else:
                    logger.error(f"Job {job} failed: {e}")


__all__ = ["WorkerPool", "FirstError", "RunCancelled"]
