"""In-process job queue with delayed jobs and per-queue concurrency.

This module provides the asyncio implementation of the job scheduler
interface consumed by the sync engine.

Features:
- Delayed jobs held in a heap ordered by ready time
- Semaphore-controlled concurrency per queue
- Queue-level retry with exponential backoff while attempts remain
- Removal policy for completed and failed jobs
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import time
import uuid
from collections.abc import Awaitable, Callable, Mapping
from datetime import UTC, datetime
from typing import Any, Protocol

from github_jira_sync.logging import get_logger

from .job import Job, JobOptions, JobState

logger = get_logger(__name__)

JobHandler = Callable[[Job], Awaitable[None]]


class JobScheduler(Protocol):
    """Enqueue interface the sync engine depends on."""

    async def enqueue(
        self,
        data: Mapping[str, Any],
        opts: JobOptions | None = None,
    ) -> Job: ...


class JobQueue:
    """Named asyncio job queue.

    Usage:
        queue = JobQueue("installation", concurrency=2)
        queue.process(handler)
        await queue.start()

        await queue.enqueue({"installation_id": 1, ...}, JobOptions(delay_ms=1000))

        await queue.shutdown()

    Jobs are delivered at least once: a job whose handler raises is run
    again until ``opts.attempts`` is used up.
    """

    def __init__(
        self,
        name: str,
        concurrency: int = 1,
        *,
        max_backoff_seconds: float = 60.0,
        poll_interval: float = 0.01,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the queue.

        Args:
            name: Queue name (used in logs and metrics)
            concurrency: Maximum jobs running at once
            max_backoff_seconds: Cap for the retry backoff
            poll_interval: Idle sleep of the worker loop in seconds
            clock: Monotonic clock (seconds)
        """
        self.name = name
        self._concurrency = concurrency
        self._max_backoff = max_backoff_seconds
        self._poll_interval = poll_interval
        self._clock = clock

        self._queue: list[Job] = []
        self._sequence = itertools.count()
        self._semaphore = asyncio.Semaphore(concurrency)
        self._handler: JobHandler | None = None

        self._running = False
        self._worker_task: asyncio.Task[None] | None = None
        self._active_tasks: set[asyncio.Task[None]] = set()

        self.completed: list[Job] = []
        self.failed: list[Job] = []
        self._total_enqueued = 0
        self._total_completed = 0
        self._total_failed = 0

    # -------------------------------------------------------------------------
    # Registration & Lifecycle
    # -------------------------------------------------------------------------
    def process(self, handler: JobHandler) -> None:
        """Register the coroutine that processes this queue's jobs."""
        self._handler = handler

    async def start(self) -> None:
        if self._running:
            return
        if self._handler is None:
            raise RuntimeError(f"Queue '{self.name}' has no job handler")
        self._running = True
        self._worker_task = asyncio.create_task(self._worker_loop())
        logger.info("Queue {} started (concurrency={})", self.name, self._concurrency)

    async def shutdown(self, wait: bool = True, timeout: float = 30.0) -> None:
        """Stop the queue.

        Args:
            wait: If True, wait for running jobs to finish
            timeout: Maximum seconds to wait
        """
        self._running = False
        if self._worker_task:
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
            self._worker_task = None

        if wait and self._active_tasks:
            await asyncio.wait(set(self._active_tasks), timeout=timeout)

        logger.info(
            "Queue {} stopped (completed={}, failed={}, pending={})",
            self.name,
            self._total_completed,
            self._total_failed,
            len(self._queue),
        )

    @property
    def is_running(self) -> bool:
        return self._running

    # -------------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------------
    async def enqueue(
        self,
        data: Mapping[str, Any],
        opts: JobOptions | None = None,
    ) -> Job:
        """Add a job, optionally delayed.

        Args:
            data: JSON-serializable job payload
            opts: Delay, attempts and removal policy

        Returns:
            The queued job
        """
        opts = opts or JobOptions()
        delay = max(opts.delay_ms, 0) / 1000
        job = Job(
            ready_at=self._clock() + delay,
            sequence=next(self._sequence),
            id=str(uuid.uuid4()),
            queue_name=self.name,
            data=dict(data),
            opts=opts,
            state=JobState.DELAYED if delay > 0 else JobState.WAITING,
        )
        heapq.heappush(self._queue, job)
        self._total_enqueued += 1

        logger.debug(
            "Enqueued job {} on {} (delay={}ms, attempts={}, queue_size={})",
            job.id[:8],
            self.name,
            opts.delay_ms,
            opts.attempts,
            len(self._queue),
        )
        return job

    # -------------------------------------------------------------------------
    # Worker Loop
    # -------------------------------------------------------------------------
    def _pop_ready(self) -> Job | None:
        if self._queue and self._queue[0].ready_at <= self._clock():
            return heapq.heappop(self._queue)
        return None

    async def _worker_loop(self) -> None:
        while self._running:
            # Take a slot first so a popped job is never invisible to drain()
            await self._semaphore.acquire()
            job = self._pop_ready()
            if job is None:
                self._semaphore.release()
                await asyncio.sleep(self._poll_interval)
                continue

            task = asyncio.create_task(self._execute(job))
            self._active_tasks.add(task)
            task.add_done_callback(self._active_tasks.discard)

    async def _execute(self, job: Job) -> None:
        """Run one job, releasing its concurrency slot when done."""
        assert self._handler is not None
        try:
            job.state = JobState.ACTIVE
            try:
                await self._handler(job)
            except Exception as e:
                self._handle_failure(job, e)
            else:
                self._handle_success(job)
        finally:
            self._semaphore.release()

    def _handle_success(self, job: Job) -> None:
        job.state = JobState.COMPLETED
        job.finished_at = datetime.now(UTC)
        self._total_completed += 1
        if not job.opts.remove_on_complete:
            self.completed.append(job)

    def _handle_failure(self, job: Job, error: Exception) -> None:
        job.attempts_made += 1
        job.failed_reason = str(error)

        if job.attempts_made < job.opts.attempts:
            backoff = min(2 ** job.attempts_made, self._max_backoff)
            logger.warning(
                "Job {} on {} failed (attempt {}/{}), retrying in {}s: {}",
                job.id[:8],
                self.name,
                job.attempts_made,
                job.opts.attempts,
                backoff,
                error,
            )
            job.state = JobState.DELAYED
            job.ready_at = self._clock() + backoff
            job.sequence = next(self._sequence)
            heapq.heappush(self._queue, job)
            return

        job.state = JobState.FAILED
        job.finished_at = datetime.now(UTC)
        self._total_failed += 1
        if not job.opts.remove_on_fail:
            self.failed.append(job)
        logger.error("Job {} on {} failed permanently: {}", job.id[:8], self.name, error)

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------
    @property
    def queue_size(self) -> int:
        """Number of waiting and delayed jobs."""
        return len(self._queue)

    @property
    def is_idle(self) -> bool:
        """True if no queued or running jobs."""
        return not self._queue and not self._active_tasks

    def pending_jobs(self) -> list[Job]:
        """Queued jobs ordered by ready time."""
        return sorted(self._queue)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait until the queue has nothing queued or running."""
        async def _wait() -> None:
            while not self.is_idle:
                await asyncio.sleep(self._poll_interval)

        await asyncio.wait_for(_wait(), timeout)

    def get_stats(self) -> dict[str, int | bool | str]:
        return {
            "name": self.name,
            "queue_size": len(self._queue),
            "active": len(self._active_tasks),
            "is_running": self._running,
            "concurrency": self._concurrency,
            "total_enqueued": self._total_enqueued,
            "total_completed": self._total_completed,
            "total_failed": self._total_failed,
        }
