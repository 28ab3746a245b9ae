# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Job queue feeding approved requests to workers.

The in-memory implementation runs a fixed pool of asyncio worker tasks.
Jobs are deduplicated by id while queued or retrying, failed attempts are
re-queued with exponential backoff (``backoff * 2**(attempt-1)``), and there
is no way to cancel a queued job.
"""

from __future__ import annotations

import abc
import asyncio
import contextlib
import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from credproxy.core.exceptions import QueueError
from credproxy.models.request import ProxyJob

logger = logging.getLogger("credproxy.proxy.queue")


class JobOutcome(enum.Enum):
    DONE = "done"
    RETRY = "retry"


@dataclass
class Job:
    payload: ProxyJob
    attempt: int = 1
    max_attempts: int = 1

    @property
    def id(self) -> str:
        return self.payload.request_id

    @property
    def is_last_attempt(self) -> bool:
        return self.attempt >= self.max_attempts


JobHandler = Callable[[Job], Awaitable[JobOutcome]]


class JobQueue(abc.ABC):
    """Abstract queue broker."""

    @abc.abstractmethod
    async def enqueue(self, payload: ProxyJob) -> bool:
        """Queue *payload* under its request id.

        Returns ``False`` when a job with the same id was already queued.

        Raises:
            QueueError: The queue cannot accept jobs.
        """

    @abc.abstractmethod
    async def start(self, handler: JobHandler) -> None:
        """Begin dispatching jobs to *handler*."""

    @abc.abstractmethod
    async def stop(self) -> None:
        """Stop dispatching.  Queued jobs are dropped."""

    @abc.abstractmethod
    async def join(self) -> None:
        """Wait until every queued job has been handled."""


class MemoryJobQueue(JobQueue):
    """asyncio-backed queue with a worker pool.

    Args:
        workers: Number of concurrent worker tasks.
        attempts: Total attempts per job, including the first.
        backoff_seconds: Base delay before the first retry.
    """

    def __init__(
        self,
        *,
        workers: int = 4,
        attempts: int = 3,
        backoff_seconds: float = 5.0,
    ) -> None:
        self._workers = max(1, workers)
        self._attempts = max(1, attempts)
        self._backoff = backoff_seconds
        self._queue: asyncio.Queue[Job] = asyncio.Queue()
        self._seen: set[str] = set()
        self._tasks: list[asyncio.Task[None]] = []
        self._retries: set[asyncio.Task[None]] = set()
        self._handler: JobHandler | None = None
        self._outstanding = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    @property
    def tracked(self) -> int:
        """Number of job ids currently queued or awaiting a retry."""
        return len(self._seen)

    def backoff_for(self, attempt: int) -> float:
        """Delay before re-running a job whose *attempt* just failed."""
        return self._backoff * (2 ** (attempt - 1))

    async def enqueue(self, payload: ProxyJob) -> bool:
        if payload.request_id in self._seen:
            logger.info("Job %s already queued; ignoring duplicate", payload.request_id)
            return False
        if not self.running:
            raise QueueError("Queue is not running")
        self._seen.add(payload.request_id)
        self._outstanding += 1
        self._idle.clear()
        await self._queue.put(Job(payload=payload, max_attempts=self._attempts))
        return True

    async def start(self, handler: JobHandler) -> None:
        if self.running:
            return
        self._handler = handler
        self._tasks = [
            asyncio.create_task(self._worker(), name=f"credproxy-worker-{n}")
            for n in range(self._workers)
        ]
        logger.info("Job queue started (workers=%d, attempts=%d)", self._workers, self._attempts)

    async def stop(self) -> None:
        tasks = [*self._tasks, *self._retries]
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks = []
        self._retries.clear()
        logger.info("Job queue stopped")

    async def join(self) -> None:
        """Wait until every queued job has finished, retries included."""
        await self._idle.wait()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _worker(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self._run(job)
            finally:
                self._queue.task_done()

    async def _run(self, job: Job) -> None:
        handler = self._handler
        if handler is None:
            raise QueueError("Queue has no handler")
        try:
            outcome = await handler(job)
        except Exception:
            logger.exception("Job %s attempt %d raised", job.id, job.attempt)
            outcome = JobOutcome.RETRY

        if outcome is JobOutcome.RETRY and not job.is_last_attempt:
            delay = self.backoff_for(job.attempt)
            logger.info(
                "Job %s attempt %d/%d failed, retrying in %.1fs",
                job.id,
                job.attempt,
                job.max_attempts,
                delay,
            )
            task = asyncio.create_task(self._requeue(job, delay))
            self._retries.add(task)
            task.add_done_callback(self._retries.discard)
            return

        if outcome is JobOutcome.RETRY:
            logger.warning("Job %s exhausted %d attempts", job.id, job.max_attempts)
        self._finish(job)

    async def _requeue(self, job: Job, delay: float) -> None:
        await asyncio.sleep(delay)
        await self._queue.put(
            Job(payload=job.payload, attempt=job.attempt + 1, max_attempts=job.max_attempts)
        )

    def _finish(self, job: Job) -> None:
        # Redelivery after this point is harmless: the worker skips terminal records.
        self._seen.discard(job.id)
        self._outstanding -= 1
        if self._outstanding <= 0:
            self._outstanding = 0
            self._idle.set()
