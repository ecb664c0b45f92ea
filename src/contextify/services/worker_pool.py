"""Generic pool of claim/process workers.

A pool runs ``worker_count`` independent asyncio tasks. Each one loops:
claim a task, process it, and on failure report it and back off. The pool is
given the three operations and knows nothing about where tasks come from.

Shutdown is cooperative. :meth:`WorkerPool.stop` sets a cancellation token
that workers check at the top of each iteration, so a task already being
processed always runs to completion. The pool enforces no timeout on a
single ``process`` call; a stalled dependency stalls only the worker that
called it.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog

from contextify.logging import get_logger

T = TypeVar("T")

DEFAULT_IDLE_DELAY = 60.0
DEFAULT_ERROR_DELAY = 30.0


@dataclass
class WorkerPoolConfig:
    """Sizing and backoff of a worker pool."""

    name: str
    worker_count: int = 1
    idle_delay: float = DEFAULT_IDLE_DELAY
    error_delay: float = DEFAULT_ERROR_DELAY

    def __post_init__(self) -> None:
        self.worker_count = max(1, self.worker_count)


class WorkerPool(Generic[T]):
    """Concurrent engine that drains a work source with a pluggable handler.

    Args:
        claim: Returns the next task for a worker, or None when idle
        process: Handles one claimed task
        handle_error: Called with the task (None if claiming failed) and the
            exception after any claim or process failure. If it raises, the
            worker that called it exits.
        config: Pool sizing and delays
        logger: Logger bound to this pool
    """

    def __init__(
        self,
        claim: Callable[[int], Awaitable[T | None]],
        process: Callable[[T, int], Awaitable[None]],
        handle_error: Callable[[T | None, Exception, int], Awaitable[None]],
        config: WorkerPoolConfig,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._claim = claim
        self._process = process
        self._handle_error = handle_error
        self.config = config
        self._logger = logger or get_logger(__name__, pool=config.name)
        self._stop_requested = asyncio.Event()
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def is_running(self) -> bool:
        """True while any worker of the current generation has not exited."""
        return any(not task.done() for task in self._tasks)

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested.is_set()

    def start(self) -> None:
        """Spawn the workers. Must be called from a running event loop.

        Ignored while workers of a previous start are still running, even if
        they have been asked to stop; await :meth:`wait` before restarting.
        """
        if self.is_running:
            self._logger.warning("worker_pool_already_running", stopping=self.stop_requested)
            return

        count = self.config.worker_count
        self._logger.info("worker_pool_starting", worker_count=count)
        # Each generation gets its own token so a restart never revives old workers.
        stop_requested = asyncio.Event()
        self._stop_requested = stop_requested
        self._tasks = [
            asyncio.create_task(
                self._spawn(worker_id, stop_requested),
                name=f"{self.config.name}-worker-{worker_id}",
            )
            for worker_id in range(1, count + 1)
        ]

    def stop(self) -> None:
        """Ask workers to exit after their current iteration."""
        if not self.is_running or self.stop_requested:
            return

        self._logger.info("worker_pool_stopping")
        self._stop_requested.set()

    async def wait(self) -> None:
        """Wait until every worker has exited."""
        if self._tasks:
            await asyncio.gather(*self._tasks)

    async def _spawn(self, worker_id: int, stop_requested: asyncio.Event) -> None:
        try:
            await self._run_worker(worker_id, stop_requested)
        except Exception:
            # Only reachable when handle_error itself raised; the worker is not restarted.
            self._logger.exception("worker_crashed", worker_id=worker_id)

    async def _run_worker(self, worker_id: int, stop_requested: asyncio.Event) -> None:
        log = self._logger.bind(worker_id=worker_id)
        log.info("worker_started")

        while not stop_requested.is_set():
            task: T | None = None

            try:
                task = await self._claim(worker_id)

                if task is None:
                    await self._sleep(self.config.idle_delay, stop_requested)
                    continue

                await self._process(task, worker_id)
            except Exception as error:
                log.error(
                    "worker_task_failed",
                    error=str(error),
                    error_type=type(error).__name__,
                    claimed=task is not None,
                )
                await self._handle_error(task, error, worker_id)
                await self._sleep(self.config.error_delay, stop_requested)

        log.info("worker_stopped")

    @staticmethod
    async def _sleep(delay: float, stop_requested: asyncio.Event) -> None:
        # Returns early once stop is requested; the flag is still checked only at the loop top.
        try:
            await asyncio.wait_for(stop_requested.wait(), timeout=delay)
        except TimeoutError:
            pass
