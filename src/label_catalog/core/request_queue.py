"""Rate-limited request queue for upstream catalog calls.

All outbound calls go through one queue drained by a single worker, so at
most one upstream request is in flight at any time. The worker counts calls
in a rolling window that resets wholesale, sleeps when the window is full,
and re-submits throttled tasks at the back of the queue.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, Dict, Optional

from ..domain.result import Result, as_result_async
from ..exceptions import TransportError

logger = logging.getLogger(__name__)

Operation = Callable[[], Awaitable[Any]]


@dataclass
class QueuedTask:
    """An operation waiting for the worker, and the future its caller awaits."""
    operation: Operation
    future: asyncio.Future
    enqueued_at: float
    attempts: int = field(default=0)


class RequestQueue:
    """Single-flight FIFO queue enforcing a per-window call cap."""

    def __init__(
        self,
        max_calls_per_window: int = 100,
        window_seconds: float = 30.0,
        inter_task_delay: float = 0.05,
        max_retries: int = 3,
        task_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize the queue.

        Args:
            max_calls_per_window: Calls allowed before the worker waits
            window_seconds: Length of the rolling window
            inter_task_delay: Pause between successive calls
            max_retries: Re-submissions allowed after rate-limit responses
            task_timeout: Optional per-call timeout in seconds
            clock: Monotonic time source, injectable for tests
            sleep: Coroutine used for every wait, injectable for tests
        """
        if max_calls_per_window < 1:
            raise ValueError("max_calls_per_window must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.max_calls_per_window = max_calls_per_window
        self.window_seconds = window_seconds
        self.inter_task_delay = inter_task_delay
        self.max_retries = max_retries
        self.task_timeout = task_timeout
        self._clock = clock
        self._sleep = sleep

        self._pending: Deque[QueuedTask] = deque()
        self._worker: Optional[asyncio.Task] = None
        self._current: Optional[QueuedTask] = None
        self._calls_in_window = 0
        self._window_start = clock()
        self._stats = {
            'executed': 0,
            'rate_limited': 0,
            'failed': 0,
        }

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def calls_in_window(self) -> int:
        return self._calls_in_window

    async def enqueue(self, operation: Operation) -> Any:
        """Submit an operation and wait for its own result.

        Raises whatever the operation raised, or ``TransportError`` once
        rate-limit retries are exhausted.
        """
        loop = asyncio.get_running_loop()
        task = QueuedTask(
            operation=operation,
            future=loop.create_future(),
            enqueued_at=self._clock(),
        )
        self._pending.append(task)
        self._ensure_worker()
        return await task.future

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        """Worker loop: run pending tasks one at a time."""
        while self._pending:
            task = self._pending.popleft()
            if task.future.done():
                # Caller stopped waiting.
                continue

            self._current = task
            await self._wait_for_window()
            self._calls_in_window += 1
            task.attempts += 1

            outcome = await self._execute(task)
            if outcome.is_rate_limited():
                await self._handle_rate_limited(task, outcome)
            elif task.future.done():
                pass
            elif outcome.is_success():
                self._stats['executed'] += 1
                task.future.set_result(outcome.value())
            else:
                self._stats['failed'] += 1
                task.future.set_exception(outcome.error())
            self._current = None

            if self._pending and self.inter_task_delay > 0:
                await self._sleep(self.inter_task_delay)

    async def _wait_for_window(self) -> None:
        now = self._clock()
        if now - self._window_start >= self.window_seconds:
            self._reset_window(now)

        if self._calls_in_window >= self.max_calls_per_window:
            wait = self._window_start + self.window_seconds - now
            if wait > 0:
                logger.debug(
                    f"Rate window full ({self._calls_in_window} calls), waiting {wait:.2f}s"
                )
                await self._sleep(wait)
            self._reset_window(self._clock())

    def _reset_window(self, now: float) -> None:
        self._window_start = now
        self._calls_in_window = 0

    async def _execute(self, task: QueuedTask) -> Result[Any, Exception]:
        run = as_result_async(self._run_operation)
        return await run(task.operation)

    async def _run_operation(self, operation: Operation) -> Any:
        if self.task_timeout is None:
            return await operation()
        try:
            return await asyncio.wait_for(operation(), timeout=self.task_timeout)
        except asyncio.TimeoutError:
            raise TransportError(f"Catalog request timed out after {self.task_timeout}s")

    async def _handle_rate_limited(self, task: QueuedTask, outcome: Result) -> None:
        self._stats['rate_limited'] += 1
        retries = task.attempts - 1
        if retries >= self.max_retries:
            logger.error(f"Catalog rate limit persisted after {retries} retries, giving up")
            if not task.future.done():
                self._stats['failed'] += 1
                task.future.set_exception(TransportError(
                    f"Rate limit retries exhausted after {retries} attempts", status=429
                ))
            return

        wait = max(self.window_seconds, outcome.retry_after or 0)
        logger.warning(
            f"Catalog rate limited, retrying in {wait:.1f}s "
            f"(retry {retries + 1}/{self.max_retries})"
        )
        await self._sleep(wait)
        self._reset_window(self._clock())
        self._pending.append(task)

    def get_stats(self) -> Dict[str, Any]:
        """Get queue statistics."""
        return {
            **self._stats,
            'pending': len(self._pending),
            'calls_in_window': self._calls_in_window,
        }

    async def close(self) -> None:
        """Stop the worker and fail anything still waiting."""
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None

        if self._current is not None and not self._current.future.done():
            self._current.future.set_exception(TransportError("Request queue closed"))
        self._current = None

        while self._pending:
            task = self._pending.popleft()
            if not task.future.done():
                task.future.set_exception(TransportError("Request queue closed"))
