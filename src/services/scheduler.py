"""Fire-and-forget task scheduling for sends, searches and delayed replies.

Tasks are spawned on the running event loop and never handed back to the
caller: nothing can await or cancel them while the app runs. The scheduler
only keeps a reference so tasks aren't garbage collected mid-flight and so
the application lifespan can drain them on shutdown.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Coroutine

import logfire

SleepFunc = Callable[[float], Awaitable[Any]]


class TaskScheduler:
    """Track background tasks spawned while handling webhook events.

    Example:
        >>> scheduler = TaskScheduler()
        >>> scheduler.spawn(client.send_text("user-1", "Hello"))
        >>> scheduler.call_later(4, client.send_text, "user-1", "Later")
    """

    def __init__(self, sleep: SleepFunc = asyncio.sleep):
        """Initialize the scheduler.

        Args:
            sleep: Coroutine function used to wait before delayed calls.
                   Tests inject a fake to skip real waiting.
        """
        self._sleep = sleep
        self._tasks: set[asyncio.Task] = set()
        # One set per running drain, filled as tasks finish
        self._collectors: list[set[asyncio.Task]] = []

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        """Run ``coro`` as a background task on the current loop."""
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def call_later(
        self,
        delay: float,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
    ) -> None:
        """Await ``func(*args)`` after ``delay`` seconds, in the background."""
        self.spawn(self._run_later(delay, func, *args))

    async def _run_later(
        self,
        delay: float,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
    ) -> None:
        await self._sleep(delay)
        await func(*args)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        for collector in self._collectors:
            collector.add(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logfire.error(
                "Background task failed",
                error=str(exc),
                error_type=type(exc).__name__,
            )

    async def drain(
        self, timeout: float | None = None
    ) -> tuple[set[asyncio.Task], set[asyncio.Task]]:
        """
        Wait until no tasks are left, including tasks spawned meanwhile.

        Args:
            timeout: Overall time budget in seconds, or None to wait forever

        Returns:
            Tuple of (completed, still pending) tasks
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        completed: set[asyncio.Task] = set()
        self._collectors.append(completed)

        try:
            while self._tasks:
                remaining = None if deadline is None else max(deadline - loop.time(), 0)
                done, pending = await asyncio.wait(set(self._tasks), timeout=remaining)
                completed |= done
                if pending and remaining is not None and loop.time() >= deadline:
                    return set(completed), pending
        finally:
            self._collectors = [c for c in self._collectors if c is not completed]

        return set(completed), set()

    async def shutdown(self, timeout: float) -> None:
        """Drain tasks for up to ``timeout`` seconds, then cancel the rest."""
        logfire.info("Waiting for pending background tasks", task_count=len(self._tasks))
        done, pending = await self.drain(timeout)

        if pending:
            logfire.warn(
                "Cancelling remaining tasks after timeout",
                completed_count=len(done),
                cancelled_count=len(pending),
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        else:
            logfire.info(
                "All background tasks completed successfully",
                completed_count=len(done),
            )
