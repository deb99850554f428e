"""Tests for the background task scheduler."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.services.scheduler import TaskScheduler


class TestSpawn:
    @pytest.mark.asyncio
    async def test_spawned_task_runs(self, scheduler):
        send = AsyncMock()

        scheduler.spawn(send("user-1", "Hallo"))
        assert scheduler.pending_count == 1
        await scheduler.drain()

        send.assert_awaited_once_with("user-1", "Hallo")
        assert scheduler.pending_count == 0

    @pytest.mark.asyncio
    async def test_failing_task_is_logged(self, scheduler, mock_logfire):
        async def explode():
            raise RuntimeError("boom")

        scheduler.spawn(explode())
        await scheduler.drain()

        mock_logfire.error.assert_called_once()
        kwargs = mock_logfire.error.call_args.kwargs
        assert kwargs["error"] == "boom"
        assert kwargs["error_type"] == "RuntimeError"


class TestCallLater:
    @pytest.mark.asyncio
    async def test_waits_for_delay_then_calls(self, scheduler, fake_sleep):
        send = AsyncMock()

        scheduler.call_later(4, send, "user-1", "Later")
        await scheduler.drain()

        assert fake_sleep.delays == [4]
        send.assert_awaited_once_with("user-1", "Later")

    @pytest.mark.asyncio
    async def test_delays_are_independent(self, scheduler, fake_sleep):
        send = AsyncMock()

        scheduler.call_later(3, send, "a")
        scheduler.call_later(5, send, "b")
        await scheduler.drain()

        assert sorted(fake_sleep.delays) == [3, 5]
        assert send.await_count == 2


class TestDrain:
    @pytest.mark.asyncio
    async def test_waits_for_tasks_spawned_while_draining(self, scheduler):
        send = AsyncMock()

        async def first():
            scheduler.call_later(5, send, "nested")

        scheduler.spawn(first())
        done, pending = await scheduler.drain()

        send.assert_awaited_once_with("nested")
        assert len(done) == 2
        assert pending == set()

    @pytest.mark.asyncio
    async def test_empty_scheduler_returns_immediately(self, scheduler):
        done, pending = await scheduler.drain(timeout=0.1)

        assert done == set()
        assert pending == set()

    @pytest.mark.asyncio
    async def test_timeout_returns_pending_tasks(self):
        scheduler = TaskScheduler()
        scheduler.spawn(asyncio.sleep(10))

        done, pending = await scheduler.drain(timeout=0.01)

        assert done == set()
        assert len(pending) == 1
        await scheduler.shutdown(timeout=0)


class TestShutdown:
    @pytest.mark.asyncio
    async def test_completes_when_tasks_finish(self, scheduler, mock_logfire):
        scheduler.spawn(AsyncMock()())

        await scheduler.shutdown(timeout=1)

        mock_logfire.warn.assert_not_called()
        assert scheduler.pending_count == 0

    @pytest.mark.asyncio
    async def test_counts_tasks_spawned_during_shutdown(self, scheduler, mock_logfire):
        send = AsyncMock()

        async def first():
            scheduler.spawn(send("een"))
            scheduler.call_later(4, send, "twee")

        scheduler.spawn(first())
        await scheduler.shutdown(timeout=1)

        assert send.await_count == 2
        assert mock_logfire.info.call_args.kwargs["completed_count"] == 3

    @pytest.mark.asyncio
    async def test_cancels_tasks_after_timeout(self, mock_logfire):
        scheduler = TaskScheduler()
        scheduler.call_later(60, AsyncMock())

        await scheduler.shutdown(timeout=0.01)

        mock_logfire.warn.assert_called_once()
        assert mock_logfire.warn.call_args.kwargs["cancelled_count"] == 1
        assert scheduler.pending_count == 0
