"""Tests for the deferred work supervisor."""

import asyncio

import pytest

from memory_gateway.services.background import DeferredWorkSupervisor


class TestDeferredWorkSupervisor:
    @pytest.mark.asyncio
    async def test_submitted_work_runs_and_is_released(self):
        supervisor = DeferredWorkSupervisor()
        done = asyncio.Event()

        async def work(flag):
            flag.set()

        task = supervisor.submit(work, done, name="set-flag")
        assert supervisor.pending == 1

        await task
        assert done.is_set()
        assert supervisor.pending == 0
        assert task.get_name() == "set-flag"

    @pytest.mark.asyncio
    async def test_failure_is_contained(self):
        supervisor = DeferredWorkSupervisor()

        async def boom():
            raise RuntimeError("deferred failure")

        task = supervisor.submit(boom)
        await asyncio.gather(task, return_exceptions=True)
        await asyncio.sleep(0)

        assert supervisor.pending == 0
        assert isinstance(task.exception(), RuntimeError)

    @pytest.mark.asyncio
    async def test_drain_waits_for_outstanding_work(self):
        supervisor = DeferredWorkSupervisor()
        finished = []

        async def slow():
            await asyncio.sleep(0.01)
            finished.append(True)

        supervisor.submit(slow)
        supervisor.submit(slow)

        await supervisor.drain(timeout=1.0)

        assert finished == [True, True]
        assert supervisor.pending == 0

    @pytest.mark.asyncio
    async def test_drain_cancels_stragglers_after_timeout(self):
        supervisor = DeferredWorkSupervisor()

        async def forever():
            await asyncio.sleep(3600)

        task = supervisor.submit(forever)

        await supervisor.drain(timeout=0.01)

        assert task.cancelled()

    @pytest.mark.asyncio
    async def test_rejects_work_after_drain(self):
        supervisor = DeferredWorkSupervisor()
        await supervisor.drain(timeout=0.1)

        async def work():
            return None

        coroutine_factory_called = []

        def factory():
            coroutine_factory_called.append(True)
            return work()

        assert supervisor.submit(factory) is None
        assert coroutine_factory_called == []
