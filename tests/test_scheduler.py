# tests/test_scheduler.py
import asyncio

import pytest

from conftest import wait_for
from vocab_practice.utils.scheduler import RecurringTask, spawn


@pytest.mark.scheduler
def test_recurring_task_requires_event_loop():
    task = RecurringTask(lambda: None, 0.01, name="idle")
    assert task.start() is False
    assert task.is_running is False


@pytest.mark.scheduler
def test_recurring_task_runs_until_cancelled():
    calls = []

    async def scenario():
        task = RecurringTask(lambda: calls.append(1), 0.001, name="counter")
        assert task.start() is True
        assert await wait_for(lambda: len(calls) >= 3)
        task.cancel()
        seen = len(calls)
        await asyncio.sleep(0.02)
        return seen

    seen = asyncio.run(scenario())
    assert len(calls) == seen


@pytest.mark.scheduler
def test_recurring_task_survives_callback_errors():
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("first call fails")

    async def scenario():
        task = RecurringTask(flaky, 0.001, name="flaky", run_immediately=True)
        task.start()
        assert await wait_for(lambda: len(calls) >= 2)
        task.cancel()

    asyncio.run(scenario())


@pytest.mark.scheduler
def test_spawn_without_loop_drops_coroutine():
    async def work():
        return 1

    assert spawn(work(), name="orphan") is None


@pytest.mark.scheduler
def test_spawn_runs_detached():
    done = []

    async def work():
        done.append(True)

    async def scenario():
        task = spawn(work(), name="detached")
        await task

    asyncio.run(scenario())
    assert done == [True]
