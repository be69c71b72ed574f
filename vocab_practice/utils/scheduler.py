# vocab_practice/utils/scheduler.py
"""
Small asyncio helpers for the two kinds of background work the client does:
recurring callbacks (timer tick, cleanup sweep) and detached fire-and-forget
coroutines (remote saves, mistake delivery).
"""
import asyncio
import time
from typing import Any, Callable, Coroutine, Optional, Set

from vocab_practice.utils.logger import logger

# Strong references so detached tasks are not garbage collected mid-flight.
_background_tasks: Set[asyncio.Task] = set()


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def has_running_loop() -> bool:
    try:
        asyncio.get_running_loop()
        return True
    except RuntimeError:
        return False


def _log_task_outcome(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Background task '{task.get_name()}' failed: {exc!r}")


def spawn(coro: Coroutine[Any, Any, Any], name: str) -> Optional[asyncio.Task]:
    """Schedules `coro` as a detached task whose outcome is only logged."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.warning(f"No running event loop; dropping background task '{name}'.")
        coro.close()
        return None
    task = loop.create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_log_task_outcome)
    return task


class RecurringTask:
    """Calls `callback` every `interval` seconds until cancelled."""

    def __init__(self, callback: Callable[[], Any], interval: float, name: str, run_immediately: bool = False):
        self.callback = callback
        self.interval = interval
        self.name = name
        self.run_immediately = run_immediately
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """Starts the loop on the running event loop. Returns False if none is running."""
        if self.is_running:
            return True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop; recurring task '{self.name}' not started.")
            return False
        self._task = loop.create_task(self._run(), name=self.name)
        return True

    async def _run(self) -> None:
        if self.run_immediately:
            self._invoke()
        while True:
            await asyncio.sleep(self.interval)
            self._invoke()

    def _invoke(self) -> None:
        try:
            self.callback()
        except Exception as e:
            logger.exception(f"Recurring task '{self.name}' callback failed: {e}")

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
