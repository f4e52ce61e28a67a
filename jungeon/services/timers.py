from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List


logger = logging.getLogger(__name__)

TimerCallback = Callable[..., Awaitable[Any]]


class TimerRegistry:
    """Keyed background tasks: one-shot delays and fixed intervals.

    Scheduling a key that is already armed replaces the old task. A callback
    that raises is logged and, for intervals, the schedule keeps running.
    """

    def __init__(self) -> None:
        self._tasks: Dict[str, asyncio.Task] = {}

    def call_later(self, key: str, delay: float, callback: TimerCallback, *args: Any) -> asyncio.Task:
        self.cancel(key)
        task = asyncio.get_running_loop().create_task(self._run_once(key, delay, callback, args))
        self._tasks[key] = task
        return task

    def call_every(self, key: str, interval: float, callback: TimerCallback, *args: Any) -> asyncio.Task:
        self.cancel(key)
        task = asyncio.get_running_loop().create_task(self._run_every(key, interval, callback, args))
        self._tasks[key] = task
        return task

    def cancel(self, key: str) -> bool:
        task = self._tasks.pop(key, None)
        if task is None:
            return False
        if task is not asyncio.current_task():
            task.cancel()
        return True

    def is_active(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    def keys(self, prefix: str = "") -> List[str]:
        return [key for key in self._tasks if key.startswith(prefix)]

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _run_once(self, key: str, delay: float, callback: TimerCallback, args: tuple) -> None:
        await asyncio.sleep(delay)
        if self._tasks.get(key) is asyncio.current_task():
            del self._tasks[key]
        await self._invoke(key, callback, args)

    async def _run_every(self, key: str, interval: float, callback: TimerCallback, args: tuple) -> None:
        while True:
            await asyncio.sleep(interval)
            await self._invoke(key, callback, args)

    @staticmethod
    async def _invoke(key: str, callback: TimerCallback, args: tuple) -> None:
        try:
            await callback(*args)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Timer %s failed", key)
