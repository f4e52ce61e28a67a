from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from ..errors import PersistenceWriteError
from ..world.repository import WorldRepository


logger = logging.getLogger(__name__)


class PersistenceWorker:
    """Background task that writes save payloads without blocking the game loop."""

    def __init__(self, repository: WorldRepository) -> None:
        self.repository = repository
        self._queue: asyncio.Queue[Dict[str, Any]] = asyncio.Queue()
        self._task: Optional[asyncio.Task[None]] = None
        self.saves = 0
        self.failures = 0

    def schedule_save(self, payload: Dict[str, Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Called outside the event loop (e.g., during startup); write synchronously.
            self._write(payload)
            return

        self._queue.put_nowait(payload)
        if not self._task or self._task.done():
            self._task = loop.create_task(self._drain_queue())

    async def flush(self) -> None:
        if self._task and not self._task.done():
            await self._task

    async def _drain_queue(self) -> None:
        while not self._queue.empty():
            payload = await self._queue.get()
            # only the newest snapshot matters
            while not self._queue.empty():
                self._queue.task_done()
                payload = self._queue.get_nowait()
            try:
                await asyncio.to_thread(self._write, payload)
            finally:
                self._queue.task_done()

    def _write(self, payload: Dict[str, Any]) -> None:
        try:
            self.repository.write_save(payload)
        except PersistenceWriteError as exc:
            self.failures += 1
            logger.error("Error saving game state: %s", exc)
            return
        self.saves += 1
        logger.debug("Game state saved to %s", self.repository.save_file)
