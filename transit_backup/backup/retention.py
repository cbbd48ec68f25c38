"""Periodic deletion of expired backups."""

import asyncio
from typing import Optional

from .._utils import logger
from .store import SnapshotStore


class RetentionSweeper:
    """Calls ``SnapshotStore.sweep_expired`` on a fixed interval.

    A failed sweep is logged and retried at the next tick; there is no backoff.
    """

    def __init__(self, store: SnapshotStore, interval_seconds: float = 86400.0, run_immediately: bool = True):
        self.store = store
        self.interval_seconds = interval_seconds
        self.run_immediately = run_immediately
        self._task: Optional[asyncio.Task] = None
        self._stopped = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> int:
        try:
            return await self.store.sweep_expired()
        except Exception as e:
            logger.error(f"Retention sweep failed: {e}")
            return 0

    async def _loop(self) -> None:
        if self.run_immediately:
            await self.run_once()
        while not self._stopped.is_set():
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                await self.run_once()

    def start(self) -> None:
        if self.running:
            return
        self._stopped.clear()
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Retention sweeper started (every {self.interval_seconds:.0f}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stopped.set()
        try:
            await self._task
        finally:
            self._task = None
        logger.info("Retention sweeper stopped")
