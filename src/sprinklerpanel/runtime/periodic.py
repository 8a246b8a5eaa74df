"""Cancellable periodic task bound to the running event loop."""

from __future__ import annotations

import asyncio
from contextlib import suppress
from typing import Awaitable, Callable, Optional

from ..logger import get_logger

logger = get_logger(__name__)


class PeriodicTask:
    """Run ``callback`` every ``interval`` seconds until stopped.

    The first run happens one interval after :meth:`start`. A failing run is
    logged and the cadence continues.
    """

    def __init__(self, callback: Callable[[], Awaitable[object]], name: str):
        self._callback = callback
        self._name = name
        self._task: Optional[asyncio.Task] = None
        self._interval = 0.0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def interval(self) -> float:
        return self._interval

    def start(self, interval: float) -> None:
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")
        if self.running:
            logger.debug("Periodic task '%s' already running", self._name)
            return
        self._interval = interval
        self._task = asyncio.get_running_loop().create_task(self._loop(), name=self._name)
        logger.debug("Periodic task '%s' started (every %.2fs)", self._name, interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
        logger.debug("Periodic task '%s' stopped", self._name)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._callback()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Periodic task '%s' run failed", self._name)
