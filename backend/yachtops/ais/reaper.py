"""Periodic closing of an idle feed connection."""

import asyncio
import logging
from typing import Optional

from yachtops.ais.connection import FeedConnectionManager

logger = logging.getLogger(__name__)


class IdleReaper:
    """Closes the feed connection when no query has touched it recently."""

    def __init__(
        self,
        connection: FeedConnectionManager,
        idle_timeout: float = 300.0,
        interval: float = 60.0,
    ):
        self.connection = connection
        self.idle_timeout = idle_timeout
        self.interval = interval
        self._task: Optional[asyncio.Task] = None
        self._idle_closes = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def idle_closes(self) -> int:
        return self._idle_closes

    async def tick(self) -> bool:
        """Run one idle check.

        Returns:
            True if the connection was closed
        """
        idle = self.connection.idle_seconds
        if idle <= self.idle_timeout or not self.connection.is_open:
            return False

        logger.info(f"AIS feed idle for {idle:.0f}s, closing connection")
        closed = await self.connection.force_close()
        if closed:
            self._idle_closes += 1
        return closed

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.tick()
            except Exception as e:
                logger.error(f"Idle reaper check failed: {e}")

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop())
        logger.info(
            f"Idle reaper started (timeout {self.idle_timeout:.0f}s, "
            f"every {self.interval:.0f}s)"
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Idle reaper stopped")
