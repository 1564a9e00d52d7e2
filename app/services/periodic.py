"""
Periodic background jobs running inside the API event loop
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicJob:
    """Await ``func`` every ``interval_seconds`` until stopped."""

    def __init__(
        self,
        name: str,
        func: Callable[[], Awaitable[object]],
        interval_seconds: float,
        run_immediately: bool = True,
    ):
        self.name = name
        self.func = func
        self.interval_seconds = interval_seconds
        self.run_immediately = run_immediately
        self.last_run_at: Optional[datetime] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """Schedule the loop on the running event loop. Returns False if already running."""
        if self.is_running:
            logger.info(f"⏭️ {self.name} already running")
            return False
        self._task = asyncio.create_task(self._run(), name=self.name)
        logger.info(f"🚀 {self.name} started (every {self.interval_seconds}s)")
        return True

    async def stop(self) -> None:
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(f"🛑 {self.name} stopped")

    async def run_once(self) -> None:
        try:
            await self.func()
        except Exception as e:
            logger.error(f"❌ {self.name} iteration failed: {e}")
        finally:
            self.last_run_at = datetime.utcnow()

    async def _run(self) -> None:
        if not self.run_immediately:
            await asyncio.sleep(self.interval_seconds)
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval_seconds)
