"""
Periodic sweep of expired cache entries.

Runs as an asyncio task on the application's event loop, so sweeps never
interleave with synchronous cache access.

Classes:
    CacheCleanup: Starts, stops and reports on the sweep task

Features:
    - Configurable sweep interval
    - Manual sweep on demand
    - Clean cancellation on shutdown
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Any

from ..utils.logging_config import get_logger

logger = get_logger()


class CacheCleanup:
    """
    Manages the background sweep task.

    The task sleeps for ``cleanup_interval`` seconds, calls
    ``cleanup_callback`` and repeats until stopped.
    """

    def __init__(
        self,
        cleanup_callback: Callable[[], int],
        cleanup_interval: float = 300,  # 5 minutes
    ):
        """
        Args:
            cleanup_callback: Sweep function returning the number of entries removed
            cleanup_interval: Seconds between sweeps
        """
        self.cleanup_callback = cleanup_callback
        self.cleanup_interval = cleanup_interval
        self._task: asyncio.Task[None] | None = None

    def start(self) -> None:
        """
        Start the sweep task on the running event loop.

        Raises:
            RuntimeError: If called outside a running event loop
        """
        if self.is_running():
            logger.warning("Cleanup task is already running")
            return

        self._task = asyncio.get_running_loop().create_task(
            self._cleanup_worker(), name="CacheCleanup"
        )
        logger.info("Cache cleanup task started")

    async def stop(self) -> None:
        """Cancel the sweep task and wait for it to finish."""
        task, self._task = self._task, None
        if task is None or task.done():
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Cache cleanup task stopped")

    async def _cleanup_worker(self) -> None:
        logger.debug(f"Cleanup worker started with interval {self.cleanup_interval}s")
        while True:
            await asyncio.sleep(self.cleanup_interval)
            try:
                start_time = time.perf_counter()
                removed_count = self.cleanup_callback()
                elapsed = time.perf_counter() - start_time

                if removed_count > 0:
                    logger.debug(f"Cleanup removed {removed_count} entries in {elapsed:.3f}s")
            except Exception as e:
                logger.error(f"Scheduled cache sweep failed: {e}")

    def manual_cleanup(self) -> int:
        """
        Perform a sweep now.

        Returns:
            Entries removed; 0 if the sweep failed
        """
        try:
            return self.cleanup_callback()
        except Exception as e:
            logger.error(f"Manual cache sweep failed: {e}")
            return 0

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def get_status(self) -> dict[str, Any]:
        return {
            "cleanup_interval": self.cleanup_interval,
            "task_running": self.is_running(),
        }
