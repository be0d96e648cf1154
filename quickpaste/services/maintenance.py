"""Periodic background jobs (expired-paste sweep, rate limit cleanup).

Each job runs on its own timer, independent of request handling. A failing
run is logged and the job keeps its schedule.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run an async callable every ``interval_seconds`` until stopped."""

    def __init__(
        self,
        name: str,
        func: Callable[[], Awaitable[object]],
        *,
        interval_seconds: float,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")

        self.name = name
        self._func = func
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None
        self.runs = 0
        self.failures = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=f"periodic:{self.name}")
        logger.info("maintenance.started", extra={"job": self.name, "interval_s": self._interval})

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("maintenance.stopped", extra={"job": self.name, "runs": self.runs})

    async def run_once(self) -> object:
        """Execute the job a single time, recording the outcome."""
        try:
            result = await self._func()
        except Exception as exc:
            self.failures += 1
            logger.exception(
                "maintenance.run_failed",
                extra={"job": self.name, "error_type": type(exc).__name__},
            )
            return None
        self.runs += 1
        return result

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.run_once()
