"""
Run scheduler — owns the asyncio task behind every staged run.

One task per (job_id, run_seq). Tasks for different jobs are fully
independent; inside a task the stages run strictly one after another, each
waiting on `sleep_units()` for its offset.

Cancellation is cooperative: a run is never killed when it is superseded, its
next write simply matches no row (see JobStore.update_job) and the task exits.
`stop()` is the only place tasks are cancelled, on process shutdown.

The sleep function is injectable so tests can drive time by hand.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from config.settings import settings

logger = logging.getLogger(__name__)

RunKey = tuple[str, int]
SleepFn = Callable[[float], Awaitable[None]]


class RunScheduler:

    def __init__(self, sleep: SleepFn = asyncio.sleep, time_unit: float | None = None):
        self._sleep = sleep
        self._time_unit = settings.PIPELINE_TIME_UNIT_SECONDS if time_unit is None else time_unit
        self._tasks: dict[RunKey, asyncio.Task] = {}

    @property
    def time_unit(self) -> float:
        return self._time_unit

    def start(self) -> None:
        logger.info(f"Run scheduler started (time unit {self._time_unit}s)")

    async def stop(self) -> None:
        """Cancel every pending run and wait for the tasks to unwind."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info(f"Run scheduler stopped ({len(tasks)} runs cancelled)")

    def schedule(self, key: RunKey, run: Callable[[], Awaitable[None]]) -> asyncio.Task:
        """Start `run()` as the task for `key`. A key is only ever scheduled once."""
        if key in self._tasks:
            return self._tasks[key]
        task = asyncio.get_running_loop().create_task(run(), name=f"export-run:{key[0]}:{key[1]}")
        self._tasks[key] = task
        task.add_done_callback(lambda t, k=key: self._on_run_done(k, t))
        return task

    async def sleep_units(self, units: float) -> None:
        if units > 0:
            await self._sleep(units * self._time_unit)

    def pending(self) -> list[asyncio.Task]:
        return [task for task in self._tasks.values() if not task.done()]

    def pending_count(self) -> int:
        return len(self.pending())

    async def drain(self) -> None:
        """Wait until every scheduled run has finished, including runs scheduled while waiting."""
        while tasks := self.pending():
            await asyncio.gather(*tasks, return_exceptions=True)

    def _on_run_done(self, key: RunKey, task: asyncio.Task) -> None:
        """
        Runs handle their own errors; anything reaching here escaped a stage
        and is only logged so the event loop never sees an unretrieved exception.
        """
        self._tasks.pop(key, None)
        if task.cancelled():
            return
        exc = task.exception()
        if exc:
            logger.error(f"Unhandled error in export run {key[0]} (run {key[1]}): {exc}", exc_info=exc)
