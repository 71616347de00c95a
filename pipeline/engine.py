"""
Export pipeline — the state machine that drives one run of an export job.

A run is a fixed staged sequence, offsets in time units from the start of the
run (one unit = PIPELINE_TIME_UNIT_SECONDS):

    +0   queued, waiting (skipped for recovered jobs)
    +5   → processing   10%
    +7                  30%
    +9                  60%  (35% if the run drew the fault flag)
    +11                 85%  → "progress" event   |  → failed at 35% + "failed" event + email
    +13  → completed   100%  → "completed" event + email

         submit / retry                       recovery
              │                                   │
              ▼                                   ▼
         ┌─────────┐  +5   ┌────────────┐  ticks  ┌───────────┐
         │ queued  │──────>│ processing │────────>│ completed │
         └─────────┘       └────────────┘    │    └───────────┘
              ▲                              │    ┌───────────┐
              └────────── retry ─────────────┴───>│  failed   │
                                                  └───────────┘

Every stage is a conditional write guarded by the run's run_seq. When a retry
or recovery bumps run_seq, the old run's next write matches nothing and the
old run ends quietly, so a superseded run can never overwrite a newer one.

A stage whose write raises (database down, connection reset, ...) is logged
and the run is abandoned. The job stays in its last state; if that state is
processing, stuck-job recovery picks it up later.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from models.enums import JobStatus
from models.job import ExportJob
from notifications.fanout import NotificationFanout
from pipeline.faults import FaultPolicy
from pipeline.runner import RunScheduler
from store.jobs import JobStore

logger = logging.getLogger(__name__)

QUEUE_DELAY_UNITS = 5
TICK_INTERVAL_UNITS = 2

PROGRESS_STARTED = 10
PROGRESS_EARLY = 30
PROGRESS_FAULT = 35
PROGRESS_MIDWAY = 60
PROGRESS_FINALIZING = 85
PROGRESS_DONE = 100

CAPACITY_EXCEEDED_MESSAGE = (
    "Memory limit exceeded while processing large dataset. "
    "Consider reducing date range or splitting into smaller exports."
)

# Rough output size used for the file_size label
MB_PER_ROW = 0.0003


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def rows_at(total_rows: int, percent: int) -> int:
    """⌊total × percent / 100⌋ without float rounding surprises."""
    return (max(total_rows, 0) * percent) // 100


def file_size_label(total_rows: int) -> str:
    return f"{total_rows * MB_PER_ROW:.1f} MB"


def download_url_for(job_id: str) -> str:
    return f"/api/downloads/{job_id}"


class ExportPipeline:

    def __init__(
        self,
        store: JobStore,
        fanout: NotificationFanout,
        scheduler: RunScheduler,
        fault_policy: FaultPolicy,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._fanout = fanout
        self._scheduler = scheduler
        self._fault_policy = fault_policy
        self._clock = clock

    @property
    def scheduler(self) -> RunScheduler:
        return self._scheduler

    def start_run(
        self,
        job_id: str,
        total_rows: int,
        run_seq: int,
        *,
        skip_queue_delay: bool = False,
    ) -> asyncio.Task:
        """
        Schedule a run for a job that is already persisted as queued under `run_seq`.

        The fault flag is drawn here, once per run.
        """
        will_fail = self._fault_policy.should_fail(job_id)
        logger.info(
            f"Job {job_id} run {run_seq} scheduled "
            f"({total_rows} rows, skip_queue_delay={skip_queue_delay})"
        )
        return self._scheduler.schedule(
            (job_id, run_seq),
            lambda: self._run(job_id, total_rows, run_seq, will_fail, skip_queue_delay),
        )

    async def _run(
        self,
        job_id: str,
        total_rows: int,
        run_seq: int,
        will_fail: bool,
        skip_queue_delay: bool,
    ) -> None:
        if not skip_queue_delay:
            await self._scheduler.sleep_units(QUEUE_DELAY_UNITS)

        # ── queued → processing ─────────────────────────────────
        if not await self._stage(job_id, run_seq, "start", {
            "status": JobStatus.PROCESSING.value,
            "started_at": self._clock(),
            "progress": PROGRESS_STARTED,
            "processed_rows": rows_at(total_rows, PROGRESS_STARTED),
            "error_message": None,
        }, expected_status=JobStatus.QUEUED):
            return
        logger.info(f"Job {job_id} run {run_seq} processing")

        # ── tick 1 ──────────────────────────────────────────────
        await self._scheduler.sleep_units(TICK_INTERVAL_UNITS)
        if not await self._progress(job_id, run_seq, total_rows, PROGRESS_EARLY):
            return

        # ── tick 2: the fault flag picks the branch ─────────────
        await self._scheduler.sleep_units(TICK_INTERVAL_UNITS)
        if not await self._progress(job_id, run_seq, total_rows, PROGRESS_FAULT if will_fail else PROGRESS_MIDWAY):
            return

        # ── tick 3 ──────────────────────────────────────────────
        await self._scheduler.sleep_units(TICK_INTERVAL_UNITS)
        if will_fail:
            failed = {
                "status": JobStatus.FAILED.value,
                "progress": PROGRESS_FAULT,
                "processed_rows": rows_at(total_rows, PROGRESS_FAULT),
                "completed_at": self._clock(),
                "error_message": CAPACITY_EXCEEDED_MESSAGE,
            }
            if await self._stage(job_id, run_seq, "fail", failed, expected_status=JobStatus.PROCESSING):
                logger.warning(f"Job {job_id} run {run_seq} failed: capacity exceeded")
                await self._notify_terminal(job_id, run_seq, failed)
            return

        if not await self._progress(job_id, run_seq, total_rows, PROGRESS_FINALIZING):
            return
        await self._fanout.job_progress(job_id, PROGRESS_FINALIZING)

        # ── tick 4 ──────────────────────────────────────────────
        await self._scheduler.sleep_units(TICK_INTERVAL_UNITS)
        completed = {
            "status": JobStatus.COMPLETED.value,
            "progress": PROGRESS_DONE,
            "processed_rows": max(total_rows, 0),
            "completed_at": self._clock(),
            "file_size": file_size_label(total_rows),
            "download_url": download_url_for(job_id),
        }
        if await self._stage(job_id, run_seq, "complete", completed, expected_status=JobStatus.PROCESSING):
            logger.info(f"Job {job_id} run {run_seq} completed")
            await self._notify_terminal(job_id, run_seq, completed)

    async def _progress(self, job_id: str, run_seq: int, total_rows: int, percent: int) -> bool:
        return await self._stage(job_id, run_seq, f"{percent}%", {
            "progress": percent,
            "processed_rows": rows_at(total_rows, percent),
        }, expected_status=JobStatus.PROCESSING)

    async def _stage(
        self,
        job_id: str,
        run_seq: int,
        label: str,
        values: dict[str, Any],
        expected_status: Optional[JobStatus] = None,
    ) -> bool:
        """Apply one stage. False means: stop this run (superseded or persistence error)."""
        try:
            applied = await self._store.update_job(
                job_id, values, run_seq=run_seq, expected_status=expected_status
            )
        except Exception as e:
            logger.error(
                f"Job {job_id} run {run_seq}: persistence failed at stage '{label}', "
                f"abandoning run: {e}",
                exc_info=True,
            )
            return False
        if not applied:
            logger.debug(f"Job {job_id} run {run_seq} superseded, dropping stage '{label}'")
        return applied

    async def _notify_terminal(self, job_id: str, run_seq: int, written: dict[str, Any]) -> None:
        """
        Notify a terminal transition with the values this run just wrote.

        Only the immutable fields (name, filters, ...) come from the stored row;
        a retry may already have reset the rest by the time it is read.
        """
        try:
            job = await self._store.get_job(job_id)
        except Exception as e:
            logger.error(f"Job {job_id}: could not load job for {written['status']} notification: {e}")
            return
        if job is None:
            return

        snapshot = ExportJob(
            job_id=job.job_id,
            name=job.name,
            report_type=job.report_type,
            format=job.format,
            total_rows=job.total_rows,
            filters=job.filters,
            submitted_at=job.submitted_at,
            run_seq=run_seq,
            **written,
        )
        if snapshot.status == JobStatus.COMPLETED.value:
            await self._fanout.job_completed(snapshot)
        else:
            await self._fanout.job_failed(snapshot)
