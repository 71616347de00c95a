"""
Stuck-job recovery.

A job is stuck when it is in processing and its run started at or before
now - threshold. That happens when the process died mid-run, or a stage's
write failed and the run was abandoned.

Recovery resets each stuck job to queued under a new run_seq, with a note in
error_message, and re-enters it in the pipeline with the queue delay skipped.
Each reset is conditional on (status = processing, started_at <= cutoff,
run_seq unchanged), so running recovery twice, or racing it against a live
tick, never resets the same run twice.

Runs once at startup (RECOVER_ON_STARTUP) and on demand from the admin API.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from config.settings import settings
from models.enums import JobStatus
from pipeline.engine import ExportPipeline, utcnow
from pipeline.retry import reset_values
from store.jobs import JobStore

logger = logging.getLogger(__name__)

RECOVERY_NOTE = "Job was stuck and has been reset for retry."


@dataclass(frozen=True)
class RecoveredJob:
    job_id: str
    total_rows: int
    run_seq: int


class RecoverySupervisor:

    def __init__(
        self,
        store: JobStore,
        pipeline: ExportPipeline,
        *,
        default_total_rows: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._pipeline = pipeline
        self._default_total_rows = (
            settings.RECOVERY_DEFAULT_TOTAL_ROWS if default_total_rows is None else default_total_rows
        )
        self._clock = clock

    async def recover(self, threshold: timedelta) -> list[RecoveredJob]:
        """Reset every stuck job to queued. Returns what was reset; does not restart anything."""
        cutoff = self._clock() - threshold
        candidates = await self._store.find_stuck_processing_jobs(cutoff)

        recovered: list[RecoveredJob] = []
        for job in candidates:
            total_rows = job.total_rows if job.total_rows and job.total_rows > 0 else self._default_total_rows
            next_run_seq = job.run_seq + 1
            values = reset_values(next_run_seq)
            values.update(error_message=RECOVERY_NOTE, total_rows=total_rows)

            applied = await self._store.update_job(
                job.job_id,
                values,
                run_seq=job.run_seq,
                expected_status=JobStatus.PROCESSING,
                started_before=cutoff,
            )
            if not applied:
                logger.info(f"Job {job.job_id} moved on before it could be recovered, skipping")
                continue
            recovered.append(RecoveredJob(job.job_id, total_rows, next_run_seq))

        if recovered:
            logger.warning(
                f"Recovered {len(recovered)} stuck job(s): {', '.join(r.job_id for r in recovered)}"
            )
        else:
            logger.info(f"No stuck jobs older than {threshold}")
        return recovered

    async def recover_and_restart(self, threshold: timedelta) -> list[RecoveredJob]:
        """Reset stuck jobs and put each straight back into processing (no queue delay)."""
        recovered = await self.recover(threshold)
        for job in recovered:
            self._pipeline.start_run(job.job_id, job.total_rows, job.run_seq, skip_queue_delay=True)
        return recovered
