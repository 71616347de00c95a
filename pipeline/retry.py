"""
Retry — the only way out of the failed state.

A failed job is reset in place and re-enters the pipeline under a new run_seq:

    failed (run N) ──retry──> queued (run N+1) ──+5──> processing ...

The reset is one conditional UPDATE (status = failed AND run_seq = N), so two
concurrent retries of the same job cannot both win: the loser matches no row
and gets IllegalTransitionError, same as retrying a job that was never failed.

Retried jobs wait the full queue delay, unlike recovered jobs.
"""

import logging

from models.enums import JobStatus
from models.job import ExportJob
from notifications.fanout import NotificationFanout
from pipeline.engine import ExportPipeline
from pipeline.errors import IllegalTransitionError, JobNotFoundError
from store.jobs import JobStore

logger = logging.getLogger(__name__)


def reset_values(next_run_seq: int) -> dict:
    """Column values that put a job back to a fresh queued state for a new run."""
    return {
        "status": JobStatus.QUEUED.value,
        "progress": 0,
        "processed_rows": 0,
        "started_at": None,
        "completed_at": None,
        "error_message": None,
        "file_size": None,
        "download_url": None,
        "run_seq": next_run_seq,
    }


class RetryHandler:

    def __init__(self, store: JobStore, pipeline: ExportPipeline, fanout: NotificationFanout):
        self._store = store
        self._pipeline = pipeline
        self._fanout = fanout

    async def retry(self, job_id: str) -> ExportJob:
        job = await self._store.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        if job.status != JobStatus.FAILED.value:
            raise IllegalTransitionError(
                job_id, job.status, f"Only failed jobs can be retried (job is {job.status})"
            )

        next_run_seq = job.run_seq + 1
        applied = await self._store.update_job(
            job_id,
            reset_values(next_run_seq),
            run_seq=job.run_seq,
            expected_status=JobStatus.FAILED,
        )
        if not applied:
            # Someone else moved the job between our read and our write
            current = await self._store.get_job(job_id)
            if current is None:
                raise JobNotFoundError(job_id)
            raise IllegalTransitionError(
                job_id, current.status, f"Only failed jobs can be retried (job is {current.status})"
            )

        job = await self._store.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        logger.info(f"Job {job_id} retried as run {next_run_seq}")

        await self._fanout.job_queued(job)
        self._pipeline.start_run(job_id, job.total_rows, next_run_seq)
        return job
