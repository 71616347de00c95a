"""
Job store — the persistence contract the pipeline, retry handler and recovery
supervisor talk to.

Every mutation is a single conditional UPDATE:

    UPDATE export_jobs SET ... WHERE job_id = :id [AND run_seq = :seq] [AND status = :status]

The WHERE clause is the concurrency control. A staged tick from a superseded
run, a retry of a job that is no longer failed, or a second recovery of an
already-reset job simply match zero rows, and the caller sees `False`.
No row is ever read, modified in Python and written back.

Each call opens its own short-lived session, the same way the worker code
used one session per unit of work.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.enums import JobStatus
from models.job import ExportJob

logger = logging.getLogger(__name__)


class JobStore:

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create_job(self, **fields: Any) -> ExportJob:
        job = ExportJob(**fields)
        async with self._session_factory() as session:
            session.add(job)
            await session.commit()
            await session.refresh(job)  # reload server-generated fields (id, submitted_at)
        return job

    async def get_job(self, job_id: str) -> Optional[ExportJob]:
        async with self._session_factory() as session:
            result = await session.execute(select(ExportJob).where(ExportJob.job_id == job_id))
            return result.scalar_one_or_none()

    async def list_jobs(self, limit: int = 50) -> list[ExportJob]:
        """Most recently submitted first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(ExportJob)
                .order_by(ExportJob.submitted_at.desc(), ExportJob.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def update_job(
        self,
        job_id: str,
        values: dict[str, Any],
        *,
        run_seq: Optional[int] = None,
        expected_status: Optional[JobStatus] = None,
        started_before: Optional[datetime] = None,
    ) -> bool:
        """
        Apply `values` to one job atomically.

        Optional guards narrow the WHERE clause:
            run_seq          → only while the job still belongs to this run
            expected_status  → only while the job is in this status
            started_before   → only if started_at <= this instant (stuck predicate)

        Returns True if the row was updated, False if the guards did not match.
        """
        stmt = update(ExportJob).where(ExportJob.job_id == job_id)
        if run_seq is not None:
            stmt = stmt.where(ExportJob.run_seq == run_seq)
        if expected_status is not None:
            stmt = stmt.where(ExportJob.status == expected_status.value)
        if started_before is not None:
            stmt = stmt.where(
                ExportJob.started_at.is_not(None),
                ExportJob.started_at <= started_before,
            )
        stmt = stmt.values(**values).execution_options(synchronize_session=False)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
        return result.rowcount == 1

    async def find_stuck_processing_jobs(self, cutoff: datetime) -> list[ExportJob]:
        """Jobs in processing whose run started at or before `cutoff`."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(ExportJob)
                .where(
                    ExportJob.status == JobStatus.PROCESSING.value,
                    ExportJob.started_at.is_not(None),
                    ExportJob.started_at <= cutoff,
                )
                .order_by(ExportJob.started_at)
            )
            return list(result.scalars().all())

    async def delete_jobs_by_status(self, status: JobStatus) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(ExportJob)
                .where(ExportJob.status == status.value)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
        logger.info(f"Deleted {result.rowcount} {status.value} jobs")
        return result.rowcount

    async def count_by_status(self) -> dict[str, int]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ExportJob.status, func.count(ExportJob.id)).group_by(ExportJob.status)
            )
            counts = {status.value: 0 for status in JobStatus}
            counts.update({status: count for status, count in result.all()})
            return counts

    async def average_execution_ms(self) -> Optional[float]:
        """Mean completed_at - started_at over completed jobs, in milliseconds."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(
                    func.avg(
                        func.extract("epoch", ExportJob.completed_at)
                        - func.extract("epoch", ExportJob.started_at)
                    )
                ).where(
                    ExportJob.status == JobStatus.COMPLETED.value,
                    ExportJob.started_at.is_not(None),
                    ExportJob.completed_at.is_not(None),
                )
            )
            avg_seconds = result.scalar()
        return round(float(avg_seconds) * 1000, 2) if avg_seconds else None
