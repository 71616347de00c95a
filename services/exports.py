"""
Export service — the command surface behind the HTTP API.

    submit_export(filters)        → ExportJob (queued)
    get_job(job_id)               → ExportJob
    list_jobs(limit)              → [ExportJob]
    retry_job(job_id)             → ExportJob (queued again)
    recover_stuck_jobs(threshold) → [RecoveredJob]
    purge_failed_jobs()           → int
    preview(filters, page, ...)   → PreviewPage
    build_download(job_id)        → ExportFile
    create_stuck_job()            → ExportJob (processing, five minutes old)
    stats()                       → dict

Routers stay thin: they translate HTTP into these calls and the domain errors
from pipeline.errors back into status codes.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from models.enums import ExportFormat, JobStatus, ReportType
from models.job import ExportJob
from notifications.fanout import NotificationFanout
from pipeline.engine import ExportPipeline, utcnow
from pipeline.errors import IllegalTransitionError, InvalidFiltersError, JobNotFoundError
from pipeline.faults import FaultPolicy
from pipeline.recovery import RecoveredJob, RecoverySupervisor
from pipeline.retry import RetryHandler
from pipeline.runner import RunScheduler
from reports.domains import get_domain_schema
from reports.export_file import ExportFile, render_export
from reports.filters import ExportFilters, RowFilters
from reports.materializer import MaterializedView, materialize
from store.jobs import JobStore
from store.transactions import TransactionQuery

logger = logging.getLogger(__name__)

STUCK_JOB_AGE = timedelta(minutes=5)
STUCK_JOB_TOTAL_ROWS = 10_000
STUCK_JOB_PROGRESS = 45


@dataclass(frozen=True)
class PreviewPage:
    view: MaterializedView
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0


def new_job_id() -> str:
    return f"job-{uuid.uuid4().hex}"


def job_name(report_type: ReportType, when: datetime) -> str:
    return f"{report_type.value.capitalize()} Report - {when.date().isoformat()}"


class ExportService:

    def __init__(
        self,
        store: JobStore,
        transactions: TransactionQuery,
        pipeline: ExportPipeline,
        retry_handler: RetryHandler,
        recovery: RecoverySupervisor,
        fanout: NotificationFanout,
        *,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._transactions = transactions
        self._pipeline = pipeline
        self._retry_handler = retry_handler
        self._recovery = recovery
        self._fanout = fanout
        self._clock = clock

    # ── Submission ──────────────────────────────────────────────

    async def submit_export(self, filters: ExportFilters | dict[str, Any]) -> ExportJob:
        """
        Validate, size and persist a new export, then start its first run.

        total_rows is resolved here, once, and never recomputed by any later run.
        """
        if not isinstance(filters, ExportFilters):
            try:
                filters = ExportFilters.model_validate(filters)
            except ValidationError as e:
                raise InvalidFiltersError(str(e)) from e

        total_rows = await self._transactions.count_rows(filters)
        now = self._clock()
        job = await self._store.create_job(
            job_id=new_job_id(),
            name=job_name(filters.report_type, now),
            report_type=filters.report_type.value,
            format=filters.format.value,
            status=JobStatus.QUEUED.value,
            progress=0,
            total_rows=total_rows,
            processed_rows=0,
            run_seq=1,
            filters=filters.to_stored(),
            submitted_at=now,
        )
        logger.info(
            f"Export {job.job_id} submitted: {job.report_type}/{job.format}, "
            f"{total_rows} rows ({filters.domain})"
        )

        await self._fanout.job_queued(job)
        self._pipeline.start_run(job.job_id, total_rows, job.run_seq)
        return job

    # ── Queries ─────────────────────────────────────────────────

    async def get_job(self, job_id: str) -> ExportJob:
        job = await self._store.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def list_jobs(self, limit: int = 50) -> list[ExportJob]:
        return await self._store.list_jobs(limit)

    async def preview(
        self,
        filters: RowFilters,
        page: int = 1,
        page_size: int = 50,
        report_type: ReportType = ReportType.DETAIL,
    ) -> PreviewPage:
        offset = (page - 1) * page_size
        rows = await self._transactions.fetch_rows(filters, limit=page_size, offset=offset)
        total = await self._transactions.count_rows(filters)
        view = materialize(rows, report_type, get_domain_schema(filters.domain))
        return PreviewPage(view=view, total=total, page=page, page_size=page_size)

    async def stats(self) -> dict[str, Any]:
        counts = await self._store.count_by_status()
        return {
            "total_jobs": sum(counts.values()),
            **counts,
            "queue_depth": counts[JobStatus.QUEUED.value] + counts[JobStatus.PROCESSING.value],
            "avg_execution_time_ms": await self._store.average_execution_ms(),
        }

    # ── Lifecycle commands ──────────────────────────────────────

    async def retry_job(self, job_id: str) -> ExportJob:
        return await self._retry_handler.retry(job_id)

    async def recover_stuck_jobs(self, threshold: Optional[timedelta] = None) -> list[RecoveredJob]:
        if threshold is None:
            threshold = timedelta(seconds=settings.stuck_job_threshold_seconds)
        return await self._recovery.recover_and_restart(threshold)

    async def purge_failed_jobs(self) -> int:
        return await self._store.delete_jobs_by_status(JobStatus.FAILED)

    async def create_stuck_job(self) -> ExportJob:
        """Insert a job that looks like its worker died mid-run, for exercising recovery."""
        now = self._clock()
        filters = ExportFilters(
            domain=settings.DEFAULT_DOMAIN,
            report_type=ReportType.DETAIL,
            format=ExportFormat.PDF,
        )
        job = await self._store.create_job(
            job_id=new_job_id(),
            name="Stuck Test Job",
            report_type=filters.report_type.value,
            format=filters.format.value,
            status=JobStatus.PROCESSING.value,
            progress=STUCK_JOB_PROGRESS,
            total_rows=STUCK_JOB_TOTAL_ROWS,
            processed_rows=(STUCK_JOB_TOTAL_ROWS * STUCK_JOB_PROGRESS) // 100,
            run_seq=1,
            filters=filters.to_stored(),
            submitted_at=now - STUCK_JOB_AGE,
            started_at=now - STUCK_JOB_AGE,
        )
        logger.info(f"Created stuck test job {job.job_id}")
        return job

    # ── Downloads ───────────────────────────────────────────────

    async def build_download(self, job_id: str) -> ExportFile:
        job = await self.get_job(job_id)
        if job.status != JobStatus.COMPLETED.value:
            raise IllegalTransitionError(
                job_id, job.status, f"Export is not ready for download (job is {job.status})"
            )

        filters = ExportFilters.from_stored(job.filters)
        rows = await self._transactions.fetch_rows(filters, limit=settings.DOWNLOAD_ROW_LIMIT)
        view = materialize(rows, filters.report_type, get_domain_schema(filters.domain))
        return render_export(
            view,
            job.format,
            title=job.name,
            total_rows=job.total_rows,
            generated_at=job.completed_at,
        )


def build_export_service(
    session_factory: async_sessionmaker[AsyncSession],
    fanout: NotificationFanout,
    scheduler: RunScheduler,
    fault_policy: FaultPolicy,
    *,
    clock: Callable[[], datetime] = utcnow,
) -> ExportService:
    """Wire the stores, pipeline, retry handler and recovery supervisor together."""
    store = JobStore(session_factory)
    pipeline = ExportPipeline(store, fanout, scheduler, fault_policy, clock=clock)
    return ExportService(
        store,
        TransactionQuery(session_factory),
        pipeline,
        RetryHandler(store, pipeline, fanout),
        RecoverySupervisor(store, pipeline, clock=clock),
        fanout,
        clock=clock,
    )
