"""
Operator endpoints.

POST   /api/admin/recover-stuck-jobs  → Reset and restart jobs stuck in processing
POST   /api/admin/create-stuck-job    → Insert a fake stuck job (to exercise recovery)
DELETE /api/admin/failed-jobs         → Purge every failed job
GET    /api/admin/stats               → Counts per status + average execution time
"""

from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_export_service
from api.schemas.admin import JobStats, PurgeResponse, RecoveredJobResponse, RecoverResponse
from api.schemas.export import ExportJobResponse
from services.exports import ExportService

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/recover-stuck-jobs", response_model=RecoverResponse)
async def recover_stuck_jobs(
    threshold_minutes: Optional[float] = Query(
        None, gt=0, description="Processing longer than this counts as stuck (default from settings)"
    ),
    service: ExportService = Depends(get_export_service),
) -> RecoverResponse:
    threshold = timedelta(minutes=threshold_minutes) if threshold_minutes is not None else None
    recovered = await service.recover_stuck_jobs(threshold)
    return RecoverResponse(
        recovered=len(recovered),
        jobs=[RecoveredJobResponse.model_validate(job) for job in recovered],
    )


@router.post("/create-stuck-job", response_model=ExportJobResponse, status_code=201)
async def create_stuck_job(
    service: ExportService = Depends(get_export_service),
) -> ExportJobResponse:
    job = await service.create_stuck_job()
    return ExportJobResponse.model_validate(job)


@router.delete("/failed-jobs", response_model=PurgeResponse)
async def purge_failed_jobs(
    service: ExportService = Depends(get_export_service),
) -> PurgeResponse:
    return PurgeResponse(deleted=await service.purge_failed_jobs())


@router.get("/stats", response_model=JobStats)
async def get_job_stats(
    service: ExportService = Depends(get_export_service),
) -> JobStats:
    return JobStats(**await service.stats())
