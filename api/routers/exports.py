"""
Report preview and export endpoints.

POST /api/reports/preview                 → One page of a materialized view
POST /api/reports/exports                 → Submit an export (queued)
GET  /api/reports/exports                 → Most recent exports
GET  /api/reports/exports/{job_id}        → One export
POST /api/reports/exports/{job_id}/retry  → Re-queue a failed export

The router only translates HTTP to ExportService calls; the staged run itself
happens in the background after the response has gone out.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_export_service
from api.schemas.export import (
    ColumnResponse,
    ExportJobListResponse,
    ExportJobResponse,
    PreviewRequest,
    PreviewResponse,
)
from pipeline.errors import IllegalTransitionError, InvalidFiltersError, JobNotFoundError
from reports.filters import ExportFilters, RowFilters
from services.exports import ExportService

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.post("/preview", response_model=PreviewResponse)
async def preview_report(
    request: PreviewRequest,
    service: ExportService = Depends(get_export_service),
) -> PreviewResponse:
    filters = RowFilters(domain=request.domain, date_range=request.date_range, regions=request.regions)
    page = await service.preview(filters, request.page, request.page_size, request.report_type)
    return PreviewResponse(
        rows=page.view.rows,
        columns=[ColumnResponse.model_validate(column) for column in page.view.columns],
        label=page.view.label,
        grouped=page.view.grouped,
        total=page.total,
        page=page.page,
        page_size=page.page_size,
        total_pages=page.total_pages,
    )


@router.post("/exports", response_model=ExportJobResponse, status_code=201)
async def submit_export(
    filters: ExportFilters,
    service: ExportService = Depends(get_export_service),
) -> ExportJobResponse:
    """
    Queue a new export.

    The job comes back as queued with total_rows already resolved; progress
    arrives over the WebSocket and through GET /exports/{job_id}.
    """
    try:
        job = await service.submit_export(filters)
    except InvalidFiltersError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return ExportJobResponse.model_validate(job)


@router.get("/exports", response_model=ExportJobListResponse)
async def list_exports(
    limit: int = Query(50, ge=1, le=200, description="Max jobs to return"),
    service: ExportService = Depends(get_export_service),
) -> ExportJobListResponse:
    jobs = await service.list_jobs(limit)
    return ExportJobListResponse(
        jobs=[ExportJobResponse.model_validate(job) for job in jobs],
        total=len(jobs),
    )


@router.get("/exports/{job_id}", response_model=ExportJobResponse)
async def get_export(
    job_id: str,
    service: ExportService = Depends(get_export_service),
) -> ExportJobResponse:
    try:
        job = await service.get_job(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return ExportJobResponse.model_validate(job)


@router.post("/exports/{job_id}/retry", response_model=ExportJobResponse, status_code=202)
async def retry_export(
    job_id: str,
    service: ExportService = Depends(get_export_service),
) -> ExportJobResponse:
    """Only failed jobs can be retried; anything else is a 409 and the job is left alone."""
    try:
        job = await service.retry_job(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except IllegalTransitionError as e:
        raise HTTPException(status_code=409, detail=e.reason)
    return ExportJobResponse.model_validate(job)
