"""
GET /api/downloads/{job_id} → the rendered export file of a completed job.

The file is rebuilt on request from the job's stored filters: rows are fetched
again, materialized with the job's report type and serialized in its format.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from api.dependencies import get_export_service
from pipeline.errors import IllegalTransitionError, JobNotFoundError
from services.exports import ExportService

router = APIRouter(prefix="/api/downloads", tags=["downloads"])


@router.get("/{job_id}")
async def download_export(
    job_id: str,
    service: ExportService = Depends(get_export_service),
) -> Response:
    try:
        export = await service.build_download(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except IllegalTransitionError as e:
        raise HTTPException(status_code=409, detail=e.reason)
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )
