"""
Pydantic schemas for the /api/reports endpoints.

These are NOT database models — they define the HTTP API contract:
- ExportFilters (from reports.filters) is the request body for submitting an export
- ExportJobResponse: what we send back for a single job
- ExportJobListResponse: the recent-jobs list
- PreviewRequest / PreviewResponse: one page of a materialized view

FastAPI validates incoming data against these automatically, so a bad filter
blob is a 422 before the service is even called.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from models.enums import ReportType
from reports.filters import RowFilters


class ExportJobResponse(BaseModel):
    """A single export job — returned by submit, get and retry."""

    job_id: str
    name: str
    report_type: str
    format: str
    status: str
    progress: int
    total_rows: int
    processed_rows: int
    filters: dict
    submitted_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    file_size: Optional[str] = None
    download_url: Optional[str] = None
    error_message: Optional[str] = None

    # from_attributes=True reads straight off the ExportJob ORM object
    model_config = {"from_attributes": True}


class ExportJobListResponse(BaseModel):
    jobs: list[ExportJobResponse]
    total: int  # number of jobs returned


class PreviewRequest(RowFilters):
    """Row filters plus paging, and optionally a view other than detail."""

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=50, ge=1, le=500)
    report_type: ReportType = ReportType.DETAIL


class ColumnResponse(BaseModel):
    key: str
    label: str
    type: str
    width: Optional[int] = None

    model_config = {"from_attributes": True}


class PreviewResponse(BaseModel):
    rows: list[dict[str, Any]]
    columns: list[ColumnResponse]
    label: str
    grouped: bool
    total: int        # total matching rows (ignoring pagination)
    page: int
    page_size: int
    total_pages: int
