"""Pydantic schemas for the /api/admin endpoints."""

from typing import Optional

from pydantic import BaseModel


class RecoveredJobResponse(BaseModel):
    job_id: str
    total_rows: int
    run_seq: int

    model_config = {"from_attributes": True}


class RecoverResponse(BaseModel):
    recovered: int
    jobs: list[RecoveredJobResponse]


class PurgeResponse(BaseModel):
    deleted: int


class JobStats(BaseModel):
    """Aggregate job statistics — returned by GET /api/admin/stats."""

    total_jobs: int
    queued: int
    processing: int
    completed: int
    failed: int
    queue_depth: int  # queued + processing
    avg_execution_time_ms: Optional[float] = None
