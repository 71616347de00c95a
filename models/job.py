"""
ExportJob ORM model — maps to the "export_jobs" table.

Key design decisions:
- Integer primary key for joins, plus an opaque `job_id` token that is the only
  identifier ever exposed to clients
- JSON filters column: the validated ExportFilters captured at submission,
  replayed verbatim by retry and recovery
- run_seq: bumped by every retry and recovery; staged ticks only write while
  the row still carries the run_seq they were scheduled under
- Timestamps at every lifecycle stage: stuck-job detection reads started_at
"""

from datetime import datetime

from sqlalchemy import JSON, String, Integer, DateTime, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base
from models.enums import JobStatus


class ExportJob(Base):
    __tablename__ = "export_jobs"

    # ── Identity ────────────────────────────────────────────────
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    report_type: Mapped[str] = mapped_column(String(20), nullable=False)
    format: Mapped[str] = mapped_column(String(10), nullable=False)

    # ── Progress ────────────────────────────────────────────────
    status: Mapped[str] = mapped_column(
        String(20), default=JobStatus.QUEUED.value, nullable=False, index=True
    )
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_rows: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    processed_rows: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    run_seq: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # ── Filters ─────────────────────────────────────────────────
    #   {"domain": "ecommerce", "report_type": "summary", "format": "pdf",
    #    "date_range": {"start": "2025-01-01", "end": "2025-01-31"},
    #    "regions": ["APAC"], "email": "ops@example.com"}
    filters: Mapped[dict] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), default=dict, nullable=False
    )

    # ── Lifecycle timestamps ────────────────────────────────────
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # ── Result ──────────────────────────────────────────────────
    file_size: Mapped[str | None] = mapped_column(String(50), nullable=True)
    download_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ExportJob {self.job_id} [{self.report_type}/{self.format}] {self.status}>"
