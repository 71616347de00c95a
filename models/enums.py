"""
Shared enumerations used across the entire project.

Using Python enums (inheriting from str) means:
- They serialize to JSON automatically ("queued", not "JobStatus.QUEUED")
- They work as SQLAlchemy column values
- They work as FastAPI query parameters and request fields
"""

import enum


class JobStatus(str, enum.Enum):
    QUEUED = "queued"          # submitted (or reset), waiting for the queue delay
    PROCESSING = "processing"  # staged ticks are running
    COMPLETED = "completed"    # file is ready for download
    FAILED = "failed"          # terminal until an explicit retry


class ReportType(str, enum.Enum):
    DETAIL = "detail"          # row-level ledger
    SUMMARY = "summary"        # rollup per region
    EXCEPTION = "exception"    # exception-status rows with reasons
    BOOKLET = "booklet"        # per-entity statement with subtotals


class ExportFormat(str, enum.Enum):
    PDF = "pdf"
    XLSX = "xlsx"


class NotificationKind(str, enum.Enum):
    QUEUED = "queued"
    PROGRESS = "progress"
    COMPLETED = "completed"
    FAILED = "failed"
