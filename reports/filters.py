"""
Structured export filters.

ExportFilters is the filter blob captured when an export is submitted. It is
persisted as JSON on the job row (`filters` column) and decoded again with
`ExportFilters.from_stored()` at every re-entry point: retry, recovery,
notification email lookup and download.
"""

from datetime import date, datetime, time, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from models.enums import ExportFormat, ReportType
from reports.domains import DOMAIN_SCHEMAS


class DateRange(BaseModel):
    """Inclusive calendar-day range. Either end may be open."""

    start: Optional[date] = None
    end: Optional[date] = None

    @model_validator(mode="after")
    def _check_order(self) -> "DateRange":
        if self.start and self.end and self.start > self.end:
            raise ValueError("date_range.start must not be after date_range.end")
        return self

    def bounds(self) -> tuple[Optional[datetime], Optional[datetime]]:
        """Start of the first day and end of the last day, both in UTC."""
        lower = datetime.combine(self.start, time.min, tzinfo=timezone.utc) if self.start else None
        upper = datetime.combine(self.end, time.max, tzinfo=timezone.utc) if self.end else None
        return lower, upper


class RowFilters(BaseModel):
    """The predicate part of a request: which transaction rows are selected."""

    domain: str = Field(default="ecommerce", examples=["ecommerce"])
    date_range: Optional[DateRange] = None
    regions: list[str] = Field(default_factory=list, examples=[["APAC", "Europe"]])

    @field_validator("domain")
    @classmethod
    def _known_domain(cls, value: str) -> str:
        if value not in DOMAIN_SCHEMAS:
            raise ValueError(f"Unknown domain '{value}'. Available: {sorted(DOMAIN_SCHEMAS)}")
        return value

    @field_validator("regions")
    @classmethod
    def _clean_regions(cls, value: list[str]) -> list[str]:
        cleaned = [region.strip() for region in value]
        if any(not region for region in cleaned):
            raise ValueError("regions must not contain blank names")
        return cleaned


class ExportFilters(RowFilters):
    """Everything needed to replay an export: predicate, view, format, recipient."""

    report_type: ReportType
    format: ExportFormat
    email: Optional[str] = Field(
        default=None,
        pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$",
        description="Recipient for the completion/failure email",
    )

    @classmethod
    def from_stored(cls, stored: Optional[dict]) -> "ExportFilters":
        return cls.model_validate(stored or {})

    def to_stored(self) -> dict:
        return self.model_dump(mode="json")
