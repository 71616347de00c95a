"""Tests for filter validation, the stored JSON form and the domain schemas."""

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from models.enums import ExportFormat, ReportType
from reports.domains import DOMAIN_SCHEMAS, get_domain_schema
from reports.filters import DateRange, ExportFilters, RowFilters


def test_all_twelve_domains_are_registered():
    assert len(DOMAIN_SCHEMAS) == 12
    for domain_id, schema in DOMAIN_SCHEMAS.items():
        assert schema.id == domain_id
        assert schema.columns
        assert schema.entity_label


def test_unknown_domain_falls_back_to_ecommerce():
    assert get_domain_schema("martian").id == "ecommerce"
    assert get_domain_schema(None).id == "ecommerce"


def test_row_filters_defaults():
    filters = RowFilters()
    assert filters.domain == "ecommerce"
    assert filters.date_range is None
    assert filters.regions == []


def test_row_filters_reject_unknown_domain():
    with pytest.raises(ValidationError):
        RowFilters(domain="martian")


def test_row_filters_reject_blank_region():
    with pytest.raises(ValidationError):
        RowFilters(regions=["NCR", "  "])


def test_date_range_rejects_reversed_bounds():
    with pytest.raises(ValidationError):
        DateRange(start=date(2025, 2, 1), end=date(2025, 1, 1))


def test_date_range_bounds_cover_whole_days():
    lower, upper = DateRange(start=date(2025, 1, 1), end=date(2025, 1, 31)).bounds()
    assert lower == datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert upper.date() == date(2025, 1, 31)
    assert (upper.hour, upper.minute, upper.second) == (23, 59, 59)


def test_export_filters_require_report_type_and_format():
    with pytest.raises(ValidationError):
        ExportFilters.model_validate({"domain": "ecommerce"})


def test_export_filters_reject_bad_email():
    with pytest.raises(ValidationError):
        ExportFilters(report_type="detail", format="pdf", email="not-an-address")


def test_export_filters_round_trip_through_stored_form():
    filters = ExportFilters(
        domain="banking",
        report_type=ReportType.SUMMARY,
        format=ExportFormat.XLSX,
        date_range=DateRange(start=date(2025, 1, 1), end=date(2025, 1, 31)),
        regions=["NCR"],
        email="ops@example.com",
    )
    stored = filters.to_stored()

    assert stored["report_type"] == "summary"
    assert stored["date_range"] == {"start": "2025-01-01", "end": "2025-01-31"}
    assert ExportFilters.from_stored(stored) == filters
