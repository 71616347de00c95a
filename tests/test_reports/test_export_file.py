"""Tests for export serialization (CSV for xlsx, text report for pdf)."""

from datetime import datetime, timezone

from models.enums import ExportFormat
from reports.domains import get_domain_schema
from reports.export_file import TEXT_REPORT_ROW_LIMIT, render_export, safe_filename
from reports.materializer import materialize

SCHEMA = get_domain_schema("ecommerce")
GENERATED = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def _rows(n: int, **kwargs) -> list[dict]:
    return [
        {
            "transactionId": f"T{i}",
            "timestamp": "2025-01-15T12:00:00+00:00",
            "region": "NCR",
            "type": "PURCHASE",
            "amount": 10.0,
            "status": "COMPLETED",
            "customer": kwargs.get("customer", "C1"),
        }
        for i in range(n)
    ]


def test_safe_filename_replaces_punctuation():
    assert safe_filename("Summary Report - 2025-01-15") == "Summary_Report___2025_01_15"
    assert safe_filename("") == "export"


def test_xlsx_renders_csv_with_header_row():
    view = materialize(_rows(2), "detail", SCHEMA)
    export = render_export(view, ExportFormat.XLSX, title="Detail Report - 2025-01-15")

    assert export.media_type == "text/csv"
    assert export.filename == "Detail_Report___2025_01_15.csv"
    lines = export.content.decode().splitlines()
    assert lines[0] == ",".join(column.label for column in SCHEMA.columns)
    assert lines[1].startswith("T0,")
    assert len(lines) == 3


def test_pdf_renders_text_report():
    view = materialize(_rows(3), "detail", SCHEMA)
    export = render_export(view, "pdf", title="Detail Report", total_rows=3, generated_at=GENERATED)

    text = export.content.decode()
    assert export.media_type == "text/plain"
    assert export.filename == "Detail_Report.txt"
    assert "DETAILED TRANSACTION LEDGER" in text
    assert "Total Records: 3" in text
    assert GENERATED.isoformat() in text
    assert text.rstrip().endswith("END OF REPORT")


def test_pdf_report_truncates_long_views():
    view = materialize(_rows(TEXT_REPORT_ROW_LIMIT + 5), "detail", SCHEMA)
    text = render_export(view, "pdf", title="Big", generated_at=GENERATED).content.decode()
    assert "... and 5 more records" in text


def test_booklet_headers_render_as_group_lines():
    view = materialize(_rows(2, customer="C9"), "booklet", SCHEMA)
    csv_text = render_export(view, "xlsx", title="Booklet").content.decode()
    assert "C9 (2 rows, subtotal 20.00)" in csv_text
