"""
Export file serialization.

This is deliberately the thinnest possible step: it takes an already
materialized view and turns it into bytes. XLSX exports are written as CSV
(which every spreadsheet opens), PDF exports as a plain-text report. Swapping
in a real renderer only means replacing `render_export`.
"""

import csv
import io
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from models.enums import ExportFormat
from reports.materializer import MaterializedView

# PDF text reports list at most this many rows, the rest is summarised
TEXT_REPORT_ROW_LIMIT = 100


@dataclass(frozen=True)
class ExportFile:
    content: bytes
    media_type: str
    filename: str


def safe_filename(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", name) or "export"


def render_export(
    view: MaterializedView,
    fmt: ExportFormat | str,
    *,
    title: str,
    total_rows: Optional[int] = None,
    generated_at: Optional[datetime] = None,
) -> ExportFile:
    fmt = ExportFormat(fmt)
    if fmt == ExportFormat.XLSX:
        return ExportFile(
            content=_to_csv(view).encode("utf-8"),
            media_type="text/csv",
            filename=f"{safe_filename(title)}.csv",
        )
    report = _to_text(view, title, total_rows, generated_at or datetime.now(timezone.utc))
    return ExportFile(
        content=report.encode("utf-8"),
        media_type="text/plain",
        filename=f"{safe_filename(title)}.txt",
    )


def _cell(row: dict, key: str) -> str:
    value = row.get(key)
    return "" if value is None else str(value)


def _to_csv(view: MaterializedView) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow([column.label for column in view.columns])
    for row in view.rows:
        if row.get("isHeader"):
            writer.writerow([f"{row['customer']} ({row['transactionCount']} rows, subtotal {row['subtotal']:.2f})"])
            continue
        writer.writerow([_cell(row, column.key) for column in view.columns])
    return buffer.getvalue()


def _to_text(view: MaterializedView, title: str, total_rows: Optional[int], generated_at: datetime) -> str:
    rule = "=" * 120
    lines = [
        f"IRA ANALYTICS - {view.label.upper()}",
        f"Generated: {generated_at.isoformat()}",
        f"Report Name: {title}",
    ]
    if total_rows is not None:
        lines.append(f"Total Records: {total_rows:,}")
    lines += ["", rule, " | ".join(column.label for column in view.columns), rule]

    shown = view.rows[:TEXT_REPORT_ROW_LIMIT]
    for row in shown:
        if row.get("isHeader"):
            lines.append(f"--- {row['customer']}: {row['transactionCount']} rows, subtotal {row['subtotal']:,.2f}")
        else:
            lines.append(" | ".join(_cell(row, column.key) for column in view.columns))
    if len(view.rows) > len(shown):
        lines.append(f"... and {len(view.rows) - len(shown)} more records")

    lines += ["", "END OF REPORT"]
    return "\n".join(lines) + "\n"
