"""
View materializer — turns raw transaction rows into the rows and columns a
report actually shows.

    materialize(rows, "summary", schema) → MaterializedView(rows, columns, label, grouped)

Four report types:
- detail:    rows pass through unchanged, domain columns
- summary:   one row per region with count / total / average / most common status
- exception: only exception-status rows, each with a human-readable reason
- booklet:   rows grouped per entity, each group led by a header row with a subtotal

The function is pure: same inputs → same output, and input rows are never
mutated (every emitted row is a fresh dict). That makes it safe to call on
cached query results and trivial to test.
"""

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Sequence

from models.enums import ReportType
from reports.domains import DomainColumn, DomainSchema


@dataclass(frozen=True)
class MaterializedView:
    rows: list[dict]
    columns: tuple[DomainColumn, ...]
    label: str
    grouped: bool = False


EXCEPTION_REASONS: Mapping[str, str] = MappingProxyType({
    "FAILED": "Transaction processing failed",
    "DENIED": "Request was denied by system",
    "BLOCKED": "Transaction blocked by security",
    "CRITICAL": "Critical system error detected",
    "DROPPED": "Connection dropped during processing",
    "DELINQUENT": "Account is past due",
    "DELAYED": "Processing delayed beyond threshold",
    "MISSING": "Required data not found",
    "TAMPERED": "Data integrity check failed",
    "LAPSED": "Policy or coverage has lapsed",
    "RETURNED": "Item or payment returned",
    "FLAGGED": "Flagged for manual review",
    "ALERT": "Security alert triggered",
})

EXCEPTION_STATUSES = frozenset(EXCEPTION_REASONS)
UNKNOWN_EXCEPTION_REASON = "Unknown exception"
UNKNOWN_GROUP = "Unknown"

DETAIL_LABEL = "Detailed Transaction Ledger"
SUMMARY_LABEL = "Regional Summary"
EXCEPTION_LABEL = "Exception Report"

SUMMARY_COLUMNS: tuple[DomainColumn, ...] = (
    DomainColumn("region", "Region", "text", 150),
    DomainColumn("count", "Transaction Count", "number", 140),
    DomainColumn("totalAmount", "Total Amount (₱)", "currency", 150),
    DomainColumn("avgAmount", "Avg Amount (₱)", "currency", 130),
    DomainColumn("topStatus", "Most Common Status", "status", 150),
)


def exception_reason(status: Optional[str]) -> str:
    return EXCEPTION_REASONS.get(status or "", UNKNOWN_EXCEPTION_REASON)


def exception_columns(entity_label: str) -> tuple[DomainColumn, ...]:
    return (
        DomainColumn("transactionId", "Transaction ID", "text", 140),
        DomainColumn("timestamp", "Timestamp", "date", 160),
        DomainColumn("region", "Region", "text", 100),
        DomainColumn("status", "Exception Type", "status", 120),
        DomainColumn("amount", "Amount (₱)", "currency", 120),
        DomainColumn("customer", entity_label, "text", 130),
        DomainColumn("errorReason", "Reason", "text", 200),
    )


def materialize(
    rows: Iterable[Mapping[str, Any]],
    report_type: ReportType | str,
    schema: DomainSchema,
) -> MaterializedView:
    """Build the view for `report_type`. Unrecognised types render as detail."""
    rows = list(rows)
    try:
        report_type = ReportType(report_type)
    except ValueError:
        report_type = ReportType.DETAIL

    if report_type == ReportType.SUMMARY:
        return _summary(rows)
    if report_type == ReportType.EXCEPTION:
        return _exceptions(rows, schema)
    if report_type == ReportType.BOOKLET:
        return _booklet(rows, schema)
    return MaterializedView(
        rows=[dict(row) for row in rows],
        columns=schema.columns,
        label=DETAIL_LABEL,
    )


def _amount(row: Mapping[str, Any]) -> float:
    """Numeric amount of a row; missing or unparsable amounts count as 0."""
    try:
        value = float(row.get("amount") or 0)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def _group_key(row: Mapping[str, Any], field: str) -> str:
    return row.get(field) or UNKNOWN_GROUP


def _summary(rows: Sequence[Mapping[str, Any]]) -> MaterializedView:
    groups: dict[str, dict] = {}
    for row in rows:
        region = _group_key(row, "region")
        group = groups.setdefault(region, {"count": 0, "total": 0.0, "statuses": {}})
        group["count"] += 1
        group["total"] += _amount(row)
        status = row.get("status")
        group["statuses"][status] = group["statuses"].get(status, 0) + 1

    summary_rows = []
    for region, group in groups.items():
        summary_rows.append({
            "region": region,
            "count": group["count"],
            "totalAmount": group["total"],
            "avgAmount": group["total"] / group["count"],
            "topStatus": _mode(group["statuses"]),
        })
    return MaterializedView(rows=summary_rows, columns=SUMMARY_COLUMNS, label=SUMMARY_LABEL)


def _mode(counts: dict) -> str:
    # dicts keep first-seen order and max() keeps the first maximal key
    if not counts:
        return "-"
    top = max(counts, key=counts.__getitem__)
    return top if top is not None else "-"


def _exceptions(rows: Sequence[Mapping[str, Any]], schema: DomainSchema) -> MaterializedView:
    enriched = [
        {**row, "errorReason": exception_reason(row.get("status"))}
        for row in rows
        if row.get("status") in EXCEPTION_STATUSES
    ]
    return MaterializedView(
        rows=enriched,
        columns=exception_columns(schema.entity_label),
        label=EXCEPTION_LABEL,
    )


def _booklet(rows: Sequence[Mapping[str, Any]], schema: DomainSchema) -> MaterializedView:
    groups: dict[str, list[Mapping[str, Any]]] = {}
    for row in rows:
        groups.setdefault(_group_key(row, "customer"), []).append(row)

    booklet_rows: list[dict] = []
    for customer, members in groups.items():
        booklet_rows.append({
            "isHeader": True,
            "customer": customer,
            "transactionCount": len(members),
            "subtotal": sum(_amount(member) for member in members),
        })
        booklet_rows.extend({**member, "isHeader": False} for member in members)

    return MaterializedView(
        rows=booklet_rows,
        columns=schema.columns,
        label=f"Per-{schema.entity_label} Statement",
        grouped=True,
    )
