"""
Domain column schemas.

Every dataset the dashboard can show is described by a DomainSchema: which
columns exist (in display order), what the status values look like, and what
the per-entity booklet calls its entity ("Customer", "Subscriber", ...).

The materializer only reads `columns` and `entity_label`; everything else is
metadata for the presentation layer.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from config.settings import settings


@dataclass(frozen=True)
class DomainColumn:
    key: str
    label: str
    type: str  # text | number | currency | date | status | badge
    width: Optional[int] = None


@dataclass(frozen=True)
class DomainSchema:
    id: str
    name: str
    description: str
    entity_label: str
    status_values: tuple[str, ...] = ()
    columns: tuple[DomainColumn, ...] = field(default_factory=tuple)


def _col(key: str, label: str, type_: str, width: int) -> DomainColumn:
    return DomainColumn(key=key, label=label, type=type_, width=width)


_SCHEMAS = [
    DomainSchema(
        id="telecom",
        name="Telecom CDRs",
        description="Call Detail Records - calls, SMS, data sessions",
        entity_label="Subscriber",
        status_values=("COMPLETED", "DROPPED", "FAILED", "ROAMING"),
        columns=(
            _col("recordId", "CDR ID", "text", 120),
            _col("timestamp", "Timestamp", "date", 160),
            _col("region", "Region", "text", 100),
            _col("callType", "Type", "badge", 80),
            _col("duration", "Duration (sec)", "number", 100),
            _col("dataUsage", "Data (MB)", "number", 90),
            _col("amount", "Charge (₱)", "currency", 100),
            _col("status", "Status", "status", 100),
            _col("subscriber", "Subscriber", "text", 120),
        ),
    ),
    DomainSchema(
        id="ecommerce",
        name="E-commerce Ledger",
        description="Orders, refunds, shipments across regions",
        entity_label="Customer",
        status_values=("CLEARED", "PENDING", "FAILED", "REFUNDED"),
        columns=(
            _col("transactionId", "Order ID", "text", 130),
            _col("timestamp", "Order Date", "date", 160),
            _col("region", "Region", "text", 100),
            _col("type", "Type", "badge", 90),
            _col("amount", "Amount (₱)", "currency", 110),
            _col("status", "Status", "status", 100),
            _col("customer", "Customer", "text", 120),
        ),
    ),
    DomainSchema(
        id="banking",
        name="Banking/FinTech",
        description="Ledger movements, reconciliations, AML audit trails",
        entity_label="Account",
        status_values=("POSTED", "PENDING", "REVERSED", "FLAGGED"),
        columns=(
            _col("transactionId", "Ref No.", "text", 130),
            _col("timestamp", "Value Date", "date", 160),
            _col("region", "Branch", "text", 100),
            _col("type", "Txn Type", "badge", 100),
            _col("debit", "Debit (₱)", "currency", 110),
            _col("credit", "Credit (₱)", "currency", 110),
            _col("balance", "Balance (₱)", "currency", 120),
            _col("status", "Status", "status", 90),
            _col("customer", "Account", "text", 120),
        ),
    ),
    DomainSchema(
        id="government",
        name="Government Census/Tax",
        description="Per-barangay rollups, taxpayer ledgers",
        entity_label="Taxpayer",
        status_values=("FILED", "PENDING", "DELINQUENT", "EXEMPT"),
        columns=(
            _col("transactionId", "Filing ID", "text", 130),
            _col("timestamp", "Filing Date", "date", 160),
            _col("region", "Municipality", "text", 120),
            _col("barangay", "Barangay", "text", 120),
            _col("type", "Tax Type", "badge", 100),
            _col("amount", "Amount (₱)", "currency", 110),
            _col("status", "Status", "status", 100),
            _col("customer", "Taxpayer TIN", "text", 130),
        ),
    ),
    DomainSchema(
        id="healthcare",
        name="Healthcare Claims",
        description="Claims per insurer/hospital with diagnosis codes",
        entity_label="Patient",
        status_values=("APPROVED", "PENDING", "DENIED", "PARTIAL"),
        columns=(
            _col("transactionId", "Claim ID", "text", 130),
            _col("timestamp", "Service Date", "date", 160),
            _col("region", "Facility", "text", 120),
            _col("diagnosisCode", "ICD-10", "text", 90),
            _col("procedureCode", "CPT Code", "text", 90),
            _col("amount", "Billed (₱)", "currency", 110),
            _col("approved", "Approved (₱)", "currency", 110),
            _col("status", "Status", "status", 90),
            _col("customer", "Member ID", "text", 120),
        ),
    ),
    DomainSchema(
        id="education",
        name="Education LMS",
        description="Course events, submissions, grading audits",
        entity_label="Student",
        status_values=("SUBMITTED", "GRADED", "LATE", "MISSING"),
        columns=(
            _col("transactionId", "Event ID", "text", 130),
            _col("timestamp", "Event Time", "date", 160),
            _col("region", "Campus", "text", 100),
            _col("courseCode", "Course", "text", 100),
            _col("type", "Activity", "badge", 100),
            _col("score", "Score", "number", 80),
            _col("maxScore", "Max", "number", 70),
            _col("status", "Status", "status", 90),
            _col("customer", "Student ID", "text", 120),
        ),
    ),
    DomainSchema(
        id="logistics",
        name="Transportation/Logistics",
        description="GPS pings, waybills, delivery scans",
        entity_label="Shipment",
        status_values=("DELIVERED", "IN_TRANSIT", "DELAYED", "RETURNED"),
        columns=(
            _col("transactionId", "Waybill No.", "text", 130),
            _col("timestamp", "Scan Time", "date", 160),
            _col("region", "Hub", "text", 100),
            _col("origin", "Origin", "text", 100),
            _col("destination", "Destination", "text", 100),
            _col("weight", "Weight (kg)", "number", 90),
            _col("amount", "Freight (₱)", "currency", 100),
            _col("status", "Status", "status", 100),
            _col("customer", "Consignee", "text", 120),
        ),
    ),
    DomainSchema(
        id="manufacturing",
        name="Manufacturing/IoT",
        description="Sensor readings, QC inspections, downtime logs",
        entity_label="Equipment",
        status_values=("NORMAL", "WARNING", "CRITICAL", "OFFLINE"),
        columns=(
            _col("transactionId", "Reading ID", "text", 130),
            _col("timestamp", "Timestamp", "date", 160),
            _col("region", "Plant", "text", 100),
            _col("equipmentId", "Equipment", "text", 110),
            _col("sensorType", "Sensor", "badge", 100),
            _col("value", "Reading", "number", 90),
            _col("threshold", "Threshold", "number", 90),
            _col("status", "Status", "status", 90),
            _col("customer", "Line ID", "text", 100),
        ),
    ),
    DomainSchema(
        id="cybersecurity",
        name="Cybersecurity/SIEM",
        description="Auth events, firewall logs, vulnerability findings",
        entity_label="Asset",
        status_values=("ALLOWED", "BLOCKED", "ALERT", "CRITICAL"),
        columns=(
            _col("transactionId", "Event ID", "text", 140),
            _col("timestamp", "Event Time", "date", 160),
            _col("region", "Zone", "text", 90),
            _col("sourceIP", "Source IP", "text", 120),
            _col("destIP", "Dest IP", "text", 120),
            _col("eventType", "Event Type", "badge", 100),
            _col("severity", "Severity", "number", 80),
            _col("status", "Action", "status", 90),
            _col("customer", "Asset ID", "text", 110),
        ),
    ),
    DomainSchema(
        id="energy",
        name="Energy/Utilities",
        description="Smart meter readings by feeder/transformer",
        entity_label="Meter",
        status_values=("NORMAL", "HIGH", "LOW", "TAMPERED"),
        columns=(
            _col("transactionId", "Reading ID", "text", 130),
            _col("timestamp", "Read Time", "date", 160),
            _col("region", "District", "text", 100),
            _col("feeder", "Feeder", "text", 100),
            _col("meterNo", "Meter No.", "text", 110),
            _col("kwhReading", "kWh", "number", 90),
            _col("amount", "Bill (₱)", "currency", 100),
            _col("status", "Status", "status", 90),
            _col("customer", "Account", "text", 110),
        ),
    ),
    DomainSchema(
        id="insurance",
        name="Insurance Policies",
        description="Policy lifecycle, claims, reserves, payouts",
        entity_label="Policyholder",
        status_values=("ACTIVE", "LAPSED", "CLAIMED", "SETTLED"),
        columns=(
            _col("transactionId", "Policy/Claim No.", "text", 140),
            _col("timestamp", "Effective Date", "date", 160),
            _col("region", "Branch", "text", 100),
            _col("type", "Product", "badge", 100),
            _col("premium", "Premium (₱)", "currency", 110),
            _col("sumInsured", "Sum Insured (₱)", "currency", 130),
            _col("claimAmount", "Claim (₱)", "currency", 100),
            _col("status", "Status", "status", 90),
            _col("customer", "Policyholder", "text", 120),
        ),
    ),
    DomainSchema(
        id="adtech",
        name="AdTech/Analytics",
        description="Impressions, clicks, conversions, spend",
        entity_label="Campaign",
        status_values=("ACTIVE", "PAUSED", "COMPLETED", "OPTIMIZING"),
        columns=(
            _col("transactionId", "Event ID", "text", 130),
            _col("timestamp", "Event Time", "date", 160),
            _col("region", "Geo", "text", 90),
            _col("campaign", "Campaign", "text", 120),
            _col("channel", "Channel", "badge", 90),
            _col("impressions", "Impressions", "number", 100),
            _col("clicks", "Clicks", "number", 80),
            _col("conversions", "Conversions", "number", 100),
            _col("amount", "Spend (₱)", "currency", 100),
            _col("status", "Status", "status", 90),
        ),
    ),
]

DOMAIN_SCHEMAS: Mapping[str, DomainSchema] = MappingProxyType({s.id: s for s in _SCHEMAS})


def get_domain_schema(domain_id: Optional[str]) -> DomainSchema:
    """Look up a schema by id. Unknown or missing ids fall back to the default domain."""
    return DOMAIN_SCHEMAS.get(domain_id or "") or DOMAIN_SCHEMAS[settings.DEFAULT_DOMAIN]
