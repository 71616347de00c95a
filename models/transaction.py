"""
Transaction ORM model — the fact table that previews and exports read from.

Rows are handed to the view materializer as plain dicts keyed by the domain
column keys (transactionId, timestamp, region, ...), see `to_row()`.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, Integer, DateTime, Numeric, Index
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        Index("transactions_region_timestamp_idx", "region", "timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    transaction_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    region: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="PENDING", index=True)
    customer: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    def to_row(self) -> dict:
        return {
            "transactionId": self.transaction_id,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "region": self.region,
            "type": self.type,
            "amount": float(self.amount) if self.amount is not None else 0.0,
            "status": self.status,
            "customer": self.customer,
        }

    def __repr__(self) -> str:
        return f"<Transaction {self.transaction_id} {self.region} {self.status}>"
