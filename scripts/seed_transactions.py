"""
Seed script — bulk-inserts synthetic transactions for previews and exports.

Usage:
    python -m scripts.seed_transactions            # 50,000 rows over the last 90 days
    python -m scripts.seed_transactions 200000     # custom row count

Statuses are weighted so every report type has something to show: mostly
successful rows, a steady trickle of exception statuses for the exception
report, and a small customer pool so booklet groups have several rows each.

Uses the sync engine: this is a one-shot program, not part of the event loop.
"""

import logging
import random
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from config.settings import settings
from models.base import Base, sync_engine, SyncSessionLocal
from models.transaction import Transaction

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_ROWS = 50_000
BATCH_SIZE = 5_000
HISTORY_DAYS = 90

REGIONS = ["NCR", "Luzon", "Visayas", "Mindanao", "APAC", "Europe", "North America"]
TYPES = ["PURCHASE", "REFUND", "TRANSFER", "SUBSCRIPTION", "PAYOUT"]
STATUS_WEIGHTS = {
    "COMPLETED": 70,
    "PENDING": 12,
    "FAILED": 8,
    "DENIED": 4,
    "FLAGGED": 3,
    "RETURNED": 2,
    "DELAYED": 1,
}
CUSTOMER_POOL = 500


def _transaction(index: int, now: datetime, rng: random.Random) -> Transaction:
    return Transaction(
        transaction_id=f"TXN-{index:08d}",
        timestamp=now - timedelta(seconds=rng.randint(0, HISTORY_DAYS * 24 * 3600)),
        region=rng.choice(REGIONS),
        type=rng.choice(TYPES),
        amount=Decimal(f"{rng.uniform(50, 50_000):.2f}"),
        status=rng.choices(list(STATUS_WEIGHTS), weights=list(STATUS_WEIGHTS.values()))[0],
        customer=f"CUST-{rng.randint(1, CUSTOMER_POOL):05d}",
    )


def seed(total: int = DEFAULT_ROWS, seed_value: int = 42) -> None:
    logger.info("Ensuring database tables exist...")
    Base.metadata.create_all(sync_engine)

    rng = random.Random(seed_value)
    now = datetime.now(timezone.utc)

    with SyncSessionLocal() as session:
        start = (session.query(Transaction).count() or 0) + 1
        for offset in range(0, total, BATCH_SIZE):
            batch = [
                _transaction(start + offset + i, now, rng)
                for i in range(min(BATCH_SIZE, total - offset))
            ]
            session.add_all(batch)
            session.commit()
            logger.info(f"Inserted {offset + len(batch)}/{total} transactions")

    logger.info(f"Done! {total} transactions seeded.")


if __name__ == "__main__":
    seed(int(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_ROWS)
