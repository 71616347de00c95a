"""
Test doubles and data helpers shared by the test modules.

- ManualClock: virtual time for staged runs
- RecordingBroker / RecordingEmailSender: keep what would have been delivered
- SequenceFaultPolicy: scripted fault flags, one per run
- seed_transactions / insert_job: put rows in the test database
- Harness: a fully wired pipeline on virtual time (built by the make_harness fixture)
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from models.enums import JobStatus
from models.transaction import Transaction
from notifications.email import EmailNotification, NotificationError
from pipeline.engine import ExportPipeline
from pipeline.recovery import RecoverySupervisor
from pipeline.retry import RetryHandler
from pipeline.runner import RunScheduler
from services.exports import ExportService
from store.jobs import JobStore

START = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


# ── Virtual time ────────────────────────────────────────────────

class ManualClock:
    """
    Virtual time for staged runs.

    `clock()` returns the current virtual instant; `clock.sleep(s)` parks the
    caller until `advance()` moves virtual time past its deadline. Between
    wake-ups, `advance()` waits for every run to park again (or finish), so
    the database writes each stage makes are done before time moves on.
    """

    SETTLE_POLL_SECONDS = 0.005
    SETTLE_TIMEOUT_SECONDS = 5.0

    def __init__(self, start: datetime = START):
        self.start = start
        self.elapsed = 0.0
        self._sleepers: list[tuple[float, asyncio.Future]] = []

    def __call__(self) -> datetime:
        return self.start + timedelta(seconds=self.elapsed)

    async def sleep(self, seconds: float) -> None:
        future = asyncio.get_running_loop().create_future()
        self._sleepers.append((self.elapsed + seconds, future))
        try:
            await future
        finally:
            self._sleepers = [s for s in self._sleepers if s[1] is not future]

    def parked(self) -> int:
        return sum(1 for _, future in self._sleepers if not future.done())

    async def settle(self, scheduler: RunScheduler) -> None:
        """Wait until every pending run is parked on sleep() or has finished."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.SETTLE_TIMEOUT_SECONDS
        while loop.time() < deadline:
            await asyncio.sleep(self.SETTLE_POLL_SECONDS)
            if self.parked() >= scheduler.pending_count():
                return
        raise AssertionError("staged runs did not settle")

    async def advance(self, seconds: float, scheduler: RunScheduler) -> None:
        target = self.elapsed + seconds
        await self.settle(scheduler)
        while True:
            due = sorted(
                (s for s in self._sleepers if not s[1].done() and s[0] <= target + 1e-9),
                key=lambda s: s[0],
            )
            if not due:
                break
            wake_at, future = due[0]
            self.elapsed = max(self.elapsed, wake_at)
            future.set_result(None)
            await self.settle(scheduler)
        self.elapsed = target

    def shift(self, delta: timedelta) -> None:
        """Move wall-clock time without waking anything (e.g. to age a job past the stuck threshold)."""
        self.start += delta


# ── Recording doubles ───────────────────────────────────────────

class RecordingBroker:
    """Stands in for NotificationBroker; keeps every published event."""

    def __init__(self, fail: bool = False):
        self.published = []       # (topic, event)
        self.user_published = []  # (user_id, event)
        self.fail = fail

    async def publish(self, event, topic: str = "jobs") -> int:
        if self.fail:
            raise ConnectionError("redis is down")
        self.published.append((topic, event))
        return 1

    async def publish_to_user(self, user_id: str, event) -> int:
        if self.fail:
            raise ConnectionError("redis is down")
        self.user_published.append((user_id, event))
        return 1

    def events_for(self, job_id: str) -> list:
        return [event for _, event in self.published if event.job_id == job_id]

    def kinds_for(self, job_id: str) -> list[str]:
        return [event.kind.value for event in self.events_for(job_id)]


class RecordingEmailSender:

    def __init__(self, fail: bool = False):
        self.sent: list[EmailNotification] = []
        self.fail = fail

    def send(self, notification: EmailNotification) -> None:
        if self.fail:
            raise NotificationError("mail server refused connection")
        self.sent.append(notification)


class SequenceFaultPolicy:
    """Returns the given fault flags in order, one per run."""

    def __init__(self, *flags: bool):
        self._flags = list(flags)

    def should_fail(self, job_id: str) -> bool:
        return self._flags.pop(0)


async def seed_transactions(session_factory, rows: list[dict]) -> None:
    """Insert transactions; each dict overrides the defaults of one row."""
    async with session_factory() as session:
        for i, row in enumerate(rows):
            values = {
                "transaction_id": f"TXN-{i:06d}",
                "timestamp": START - timedelta(hours=i),
                "region": "NCR",
                "type": "PURCHASE",
                "amount": Decimal("100.00"),
                "status": "COMPLETED",
                "customer": "CUST-00001",
            }
            values.update(row)
            session.add(Transaction(**values))
        await session.commit()


async def insert_job(store: JobStore, job_id: str = "job-test", **overrides):
    fields = {
        "job_id": job_id,
        "name": "Detail Report - 2025-01-15",
        "report_type": "detail",
        "format": "pdf",
        "status": JobStatus.QUEUED.value,
        "progress": 0,
        "total_rows": 50_000,
        "processed_rows": 0,
        "run_seq": 1,
        "filters": {"domain": "ecommerce", "report_type": "detail", "format": "pdf"},
        "submitted_at": START,
    }
    fields.update(overrides)
    return await store.create_job(**fields)


# ── Pipeline harness ────────────────────────────────────────────

@dataclass
class Harness:
    store: JobStore
    pipeline: ExportPipeline
    retry: RetryHandler
    recovery: RecoverySupervisor
    service: ExportService
    scheduler: RunScheduler
    clock: ManualClock
    broker: RecordingBroker
    email: RecordingEmailSender

    async def advance(self, units: float) -> None:
        await self.clock.advance(units * self.scheduler.time_unit, self.scheduler)

