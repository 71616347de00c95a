"""
Tests for stuck-job recovery.

The harness clock starts at START, so a job "started two minutes ago" has
started_at = START - 2 minutes.
"""

from datetime import timedelta

import pytest

from models.enums import JobStatus
from pipeline.recovery import RECOVERY_NOTE
from tests.helpers import START, insert_job

THRESHOLD = timedelta(minutes=2)


async def _insert_processing(store, job_id, started_ago, **overrides):
    fields = dict(
        status=JobStatus.PROCESSING.value,
        progress=45,
        total_rows=10_000,
        processed_rows=4_500,
        started_at=START - started_ago,
    )
    fields.update(overrides)
    return await insert_job(store, job_id, **fields)


@pytest.mark.asyncio
async def test_recover_resets_stuck_job(harness):
    await _insert_processing(harness.store, "job-stuck", timedelta(minutes=5))

    recovered = await harness.recovery.recover(THRESHOLD)

    assert [(r.job_id, r.total_rows, r.run_seq) for r in recovered] == [("job-stuck", 10_000, 2)]
    job = await harness.store.get_job("job-stuck")
    assert job.status == JobStatus.QUEUED.value
    assert job.progress == 0
    assert job.processed_rows == 0
    assert job.started_at is None
    assert job.error_message == RECOVERY_NOTE
    assert job.run_seq == 2


@pytest.mark.asyncio
async def test_threshold_boundary_is_inclusive(harness):
    await _insert_processing(harness.store, "job-exact", THRESHOLD)
    await _insert_processing(harness.store, "job-young", THRESHOLD - timedelta(seconds=1))

    recovered = await harness.recovery.recover(THRESHOLD)

    assert [r.job_id for r in recovered] == ["job-exact"]
    young = await harness.store.get_job("job-young")
    assert young.status == JobStatus.PROCESSING.value
    assert young.progress == 45
    assert young.run_seq == 1


@pytest.mark.asyncio
async def test_only_processing_jobs_are_recovered(harness):
    for status in (JobStatus.QUEUED, JobStatus.COMPLETED, JobStatus.FAILED):
        await insert_job(harness.store, f"job-{status.value}", status=status.value, started_at=START - timedelta(hours=1))

    assert await harness.recovery.recover(THRESHOLD) == []
    for status in (JobStatus.QUEUED, JobStatus.COMPLETED, JobStatus.FAILED):
        assert (await harness.store.get_job(f"job-{status.value}")).status == status.value


@pytest.mark.asyncio
async def test_recovery_is_idempotent(harness):
    await _insert_processing(harness.store, "job-stuck", timedelta(minutes=5))

    first = await harness.recovery.recover(THRESHOLD)
    second = await harness.recovery.recover(THRESHOLD)

    assert len(first) == 1
    assert second == []
    assert (await harness.store.get_job("job-stuck")).run_seq == 2


@pytest.mark.asyncio
async def test_missing_total_rows_falls_back_and_is_persisted(harness):
    await _insert_processing(harness.store, "job-zero", timedelta(minutes=5), total_rows=0, processed_rows=0)

    recovered = await harness.recovery.recover(THRESHOLD)

    assert recovered[0].total_rows == 50_000
    assert (await harness.store.get_job("job-zero")).total_rows == 50_000


@pytest.mark.asyncio
async def test_recover_and_restart_skips_queue_delay(harness):
    await _insert_processing(harness.store, "job-stuck", timedelta(minutes=5))

    recovered = await harness.recovery.recover_and_restart(THRESHOLD)
    assert len(recovered) == 1
    await harness.clock.settle(harness.scheduler)

    job = await harness.store.get_job("job-stuck")
    assert job.status == JobStatus.PROCESSING.value
    assert job.progress == 10
    assert job.processed_rows == 1_000
    assert job.error_message is None

    await harness.advance(8)
    job = await harness.store.get_job("job-stuck")
    assert job.status == JobStatus.COMPLETED.value
    assert job.processed_rows == 10_000
    assert harness.broker.kinds_for("job-stuck") == ["progress", "completed"]


@pytest.mark.asyncio
async def test_recovery_with_nothing_stuck(harness):
    assert await harness.recovery.recover_and_restart(THRESHOLD) == []
    assert harness.scheduler.pending_count() == 0
