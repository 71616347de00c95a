"""
API integration tests for /api/reports endpoints.

These use the test HTTP client from conftest.py, which talks to the FastAPI
app with a SQLite DB, fake Redis and the virtual-time export service.
Staged runs only move when the test calls harness.advance().
"""

from datetime import timedelta

import pytest

from models.enums import JobStatus
from tests.helpers import START, insert_job, seed_transactions


@pytest.mark.asyncio
async def test_submit_export(client, harness, session_factory):
    """POST /exports should create a queued job with total_rows resolved from the filters."""
    await seed_transactions(session_factory, [{"region": "NCR"}, {"region": "NCR"}, {"region": "Visayas"}])

    response = await client.post("/api/reports/exports", json={
        "report_type": "summary",
        "format": "xlsx",
        "regions": ["NCR"],
    })

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "queued"
    assert data["total_rows"] == 2
    assert data["progress"] == 0
    assert data["name"] == "Summary Report - 2025-01-15"
    assert data["job_id"].startswith("job-")
    assert data["filters"]["regions"] == ["NCR"]
    assert harness.broker.kinds_for(data["job_id"]) == ["queued"]


@pytest.mark.asyncio
async def test_submitted_export_runs_to_completion(client, harness, session_factory):
    await seed_transactions(session_factory, [{} for _ in range(4)])
    job_id = (await client.post("/api/reports/exports", json={"report_type": "detail", "format": "pdf"})).json()["job_id"]

    await harness.advance(13)

    data = (await client.get(f"/api/reports/exports/{job_id}")).json()
    assert data["status"] == "completed"
    assert data["progress"] == 100
    assert data["processed_rows"] == 4
    assert data["download_url"] == f"/api/downloads/{job_id}"
    assert harness.broker.kinds_for(job_id) == ["queued", "progress", "completed"]


@pytest.mark.asyncio
async def test_submit_export_rejects_unknown_domain(client, store):
    response = await client.post("/api/reports/exports", json={
        "domain": "martian",
        "report_type": "detail",
        "format": "pdf",
    })

    assert response.status_code == 422
    assert await store.list_jobs() == []


@pytest.mark.asyncio
async def test_submit_export_requires_report_type(client):
    response = await client.post("/api/reports/exports", json={"format": "pdf"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_submit_export_rejects_reversed_date_range(client):
    response = await client.post("/api/reports/exports", json={
        "report_type": "detail",
        "format": "pdf",
        "date_range": {"start": "2025-02-01", "end": "2025-01-01"},
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_export_not_found(client):
    response = await client.get("/api/reports/exports/job-missing")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_exports_newest_first(client, store):
    await insert_job(store, "job-old", submitted_at=START - timedelta(hours=1))
    await insert_job(store, "job-new", submitted_at=START)

    response = await client.get("/api/reports/exports", params={"limit": 10})

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert [j["job_id"] for j in data["jobs"]] == ["job-new", "job-old"]


@pytest.mark.asyncio
async def test_retry_failed_export(client, store, harness):
    await insert_job(store, "job-f", status=JobStatus.FAILED.value, progress=35, error_message="boom")

    response = await client.post("/api/reports/exports/job-f/retry")

    assert response.status_code == 202
    data = response.json()
    assert data["status"] == "queued"
    assert data["error_message"] is None
    assert harness.broker.kinds_for("job-f") == ["queued"]


@pytest.mark.asyncio
async def test_retry_non_failed_export_conflicts(client, store):
    await insert_job(store, "job-c", status=JobStatus.COMPLETED.value, progress=100)

    response = await client.post("/api/reports/exports/job-c/retry")

    assert response.status_code == 409
    assert "Only failed jobs" in response.json()["detail"]
    assert (await store.get_job("job-c")).status == JobStatus.COMPLETED.value


@pytest.mark.asyncio
async def test_retry_unknown_export(client):
    response = await client.post("/api/reports/exports/job-missing/retry")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_preview_defaults_to_detail(client, session_factory):
    await seed_transactions(session_factory, [{"customer": f"C{i}"} for i in range(5)])

    response = await client.post("/api/reports/preview", json={"page": 2, "page_size": 2})

    assert response.status_code == 200
    data = response.json()
    assert data["label"] == "Detailed Transaction Ledger"
    assert data["total"] == 5
    assert data["total_pages"] == 3
    assert [r["transactionId"] for r in data["rows"]] == ["TXN-000002", "TXN-000003"]
    assert data["columns"][0] == {"key": "transactionId", "label": "Order ID", "type": "text", "width": 130}
    assert data["grouped"] is False


@pytest.mark.asyncio
async def test_preview_other_report_type(client, session_factory):
    await seed_transactions(session_factory, [
        {"region": "NCR", "status": "FAILED"},
        {"region": "NCR", "status": "COMPLETED"},
        {"region": "Visayas", "status": "DENIED"},
    ])

    exceptions = (await client.post("/api/reports/preview", json={"report_type": "exception"})).json()
    assert exceptions["label"] == "Exception Report"
    assert {r["status"] for r in exceptions["rows"]} == {"FAILED", "DENIED"}
    assert exceptions["total"] == 3

    summary = (await client.post("/api/reports/preview", json={"report_type": "summary"})).json()
    assert {r["region"]: r["count"] for r in summary["rows"]} == {"NCR": 2, "Visayas": 1}


@pytest.mark.asyncio
async def test_preview_rejects_bad_page(client):
    response = await client.post("/api/reports/preview", json={"page": 0})
    assert response.status_code == 422
