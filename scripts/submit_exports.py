"""
Demo script — submits one export of every report type through the HTTP API.

Usage:
    python -m scripts.submit_exports

This creates:
- a detail ledger (PDF) for the last 30 days
- a regional summary (XLSX) for two regions
- an exception report (PDF) with an email recipient (check MailHog on :8025)
- a per-customer booklet (XLSX) for the whole dataset
- a stuck job, then triggers recovery so it is picked up immediately

Run this after `python -m scripts.seed_transactions` and with the API up.
Each export has a 20% chance of failing; retry it with
    curl -X POST http://localhost:8000/api/reports/exports/<job_id>/retry
"""

from datetime import date, timedelta

import httpx

BASE_URL = "http://localhost:8000"


def submit():
    client = httpx.Client(base_url=BASE_URL, timeout=10.0)
    today = date.today()

    exports = [
        {
            "report_type": "detail",
            "format": "pdf",
            "date_range": {"start": (today - timedelta(days=30)).isoformat(), "end": today.isoformat()},
        },
        {
            "report_type": "summary",
            "format": "xlsx",
            "regions": ["NCR", "Visayas"],
        },
        {
            "report_type": "exception",
            "format": "pdf",
            "email": "ops@example.com",
        },
        {
            "report_type": "booklet",
            "format": "xlsx",
        },
    ]

    print(f"Submitting {len(exports)} exports to {BASE_URL}...\n")

    for export in exports:
        resp = client.post("/api/reports/exports", json=export)
        resp.raise_for_status()
        data = resp.json()
        print(f"  [{data['status']}] {data['name']} — {data['total_rows']} rows (id: {data['job_id']})")

    stuck = client.post("/api/admin/create-stuck-job")
    stuck.raise_for_status()
    print(f"\n  [processing] stuck job {stuck.json()['job_id']} (started 5 minutes ago)")

    recovered = client.post("/api/admin/recover-stuck-jobs", params={"threshold_minutes": 2})
    recovered.raise_for_status()
    print(f"  recovered {recovered.json()['recovered']} stuck job(s)")

    print("\nDone! Exports finish in ~13 seconds.")
    print("Check status:  curl http://localhost:8000/api/reports/exports")
    print("Statistics:    curl http://localhost:8000/api/admin/stats")


if __name__ == "__main__":
    submit()
