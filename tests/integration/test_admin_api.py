from datetime import datetime, timedelta, timezone
from decimal import Decimal

from field_dispatch.models.enums import JobStatus, PaymentStatus


def _admin():
    return {"X-User-Id": "admin-1", "X-User-Role": "ADMIN"}


def test_sla_stats_and_breach_filter(client, seed):
    now = datetime.now(timezone.utc)
    late = seed.job(status=JobStatus.IN_PROGRESS, assigned_appraiser_id="appr-1", sla_due_at=now - timedelta(hours=2))
    seed.job(status=JobStatus.COMPLETED, assigned_appraiser_id="appr-1", sla_due_at=now - timedelta(hours=5))
    seed.job(status=JobStatus.DISPATCHED)
    seed.job(status=JobStatus.PENDING_DISPATCH)

    stats = client.get("/api/v1/admin/jobs/sla_stats", headers=_admin())
    assert stats.status_code == 200, stats.text
    body = stats.json()
    assert body["pending_dispatch"] == 1
    assert body["dispatched"] == 1
    assert body["active"] == 1
    assert body["breached"] == 1
    assert body["breached_jobs"][0]["job_id"] == late.job_id
    assert body["breached_jobs"][0]["hours_overdue"] == 2.0
    assert body["breached_jobs"][0]["city"] == "New York"

    breached = client.get("/api/v1/admin/jobs", params={"sla_breach": "true"}, headers=_admin())
    assert [j["job_id"] for j in breached.json()["items"]] == [late.job_id]

    counts = client.get("/api/v1/admin/jobs/status_counts", headers=_admin())
    assert counts.json()["COMPLETED"] == 1
    assert counts.json()["FAILED"] == 0

    scan = client.post("/api/v1/admin/jobs/sla_scan", headers=_admin())
    assert scan.json() == {"breached": 1, "job_ids": [late.job_id]}


def test_admin_job_listing_paginates(client, seed):
    for _ in range(3):
        seed.job()

    first = client.get("/api/v1/admin/jobs", params={"limit": 2}, headers=_admin())
    assert first.status_code == 200, first.text
    assert len(first.json()["items"]) == 2
    assert first.json()["has_more"] is True

    second = client.get(
        "/api/v1/admin/jobs",
        params={"limit": 2, "cursor": first.json()["next_cursor"]},
        headers=_admin(),
    )
    assert len(second.json()["items"]) == 1
    assert second.json()["has_more"] is False

    filtered = client.get("/api/v1/admin/jobs", params={"status": "COMPLETED"}, headers=_admin())
    assert filtered.json()["items"] == []


def test_bulk_approve_reports_each_job(client, seed):
    ready = seed.job(status=JobStatus.UNDER_REVIEW, assigned_appraiser_id="appr-1")
    early = seed.job(status=JobStatus.IN_PROGRESS, assigned_appraiser_id="appr-1")

    resp = client.post(
        "/api/v1/admin/jobs/bulk_approve",
        json={"job_ids": [ready.job_id, early.job_id]},
        headers=_admin(),
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["succeeded"] == [ready.job_id]
    assert body["failed_count"] == 1
    assert body["failed"][0]["job_id"] == early.job_id
    assert body["failed"][0]["code"] == "invalid_transition"

    summary = client.get("/api/v1/admin/payouts/summary", headers=_admin()).json()
    assert [p["related_job_id"] for p in summary["pending_payouts"]] == [ready.job_id]


def test_bulk_cancel_validates_reason(client, seed):
    job = seed.job()
    resp = client.post("/api/v1/admin/jobs/bulk_cancel", json={"job_ids": [job.job_id], "reason": "no"}, headers=_admin())
    assert resp.status_code == 422, resp.text

    ok = client.post(
        "/api/v1/admin/jobs/bulk_cancel",
        json={"job_ids": [job.job_id], "reason": "Duplicate order"},
        headers=_admin(),
    )
    assert ok.json()["succeeded"] == [job.job_id]


def test_reassign_requires_known_verified_appraiser(client, seed):
    job = seed.job(status=JobStatus.ACCEPTED, assigned_appraiser_id="appr-1")
    seed.appraiser(user_id="appr-2")

    missing = client.post(
        f"/api/v1/admin/jobs/{job.job_id}/reassign",
        json={"appraiser_id": "ghost", "reason": "Reassigning work"},
        headers=_admin(),
    )
    assert missing.status_code == 404, missing.text
    assert missing.json()["detail"]["code"] == "appraiser_not_found"

    moved = client.post(
        f"/api/v1/admin/jobs/{job.job_id}/reassign",
        json={"appraiser_id": "appr-2", "reason": "Reassigning work"},
        headers=_admin(),
    )
    assert moved.status_code == 200, moved.text
    assert moved.json()["assigned_appraiser_id"] == "appr-2"

    cancelled = client.post(
        f"/api/v1/admin/jobs/{job.job_id}/cancel",
        json={"reason": "Client closed the order"},
        headers=_admin(),
    )
    assert cancelled.json()["status"] == "CANCELLED"
    assert cancelled.json()["assigned_appraiser_id"] == "appr-2"


def test_payout_retry_and_sweep(client, seed):
    seed.appraiser(user_id="appr-1")
    failed = seed.payment("appr-1", Decimal("80.00"), status=PaymentStatus.FAILED)
    stuck = seed.payment(
        "appr-1",
        Decimal("40.00"),
        status=PaymentStatus.PROCESSING,
        updated_at=datetime.now(timezone.utc) - timedelta(hours=2),
    )

    sweep = client.post("/api/v1/admin/payouts/sweep", headers=_admin())
    assert sweep.status_code == 200, sweep.text
    assert sweep.json()["marked_failed"] == 1

    retry = client.post(
        "/api/v1/admin/payouts/retry",
        json={"payment_ids": [failed.payment_id, stuck.payment_id], "reason": "Gateway back online"},
        headers=_admin(),
    )
    assert retry.status_code == 200, retry.text
    assert sorted(retry.json()["retried"]) == sorted([failed.payment_id, stuck.payment_id])

    summary = client.get("/api/v1/admin/payouts/summary", headers=_admin()).json()
    assert Decimal(str(summary["total_pending"])) == Decimal("120")
