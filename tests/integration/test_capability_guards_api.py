from field_dispatch.core.config import settings
from field_dispatch.models.enums import JobStatus


def _admin():
    return {"X-User-Id": "admin-1", "X-User-Role": "ADMIN"}


def _appraiser(user_id):
    return {"X-User-Id": user_id, "X-User-Role": "APPRAISER"}


def _client(org="org-1"):
    return {"X-User-Id": "client-1", "X-User-Role": "CLIENT", "X-Organization-Id": org}


def test_missing_identity_is_unauthenticated(client, seed):
    job = seed.job()
    resp = client.get(f"/api/v1/jobs/{job.job_id}")
    assert resp.status_code == 401, resp.text
    assert resp.json()["detail"]["code"] == "unauthenticated"

    bad_role = client.get(f"/api/v1/jobs/{job.job_id}", headers={"X-User-Id": "u", "X-User-Role": "ROOT"})
    assert bad_role.status_code == 401, bad_role.text


def test_unknown_job_is_not_found(client, seed):
    resp = client.get("/api/v1/jobs/does-not-exist", headers=_admin())
    assert resp.status_code == 404, resp.text
    assert resp.json()["detail"]["code"] == "job_not_found"


def test_admin_routes_reject_non_admins(client, seed):
    job = seed.job(status=JobStatus.SUBMITTED, assigned_appraiser_id="appr-1")

    for path in ("/api/v1/admin/jobs", "/api/v1/admin/jobs/sla_stats", "/api/v1/admin/payouts/summary"):
        resp = client.get(path, headers=_appraiser("appr-1"))
        assert resp.status_code == 403, resp.text
        assert resp.json()["detail"]["code"] == "forbidden"

    approve = client.post(f"/api/v1/admin/jobs/{job.job_id}/approve", headers=_client())
    assert approve.status_code == 403, approve.text
    assert approve.json()["detail"]["message"] == "Admin access required"


def test_other_organization_cannot_see_job(client, seed):
    job = seed.job()
    resp = client.get(f"/api/v1/jobs/{job.job_id}", headers=_client(org="org-2"))
    assert resp.status_code == 403, resp.text
    assert client.get(f"/api/v1/jobs/{job.job_id}", headers=_client()).status_code == 200


def test_open_job_is_visible_to_any_appraiser_until_accepted(client, seed):
    job = seed.job()
    assert client.get(f"/api/v1/jobs/{job.job_id}", headers=_appraiser("appr-x")).status_code == 200

    taken = seed.job(status=JobStatus.ACCEPTED, assigned_appraiser_id="appr-1")
    assert client.get(f"/api/v1/jobs/{taken.job_id}", headers=_appraiser("appr-x")).status_code == 403
    assert client.get(f"/api/v1/jobs/{taken.job_id}", headers=_appraiser("appr-1")).status_code == 200


def test_non_assignee_cannot_start_or_upload(client, seed):
    job = seed.job(status=JobStatus.ACCEPTED, assigned_appraiser_id="appr-1")

    start = client.post(
        f"/api/v1/jobs/{job.job_id}/start",
        json={"latitude": 40.7128, "longitude": -74.0060},
        headers=_appraiser("appr-2"),
    )
    assert start.status_code == 403, start.text
    assert start.json()["detail"]["message"] == "Job not assigned to you"

    upload = client.post(
        f"/api/v1/jobs/{job.job_id}/evidence/upload_url",
        json={"file_name": "a.jpg", "file_type": "image/jpeg", "file_size": 10},
        headers=_appraiser("appr-2"),
    )
    assert upload.status_code == 403, upload.text


def test_evidence_upload_rejects_bad_files(client, seed):
    job = seed.job(status=JobStatus.IN_PROGRESS, assigned_appraiser_id="appr-1")
    path = f"/api/v1/jobs/{job.job_id}/evidence/upload_url"

    exe = client.post(
        path,
        json={"file_name": "a.exe", "file_type": "application/x-msdownload", "file_size": 10},
        headers=_appraiser("appr-1"),
    )
    assert exe.status_code == 422, exe.text
    assert exe.json()["detail"]["code"] == "validation_failure"

    huge = client.post(
        path,
        json={"file_name": "a.jpg", "file_type": "image/jpeg", "file_size": 60 * 1024 * 1024},
        headers=_appraiser("appr-1"),
    )
    assert huge.status_code == 422, huge.text
    assert huge.json()["detail"]["message"] == "File too large"


def test_evidence_is_frozen_after_submission(client, seed):
    job = seed.job(status=JobStatus.SUBMITTED, assigned_appraiser_id="appr-1")
    evidence = seed.evidence(job.job_id, 1)[0]

    resp = client.delete(f"/api/v1/evidence/{evidence.evidence_id}", headers=_appraiser("appr-1"))
    assert resp.status_code == 400, resp.text
    assert resp.json()["detail"]["code"] == "invalid_transition"


def test_client_cancel_only_before_acceptance(client, seed):
    open_job = seed.job()
    resp = client.post(f"/api/v1/jobs/{open_job.job_id}/cancel", json={"reason": "No longer needed"}, headers=_client())
    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == "CANCELLED"

    taken = seed.job(status=JobStatus.ACCEPTED, assigned_appraiser_id="appr-1")
    late = client.post(f"/api/v1/jobs/{taken.job_id}/cancel", headers=_client())
    assert late.status_code == 400, late.text
    assert late.json()["detail"]["detail"] == {"current_status": "ACCEPTED", "requested_status": "CANCELLED"}


def test_payouts_disabled_by_feature_flag(client, seed, monkeypatch):
    monkeypatch.setattr(settings, "feature_enable_payouts", False)
    resp = client.post("/api/v1/admin/payouts/process", headers=_admin())
    assert resp.status_code == 403, resp.text
    assert resp.json()["detail"]["code"] == "capability_disabled"
