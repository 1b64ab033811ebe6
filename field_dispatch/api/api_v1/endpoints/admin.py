from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from field_dispatch.api.api_v1.deps import (
    get_evidence_service,
    get_identity,
    get_job_service,
    get_payout_reconciler,
)
from field_dispatch.core.capabilities import Capability, Identity, require_capability
from field_dispatch.core.config import settings
from field_dispatch.core.pagination import next_cursor, paginate
from field_dispatch.db.session import get_session
from field_dispatch.models.enums import JobStatus
from field_dispatch.schemas.common import CursorPage
from field_dispatch.schemas.evidence import EvidenceOut, MarkVerifiedRequest
from field_dispatch.schemas.job import (
    ApproveRequest,
    BulkApproveRequest,
    BulkCancelRequest,
    BulkResult,
    JobOut,
    ReasonRequest,
    ReassignRequest,
    RevisionRequest,
)
from field_dispatch.schemas.payout import (
    PayoutBatchOut,
    PayoutSummaryOut,
    ProcessPayoutsRequest,
    RetryPayoutsOut,
    RetryPayoutsRequest,
    SweepOut,
)
from field_dispatch.schemas.sla import SLAScanOut, SLAStatsOut
from field_dispatch.services.evidence_service import EvidenceService
from field_dispatch.services.job_service import JobService
from field_dispatch.services.payout_service import PayoutReconciler
from field_dispatch.services.serializers import evidence_out, job_out, payment_out
from field_dispatch.services.sla_service import SLAService

router = APIRouter(prefix="/admin")


async def require_admin(identity: Identity = Depends(get_identity)) -> Identity:
    require_capability(identity, Capability.admin)
    return identity


# jobs


@router.get("/jobs", response_model=CursorPage[JobOut])
async def list_jobs(
    status: JobStatus | None = Query(default=None),
    sla_breach: bool = Query(default=False),
    limit: int = Query(default=settings.page_size_default, ge=1),
    cursor: str | None = Query(default=None),
    _admin: Identity = Depends(require_admin),
    svc: JobService = Depends(get_job_service),
):
    page = paginate(limit, cursor, settings.page_size_default, settings.page_size_max)
    rows = await svc.list_jobs(page, status=status, sla_breach=sla_breach)
    cursor_out = next_cursor(page, len(rows))
    return CursorPage[JobOut](
        items=[job_out(r) for r in rows[: page.limit]],
        next_cursor=cursor_out,
        has_more=cursor_out is not None,
    )


@router.get("/jobs/sla_stats", response_model=SLAStatsOut)
async def sla_stats(
    _admin: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return await SLAService(session).get_sla_stats()


@router.get("/jobs/status_counts", response_model=dict[str, int])
async def status_counts(
    _admin: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return await SLAService(session).get_status_counts()


@router.post("/jobs/sla_scan", response_model=SLAScanOut)
async def sla_scan(
    _admin: Identity = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return await SLAService(session).scan_breaches()


@router.post("/jobs/bulk_cancel", response_model=BulkResult)
async def bulk_cancel(
    request: BulkCancelRequest,
    identity: Identity = Depends(get_identity),
    svc: JobService = Depends(get_job_service),
):
    return await svc.bulk_cancel(identity, request.job_ids, request.reason)


@router.post("/jobs/bulk_approve", response_model=BulkResult)
async def bulk_approve(
    request: BulkApproveRequest,
    identity: Identity = Depends(get_identity),
    svc: JobService = Depends(get_job_service),
):
    return await svc.bulk_approve(identity, request.job_ids, request.notes)


@router.post("/jobs/{job_id}/reassign", response_model=JobOut)
async def reassign_job(
    job_id: str,
    request: ReassignRequest,
    identity: Identity = Depends(get_identity),
    svc: JobService = Depends(get_job_service),
):
    row = await svc.reassign(identity, job_id, request.appraiser_id, request.reason)
    return job_out(row)


@router.post("/jobs/{job_id}/cancel", response_model=JobOut)
async def cancel_job(
    job_id: str,
    request: ReasonRequest,
    identity: Identity = Depends(get_identity),
    svc: JobService = Depends(get_job_service),
):
    row = await svc.cancel(identity, job_id, request.reason)
    return job_out(row)


@router.post("/jobs/{job_id}/start_review", response_model=JobOut)
async def start_review(
    job_id: str,
    identity: Identity = Depends(get_identity),
    svc: JobService = Depends(get_job_service),
):
    row = await svc.start_review(identity, job_id)
    return job_out(row)


@router.post("/jobs/{job_id}/approve", response_model=JobOut)
async def approve_job(
    job_id: str,
    request: ApproveRequest | None = None,
    identity: Identity = Depends(get_identity),
    svc: JobService = Depends(get_job_service),
):
    row = await svc.approve(identity, job_id, request.notes if request else None)
    return job_out(row)


@router.post("/jobs/{job_id}/reject", response_model=JobOut)
async def reject_job(
    job_id: str,
    request: ReasonRequest,
    identity: Identity = Depends(get_identity),
    svc: JobService = Depends(get_job_service),
):
    row = await svc.reject(identity, job_id, request.reason)
    return job_out(row)


@router.post("/jobs/{job_id}/request_revision", response_model=JobOut)
async def request_revision(
    job_id: str,
    request: RevisionRequest,
    identity: Identity = Depends(get_identity),
    svc: JobService = Depends(get_job_service),
):
    row = await svc.request_revision(identity, job_id, request.reason, request.required_photos)
    return job_out(row)


# evidence


@router.post("/evidence/{evidence_id}/verified", response_model=EvidenceOut)
async def mark_evidence_verified(
    evidence_id: str,
    request: MarkVerifiedRequest,
    identity: Identity = Depends(get_identity),
    svc: EvidenceService = Depends(get_evidence_service),
):
    row = await svc.mark_verified(identity, evidence_id, request.verified)
    return evidence_out(row)


# payouts


@router.post("/payouts/process", response_model=PayoutBatchOut)
async def process_payouts(
    request: ProcessPayoutsRequest | None = None,
    admin: Identity = Depends(require_admin),
    reconciler: PayoutReconciler = Depends(get_payout_reconciler),
):
    appraiser_ids = request.appraiser_ids if request else None
    return await reconciler.process_payouts(actor_id=admin.user_id, appraiser_ids=appraiser_ids)


@router.get("/payouts/summary", response_model=PayoutSummaryOut)
async def payout_summary(
    _admin: Identity = Depends(require_admin),
    reconciler: PayoutReconciler = Depends(get_payout_reconciler),
):
    summary = await reconciler.payout_summary()
    summary["pending_payouts"] = [payment_out(p) for p in summary["pending_payouts"]]
    return summary


@router.post("/payouts/retry", response_model=RetryPayoutsOut)
async def retry_payouts(
    request: RetryPayoutsRequest,
    admin: Identity = Depends(require_admin),
    reconciler: PayoutReconciler = Depends(get_payout_reconciler),
):
    return await reconciler.retry_failed(admin.user_id, request.payment_ids, request.reason)


@router.post("/payouts/sweep", response_model=SweepOut)
async def sweep_payouts(
    _admin: Identity = Depends(require_admin),
    reconciler: PayoutReconciler = Depends(get_payout_reconciler),
):
    marked = await reconciler.sweep_stale_processing()
    return SweepOut(marked_failed=marked)
