from fastapi import APIRouter, Depends, Query

from field_dispatch.api.api_v1.deps import get_identity, get_job_service
from field_dispatch.core.capabilities import Identity
from field_dispatch.core.config import settings
from field_dispatch.core.pagination import next_cursor, paginate
from field_dispatch.models.enums import JobStatus
from field_dispatch.schemas.common import CursorPage
from field_dispatch.schemas.job import (
    AvailableJobOut,
    ClientCancelRequest,
    CreateJobRequest,
    JobOut,
    StartJobRequest,
    SubmitJobRequest,
)
from field_dispatch.services.job_service import JobService
from field_dispatch.services.serializers import available_job_out, job_out

router = APIRouter(prefix="/jobs")


@router.post("", response_model=JobOut, status_code=201)
async def create_job(
    request: CreateJobRequest,
    identity: Identity = Depends(get_identity),
    svc: JobService = Depends(get_job_service),
):
    row = await svc.create(identity, request)
    return job_out(row)


@router.get("", response_model=CursorPage[JobOut])
async def list_organization_jobs(
    status: JobStatus | None = Query(default=None),
    limit: int = Query(default=settings.page_size_default, ge=1),
    cursor: str | None = Query(default=None),
    identity: Identity = Depends(get_identity),
    svc: JobService = Depends(get_job_service),
):
    page = paginate(limit, cursor, settings.page_size_default, settings.page_size_max)
    rows = await svc.list_for_organization(identity, page, status)
    cursor_out = next_cursor(page, len(rows))
    return CursorPage[JobOut](
        items=[job_out(r) for r in rows[: page.limit]],
        next_cursor=cursor_out,
        has_more=cursor_out is not None,
    )


@router.get("/available", response_model=list[AvailableJobOut])
async def list_available_jobs(
    limit: int = Query(default=settings.page_size_default, ge=1, le=settings.page_size_max),
    identity: Identity = Depends(get_identity),
    svc: JobService = Depends(get_job_service),
):
    rows = await svc.list_available(identity, limit)
    return [available_job_out(job, miles) for job, miles in rows]


@router.get("/mine/active", response_model=list[JobOut])
async def list_my_active_jobs(
    identity: Identity = Depends(get_identity),
    svc: JobService = Depends(get_job_service),
):
    rows = await svc.list_my_active(identity)
    return [job_out(r) for r in rows]


@router.get("/mine/history", response_model=CursorPage[JobOut])
async def list_my_job_history(
    limit: int = Query(default=settings.page_size_default, ge=1),
    cursor: str | None = Query(default=None),
    identity: Identity = Depends(get_identity),
    svc: JobService = Depends(get_job_service),
):
    page = paginate(limit, cursor, settings.page_size_default, settings.page_size_max)
    rows = await svc.list_my_history(identity, page)
    cursor_out = next_cursor(page, len(rows))
    return CursorPage[JobOut](
        items=[job_out(r) for r in rows[: page.limit]],
        next_cursor=cursor_out,
        has_more=cursor_out is not None,
    )


@router.get("/{job_id}", response_model=JobOut)
async def get_job(
    job_id: str,
    identity: Identity = Depends(get_identity),
    svc: JobService = Depends(get_job_service),
):
    row = await svc.get_for(identity, job_id)
    return job_out(row)


@router.post("/{job_id}/dispatch", response_model=JobOut)
async def dispatch_job(
    job_id: str,
    identity: Identity = Depends(get_identity),
    svc: JobService = Depends(get_job_service),
):
    row = await svc.dispatch(identity, job_id)
    return job_out(row)


@router.post("/{job_id}/accept", response_model=JobOut)
async def accept_job(
    job_id: str,
    identity: Identity = Depends(get_identity),
    svc: JobService = Depends(get_job_service),
):
    row = await svc.accept(identity, job_id)
    return job_out(row)


@router.post("/{job_id}/start", response_model=JobOut)
async def start_job(
    job_id: str,
    request: StartJobRequest,
    identity: Identity = Depends(get_identity),
    svc: JobService = Depends(get_job_service),
):
    row = await svc.start(identity, job_id, request.latitude, request.longitude)
    return job_out(row)


@router.post("/{job_id}/submit", response_model=JobOut)
async def submit_job(
    job_id: str,
    request: SubmitJobRequest | None = None,
    identity: Identity = Depends(get_identity),
    svc: JobService = Depends(get_job_service),
):
    row = await svc.submit(identity, job_id, request.notes if request else None)
    return job_out(row)


@router.post("/{job_id}/cancel", response_model=JobOut)
async def cancel_job(
    job_id: str,
    request: ClientCancelRequest | None = None,
    identity: Identity = Depends(get_identity),
    svc: JobService = Depends(get_job_service),
):
    row = await svc.client_cancel(identity, job_id, request.reason if request else None)
    return job_out(row)
