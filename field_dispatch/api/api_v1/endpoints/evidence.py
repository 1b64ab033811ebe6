from fastapi import APIRouter, Depends, Query

from field_dispatch.api.api_v1.deps import get_evidence_service, get_identity
from field_dispatch.core.capabilities import Identity
from field_dispatch.schemas.evidence import (
    ConfirmEvidenceRequest,
    DownloadUrlOut,
    EvidenceCountsOut,
    EvidenceDeleteResponse,
    EvidenceOut,
    EvidenceVerificationOut,
    UploadUrlOut,
    UploadUrlRequest,
)
from field_dispatch.services.evidence_service import EvidenceService
from field_dispatch.services.serializers import evidence_out

router = APIRouter()


@router.post("/jobs/{job_id}/evidence/upload_url", response_model=UploadUrlOut)
async def create_upload_url(
    job_id: str,
    request: UploadUrlRequest,
    identity: Identity = Depends(get_identity),
    svc: EvidenceService = Depends(get_evidence_service),
):
    payload = await svc.get_upload_url(identity, job_id, request)
    return UploadUrlOut(
        upload_url=payload["upload_url"],
        public_url=payload["public_url"],
        file_key=payload["key"],
        expires_at=payload["expires_at"],
    )


@router.post("/jobs/{job_id}/evidence", response_model=EvidenceOut, status_code=201)
async def confirm_evidence(
    job_id: str,
    request: ConfirmEvidenceRequest,
    identity: Identity = Depends(get_identity),
    svc: EvidenceService = Depends(get_evidence_service),
):
    row = await svc.confirm(identity, job_id, request)
    return evidence_out(row)


@router.get("/jobs/{job_id}/evidence", response_model=list[EvidenceOut])
async def list_evidence(
    job_id: str,
    category: str | None = Query(default=None),
    identity: Identity = Depends(get_identity),
    svc: EvidenceService = Depends(get_evidence_service),
):
    rows = await svc.list_for_job(identity, job_id, category)
    return [evidence_out(r) for r in rows]


@router.get("/jobs/{job_id}/evidence/counts", response_model=EvidenceCountsOut)
async def evidence_counts(
    job_id: str,
    identity: Identity = Depends(get_identity),
    svc: EvidenceService = Depends(get_evidence_service),
):
    return await svc.counts(identity, job_id)


@router.delete("/evidence/{evidence_id}", response_model=EvidenceDeleteResponse)
async def delete_evidence(
    evidence_id: str,
    identity: Identity = Depends(get_identity),
    svc: EvidenceService = Depends(get_evidence_service),
):
    return await svc.delete(identity, evidence_id)


@router.post("/evidence/{evidence_id}/download_url", response_model=DownloadUrlOut)
async def create_download_url(
    evidence_id: str,
    identity: Identity = Depends(get_identity),
    svc: EvidenceService = Depends(get_evidence_service),
):
    url = await svc.get_download_url(identity, evidence_id)
    return DownloadUrlOut(url=url)


@router.get("/evidence/{evidence_id}/verify", response_model=EvidenceVerificationOut)
async def verify_evidence(
    evidence_id: str,
    identity: Identity = Depends(get_identity),
    svc: EvidenceService = Depends(get_evidence_service),
):
    return await svc.verify(identity, evidence_id)
