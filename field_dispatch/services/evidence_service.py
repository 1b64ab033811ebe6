from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from field_dispatch.core.capabilities import Capability, Identity, require_capability, require_choice
from field_dispatch.core.config import EvidencePolicy, settings
from field_dispatch.core.errors import invalid_transition, not_found, validation_failure
from field_dispatch.core.mime_utils import effective_mime
from field_dispatch.models import Evidence, Job, Property, now_utc
from field_dispatch.models.enums import JobStatus
from field_dispatch.schemas.evidence import ConfirmEvidenceRequest, UploadUrlRequest
from field_dispatch.services import evidence_integrity
from field_dispatch.storage import keys
from field_dispatch.storage.object_store import ObjectStore, object_store

logger = logging.getLogger(__name__)

# Evidence may be added or removed only while the appraiser is on the job.
EDITABLE_STATUSES = frozenset({JobStatus.ACCEPTED, JobStatus.IN_PROGRESS})


class EvidenceService:
    def __init__(
        self,
        session: AsyncSession,
        policy: EvidencePolicy | None = None,
        store: ObjectStore | None = None,
    ):
        self.session = session
        self.policy = policy or settings.evidence
        self.store = store or object_store

    async def _job(self, job_id: str) -> Job:
        job = await self.session.get(Job, job_id)
        if not job:
            raise not_found("Job", {"job_id": job_id})
        return job

    async def get(self, evidence_id: str) -> Evidence:
        row = await self.session.get(Evidence, evidence_id)
        if not row:
            raise not_found("Evidence", {"evidence_id": evidence_id})
        return row

    async def _editable_job(self, identity: Identity, job_id: str, action: str) -> Job:
        require_capability(identity, Capability.appraiser)
        job = await self._job(job_id)
        require_capability(identity, Capability.assigned_appraiser, job)
        if JobStatus(job.status) not in EDITABLE_STATUSES:
            raise invalid_transition(job.status, job.status, f"Cannot {action} evidence for a job in {job.status} status")
        return job

    def _check_file(self, mime_type: str, file_name: str, file_size: int) -> str:
        mime = effective_mime(mime_type, file_name)
        require_choice(
            mime,
            set(self.policy.allowed_mime_types),
            message="File type not allowed",
            field="mime_type",
        )
        if file_size > self.policy.max_file_size_bytes:
            raise validation_failure(
                "File too large",
                {"file_size": file_size, "max_file_size_bytes": self.policy.max_file_size_bytes},
            )
        return mime

    async def get_upload_url(self, identity: Identity, job_id: str, request: UploadUrlRequest) -> dict:
        job = await self._editable_job(identity, job_id, "upload")
        mime = self._check_file(request.file_type, request.file_name, request.file_size)

        key = keys.evidence_key(job.job_id, request.category, request.file_name)
        return await self.store.get_upload_url(key, mime, self.policy.upload_url_ttl_seconds)

    async def confirm(self, identity: Identity, job_id: str, request: ConfirmEvidenceRequest) -> Evidence:
        job = await self._editable_job(identity, job_id, "add")
        mime = self._check_file(request.mime_type, request.file_name, request.file_size)
        if not keys.belongs_to_job(request.file_key, job.job_id):
            raise validation_failure("File key does not belong to this job", {"file_key": request.file_key})

        prop = await self.session.get(Property, job.property_id)
        assessment = evidence_integrity.assess(
            file_key=request.file_key,
            file_size=request.file_size,
            captured_at=request.captured_at,
            latitude=request.latitude,
            longitude=request.longitude,
            property_latitude=prop.latitude if prop else None,
            property_longitude=prop.longitude if prop else None,
            job_started_at=job.started_at,
            policy=self.policy,
            now=now_utc(),
        )

        row = Evidence(
            job_id=job.job_id,
            media_type=request.media_type.value,
            category=request.category,
            file_name=request.file_name,
            file_key=request.file_key,
            file_url=self.store.get_public_url(request.file_key),
            file_size=request.file_size,
            mime_type=mime,
            captured_at=request.captured_at,
            latitude=request.latitude,
            longitude=request.longitude,
            integrity_hash=assessment.integrity_hash,
            verified=assessment.verified,
            timestamp_suspicious=assessment.timestamp_suspicious,
            location_suspicious=assessment.location_suspicious,
            distance_from_property_miles=assessment.distance_from_property_miles,
            exif_json=request.exif,
            notes=request.notes,
        )
        self.session.add(row)
        await self.session.commit()
        await self.session.refresh(row)

        if not assessment.verified:
            logger.warning(
                "evidence %s on job %s flagged: timestamp=%s location=%s distance_mi=%s",
                row.evidence_id,
                job.job_id,
                assessment.timestamp_suspicious,
                assessment.location_suspicious,
                assessment.distance_from_property_miles,
            )
        return row

    async def list_for_job(self, identity: Identity, job_id: str, category: str | None = None) -> list[Evidence]:
        job = await self._job(job_id)
        require_capability(identity, Capability.job_viewer, job)

        stmt = select(Evidence).where(Evidence.job_id == job_id)
        if category:
            stmt = stmt.where(Evidence.category == category)
        stmt = stmt.order_by(Evidence.uploaded_at.asc(), Evidence.evidence_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def counts(self, identity: Identity, job_id: str) -> dict:
        job = await self._job(job_id)
        require_capability(identity, Capability.job_viewer, job)

        stmt = select(Evidence.category, func.count()).where(Evidence.job_id == job_id).group_by(Evidence.category)
        by_category = {}
        for category, count in (await self.session.execute(stmt)).all():
            by_category[category or "uncategorized"] = int(count)
        return {"job_id": job_id, "total": sum(by_category.values()), "by_category": by_category}

    async def delete(self, identity: Identity, evidence_id: str) -> dict:
        row = await self.get(evidence_id)
        await self._editable_job(identity, row.job_id, "delete")

        storage_deleted = True
        try:
            await self.store.delete_file(row.file_key)
        except Exception:
            storage_deleted = False
            logger.exception("evidence %s: failed to delete stored file %s", evidence_id, row.file_key)

        await self.session.delete(row)
        await self.session.commit()
        return {"ok": True, "evidence_id": evidence_id, "storage_deleted": storage_deleted}

    async def get_download_url(self, identity: Identity, evidence_id: str) -> str:
        row = await self.get(evidence_id)
        job = await self._job(row.job_id)
        require_capability(identity, Capability.job_viewer, job)
        return await self.store.get_download_url(row.file_key, self.policy.download_url_ttl_seconds)

    async def verify(self, identity: Identity, evidence_id: str) -> dict:
        row = await self.get(evidence_id)
        job = await self._job(row.job_id)
        require_capability(identity, Capability.job_viewer, job)

        expected = evidence_integrity.integrity_hash(row.file_key, row.file_size, row.captured_at)
        return {
            "evidence_id": row.evidence_id,
            "verified": row.verified,
            "integrity_hash": row.integrity_hash,
            "hash_matches": expected == row.integrity_hash,
            "has_geotag": row.latitude is not None and row.longitude is not None,
            "has_exif": bool(row.exif_json),
            "captured_at": row.captured_at,
            "flags": {
                "timestamp_suspicious": row.timestamp_suspicious,
                "location_suspicious": row.location_suspicious,
                "distance_from_property_miles": row.distance_from_property_miles,
            },
        }

    async def mark_verified(self, identity: Identity, evidence_id: str, verified: bool) -> Evidence:
        require_capability(identity, Capability.admin)
        row = await self.get(evidence_id)
        row.verified = verified
        await self.session.commit()
        await self.session.refresh(row)
        logger.info("evidence %s marked verified=%s by %s", evidence_id, verified, identity.user_id)
        return row
