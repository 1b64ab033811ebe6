from __future__ import annotations

import logging
from decimal import Decimal

from fastapi import HTTPException
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from field_dispatch.core.capabilities import Capability, Identity, has_capability, require_capability
from field_dispatch.core.config import EvidencePolicy, GeofencePolicy, SLAPolicy, settings
from field_dispatch.core.errors import conflict, error_code, error_message, forbidden, invalid_transition, not_found
from field_dispatch.core.geo import check_geofence, distance_miles
from field_dispatch.core.pagination import Page
from field_dispatch.integrations.notifications import JobNotifier
from field_dispatch.models import AppraiserProfile, Evidence, Job, Payment, Property, now_utc
from field_dispatch.models.enums import JobStatus, PaymentStatus, PaymentType, VerificationStatus
from field_dispatch.schemas.job import BulkItemFailure, BulkResult, CreateJobRequest
from field_dispatch.schemas.status_history import (
    AssignmentEvent,
    RevisionRequestedEvent,
    StatusHistory,
    TransitionEvent,
)
from field_dispatch.services.job_transitions import JobEvent, plan_transition
from field_dispatch.services.sla_service import BREACH_STATUSES

logger = logging.getLogger(__name__)


class JobService:
    def __init__(
        self,
        session: AsyncSession,
        sla_policy: SLAPolicy | None = None,
        geofence_policy: GeofencePolicy | None = None,
        evidence_policy: EvidencePolicy | None = None,
        notifier: JobNotifier | None = None,
    ):
        self.session = session
        self.sla_policy = sla_policy or settings.sla
        self.geofence_policy = geofence_policy or settings.geofence
        self.evidence_policy = evidence_policy or settings.evidence
        self.notifier = notifier or JobNotifier(session)

    # -- reads -----------------------------------------------------------

    async def get(self, job_id: str) -> Job:
        row = await self.session.get(Job, job_id)
        if not row:
            raise not_found("Job", {"job_id": job_id})
        return row

    async def get_for(self, identity: Identity, job_id: str) -> Job:
        job = await self.get(job_id)
        open_to_appraisers = (
            has_capability(identity, Capability.appraiser)
            and job.status == JobStatus.DISPATCHED.value
            and job.assigned_appraiser_id is None
        )
        if not open_to_appraisers:
            require_capability(identity, Capability.job_viewer, job)
        return job

    async def get_property(self, property_id: str) -> Property:
        row = await self.session.get(Property, property_id)
        if not row:
            raise not_found("Property", {"property_id": property_id})
        return row

    async def count_evidence(self, job_id: str) -> int:
        stmt = select(func.count()).select_from(Evidence).where(Evidence.job_id == job_id)
        return int((await self.session.execute(stmt)).scalar_one())

    async def list_jobs(self, page: Page, status: JobStatus | None = None, sla_breach: bool = False) -> list[Job]:
        stmt = select(Job)
        if status is not None:
            stmt = stmt.where(Job.status == status.value)
        if sla_breach:
            stmt = stmt.where(
                Job.status.in_([s.value for s in BREACH_STATUSES]),
                Job.sla_due_at < now_utc(),
            )
        stmt = stmt.order_by(Job.created_at.desc(), Job.job_id).offset(page.offset).limit(page.limit + 1)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_organization(self, identity: Identity, page: Page, status: JobStatus | None = None) -> list[Job]:
        if not identity.organization_id:
            raise forbidden("Organization membership required")
        stmt = select(Job).where(Job.organization_id == identity.organization_id)
        if status is not None:
            stmt = stmt.where(Job.status == status.value)
        stmt = stmt.order_by(Job.created_at.desc(), Job.job_id).offset(page.offset).limit(page.limit + 1)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_available(self, identity: Identity, limit: int) -> list[tuple[Job, float | None]]:
        require_capability(identity, Capability.appraiser)
        profile = await self.session.get(AppraiserProfile, identity.user_id)
        if not profile:
            raise not_found("Appraiser", {"user_id": identity.user_id})

        stmt = (
            select(Job, Property)
            .join(Property, Property.property_id == Job.property_id)
            .where(Job.status == JobStatus.DISPATCHED.value, Job.assigned_appraiser_id.is_(None))
            .order_by(Job.created_at.desc())
        )
        result = await self.session.execute(stmt)

        items: list[tuple[Job, float | None]] = []
        for job, prop in result.all():
            miles = None
            if None not in (profile.home_base_lat, profile.home_base_lng, prop.latitude, prop.longitude):
                miles = distance_miles(profile.home_base_lat, profile.home_base_lng, prop.latitude, prop.longitude)
                if miles > profile.coverage_radius_miles:
                    continue
            items.append((job, miles))
            if len(items) >= limit:
                break
        return items

    async def list_my_active(self, identity: Identity) -> list[Job]:
        require_capability(identity, Capability.appraiser)
        stmt = (
            select(Job)
            .where(
                Job.assigned_appraiser_id == identity.user_id,
                Job.status.in_([JobStatus.ACCEPTED.value, JobStatus.IN_PROGRESS.value]),
            )
            .order_by(Job.sla_due_at.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_my_history(self, identity: Identity, page: Page) -> list[Job]:
        require_capability(identity, Capability.appraiser)
        stmt = (
            select(Job)
            .where(
                Job.assigned_appraiser_id == identity.user_id,
                Job.status.in_([JobStatus.COMPLETED.value, JobStatus.CANCELLED.value, JobStatus.FAILED.value]),
            )
            .order_by(Job.completed_at.desc(), Job.job_id)
            .offset(page.offset)
            .limit(page.limit + 1)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # -- atomic write ----------------------------------------------------

    async def _apply(self, job: Job, target: JobStatus, entry, values: dict | None = None, *conditions, conflict_message: str | None = None) -> None:
        """Compare-and-swap the job to ``target`` and append ``entry`` to its history.

        The update only matches when status and version are still what this
        session read, so a transition committed in between makes it a no-op.
        """
        history = StatusHistory.load(job.status_history_json).append(entry)
        stmt = (
            update(Job)
            .where(
                Job.job_id == job.job_id,
                Job.status == job.status,
                Job.version == job.version,
                *conditions,
            )
            .values(
                status=target.value,
                status_history_json=history.dump(),
                version=Job.version + 1,
                updated_at=now_utc(),
                **(values or {}),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            exc = conflict(
                conflict_message or "Job was modified concurrently",
                {"job_id": job.job_id, "expected_status": job.status, "requested_status": target.value},
            )
            await self.session.rollback()
            raise exc

    async def _commit(self, job: Job) -> Job:
        await self.session.commit()
        await self.session.refresh(job)
        return job

    # -- creation and dispatch ---------------------------------------------

    async def create(self, identity: Identity, request: CreateJobRequest) -> Job:
        prop = await self.get_property(request.property_id)
        if identity.is_admin:
            organization_id = identity.organization_id or prop.organization_id
        else:
            organization_id = identity.organization_id
        if not organization_id:
            raise forbidden("Organization membership required")
        if not identity.is_admin and prop.organization_id not in (None, organization_id):
            raise forbidden("Property belongs to another organization")

        payout = request.payout_amount
        if payout is None:
            payout = self.sla_policy.payout_for(request.scope)

        now = now_utc()
        history = StatusHistory().append(
            TransitionEvent(status=JobStatus.PENDING_DISPATCH, timestamp=now, actor_id=identity.user_id)
        )
        job = Job(
            organization_id=organization_id,
            property_id=prop.property_id,
            job_type=request.job_type.value,
            scope=request.scope,
            status=JobStatus.PENDING_DISPATCH.value,
            geofence_radius=request.geofence_radius or self.geofence_policy.default_radius_meters,
            geofence_verified=False,
            payout_amount=payout,
            special_instructions=request.special_instructions,
            scheduling_window_json=request.scheduling_window.model_dump(mode="json"),
            access_contact_json=request.access_contact.model_dump(mode="json") if request.access_contact else None,
            status_history_json=history.dump(),
            created_at=now,
            version=1,
        )
        self.session.add(job)
        await self.session.commit()
        await self.session.refresh(job)
        logger.info("job %s created for organization %s", job.job_id, organization_id)

        if request.dispatch:
            return await self.dispatch(identity, job.job_id)
        return job

    async def dispatch(self, identity: Identity, job_id: str) -> Job:
        job = await self.get(job_id)
        require_capability(identity, Capability.job_owner, job)
        target = plan_transition(job.status, JobEvent.dispatch)

        now = now_utc()
        await self._apply(
            job,
            target,
            TransitionEvent(status=target, timestamp=now, actor_id=identity.user_id),
            {"dispatched_at": now, "sla_due_at": now + self.sla_policy.duration_for(job.job_type, job.scope)},
        )
        job = await self._commit(job)

        try:
            prop = await self.get_property(job.property_id)
            await self.notifier.notify_appraisers_of_new_job(job, prop, self.geofence_policy.dispatch_radius_miles)
        except Exception:
            logger.exception("job %s: appraiser notification failed", job.job_id)
        return job

    # -- appraiser transitions -------------------------------------------

    async def accept(self, identity: Identity, job_id: str) -> Job:
        require_capability(identity, Capability.appraiser)
        job = await self.get(job_id)

        if job.status == JobStatus.ACCEPTED.value and job.assigned_appraiser_id not in (None, identity.user_id):
            raise conflict("Job was accepted by another appraiser", {"job_id": job_id})
        target = plan_transition(job.status, JobEvent.accept)
        if job.assigned_appraiser_id is not None:
            raise conflict("Job is already assigned", {"job_id": job_id})

        profile = await self.session.get(AppraiserProfile, identity.user_id)
        if not profile or profile.verification_status != VerificationStatus.VERIFIED.value:
            raise forbidden("Appraiser verification required", {"user_id": identity.user_id})

        now = now_utc()
        await self._apply(
            job,
            target,
            TransitionEvent(status=target, timestamp=now, actor_id=identity.user_id),
            {"assigned_appraiser_id": identity.user_id, "accepted_at": now},
            Job.assigned_appraiser_id.is_(None),
            conflict_message="Job was accepted by another appraiser",
        )
        logger.info("job %s accepted by %s", job_id, identity.user_id)
        return await self._commit(job)

    async def start(self, identity: Identity, job_id: str, latitude: float, longitude: float) -> Job:
        require_capability(identity, Capability.appraiser)
        job = await self.get(job_id)
        target = plan_transition(job.status, JobEvent.start)
        require_capability(identity, Capability.assigned_appraiser, job)

        prop = await self.get_property(job.property_id)
        verified = False
        distance = None
        if prop.latitude is not None and prop.longitude is not None:
            geofence = check_geofence(latitude, longitude, prop.latitude, prop.longitude, job.geofence_radius)
            verified = geofence.verified
            distance = round(geofence.distance_meters, 1)
        if not verified:
            logger.warning(
                "job %s: geofence not verified for %s (distance_m=%s radius_m=%s)",
                job_id,
                identity.user_id,
                distance,
                job.geofence_radius,
            )

        now = now_utc()
        await self._apply(
            job,
            target,
            TransitionEvent(
                status=target,
                timestamp=now,
                actor_id=identity.user_id,
                geofence_verified=verified,
                distance_meters=distance,
            ),
            {"started_at": job.started_at or now, "geofence_verified": verified},
        )
        return await self._commit(job)

    async def submit(self, identity: Identity, job_id: str, notes: str | None = None) -> Job:
        require_capability(identity, Capability.appraiser)
        job = await self.get(job_id)
        target = plan_transition(job.status, JobEvent.submit)
        require_capability(identity, Capability.assigned_appraiser, job)

        evidence_count = await self.count_evidence(job_id)
        minimum = self.evidence_policy.min_items_for_submit
        if evidence_count < minimum:
            raise invalid_transition(job.status, target.value, f"Minimum {minimum} photos required")

        instructions = job.special_instructions
        if notes:
            instructions = f"{instructions or ''}\n\nAppraiser notes: {notes}".strip()

        now = now_utc()
        await self._apply(
            job,
            target,
            TransitionEvent(status=target, timestamp=now, actor_id=identity.user_id, evidence_count=evidence_count),
            {"submitted_at": job.submitted_at or now, "special_instructions": instructions},
        )
        return await self._commit(job)

    # -- client transitions ----------------------------------------------

    async def client_cancel(self, identity: Identity, job_id: str, reason: str | None = None) -> Job:
        job = await self.get(job_id)
        require_capability(identity, Capability.organization_member, job)
        target = plan_transition(job.status, JobEvent.client_cancel)

        await self._apply(
            job,
            target,
            TransitionEvent(
                status=target,
                timestamp=now_utc(),
                actor_id=identity.user_id,
                reason=reason or "Cancelled by client",
            ),
            None,
            Job.assigned_appraiser_id.is_(None),
            conflict_message="Job was accepted before it could be cancelled",
        )
        return await self._commit(job)

    # -- admin transitions -----------------------------------------------

    async def start_review(self, identity: Identity, job_id: str) -> Job:
        require_capability(identity, Capability.admin)
        job = await self.get(job_id)
        target = plan_transition(job.status, JobEvent.start_review)

        await self._apply(job, target, TransitionEvent(status=target, timestamp=now_utc(), actor_id=identity.user_id))
        return await self._commit(job)

    async def approve(self, identity: Identity, job_id: str, notes: str | None = None, *, bulk: bool = False) -> Job:
        require_capability(identity, Capability.admin)
        job = await self.get(job_id)
        target = plan_transition(job.status, JobEvent.approve)

        now = now_utc()
        await self._apply(
            job,
            target,
            TransitionEvent(status=target, timestamp=now, actor_id=identity.user_id, notes=notes, bulk_operation=bulk),
            {"completed_at": now},
        )

        if job.assigned_appraiser_id and job.payout_amount:
            self.session.add(
                Payment(
                    user_id=job.assigned_appraiser_id,
                    related_job_id=job.job_id,
                    amount=Decimal(job.payout_amount),
                    type=PaymentType.JOB_PAYOUT.value,
                    status=PaymentStatus.PENDING.value,
                    description=f"Payout for job {job.job_id}",
                )
            )
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise conflict("Payout already recorded for this job", {"job_id": job_id}) from None
        await self.session.refresh(job)
        logger.info("job %s approved by %s", job_id, identity.user_id)
        return job

    async def reject(self, identity: Identity, job_id: str, reason: str) -> Job:
        require_capability(identity, Capability.admin)
        job = await self.get(job_id)
        target = plan_transition(job.status, JobEvent.reject)

        await self._apply(
            job,
            target,
            TransitionEvent(status=target, timestamp=now_utc(), actor_id=identity.user_id, reason=reason),
        )
        return await self._commit(job)

    async def request_revision(
        self,
        identity: Identity,
        job_id: str,
        reason: str,
        required_photos: list[str] | None = None,
    ) -> Job:
        require_capability(identity, Capability.admin)
        job = await self.get(job_id)
        target = plan_transition(job.status, JobEvent.request_revision)

        await self._apply(
            job,
            target,
            RevisionRequestedEvent(
                status=target,
                timestamp=now_utc(),
                actor_id=identity.user_id,
                reason=reason,
                required_photos=required_photos or [],
            ),
            {"revision_requested": True, "revision_notes": reason},
        )
        return await self._commit(job)

    async def reassign(self, identity: Identity, job_id: str, appraiser_id: str | None, reason: str) -> Job:
        require_capability(identity, Capability.admin)
        job = await self.get(job_id)
        event = JobEvent.assign if appraiser_id else JobEvent.unassign
        target = plan_transition(job.status, event)

        if appraiser_id:
            profile = await self.session.get(AppraiserProfile, appraiser_id)
            if not profile:
                raise not_found("Appraiser", {"appraiser_id": appraiser_id})
            if profile.verification_status != VerificationStatus.VERIFIED.value:
                raise invalid_transition(job.status, target.value, "Appraiser must be verified")

        now = now_utc()
        values = {
            "assigned_appraiser_id": appraiser_id,
            "accepted_at": now if appraiser_id else None,
            "started_at": None,
            "geofence_verified": False,
        }
        if job.dispatched_at is None:
            values["dispatched_at"] = now
            values["sla_due_at"] = now + self.sla_policy.duration_for(job.job_type, job.scope)

        await self._apply(
            job,
            target,
            AssignmentEvent(
                status=target,
                timestamp=now,
                actor_id=identity.user_id,
                reason=reason,
                action="REASSIGNED" if appraiser_id else "UNASSIGNED",
                previous_appraiser_id=job.assigned_appraiser_id,
                new_appraiser_id=appraiser_id,
            ),
            values,
        )
        logger.info("job %s reassigned %s -> %s", job_id, job.assigned_appraiser_id, appraiser_id)
        return await self._commit(job)

    async def cancel(self, identity: Identity, job_id: str, reason: str, *, bulk: bool = False) -> Job:
        require_capability(identity, Capability.admin)
        job = await self.get(job_id)
        target = plan_transition(job.status, JobEvent.cancel)

        await self._apply(
            job,
            target,
            TransitionEvent(
                status=target,
                timestamp=now_utc(),
                actor_id=identity.user_id,
                reason=reason,
                bulk_operation=bulk,
            ),
        )
        return await self._commit(job)

    # -- bulk ------------------------------------------------------------

    async def bulk_cancel(self, identity: Identity, job_ids: list[str], reason: str) -> BulkResult:
        require_capability(identity, Capability.admin)
        return await self._run_bulk(job_ids, lambda job_id: self.cancel(identity, job_id, reason, bulk=True))

    async def bulk_approve(self, identity: Identity, job_ids: list[str], notes: str | None = None) -> BulkResult:
        require_capability(identity, Capability.admin)
        return await self._run_bulk(job_ids, lambda job_id: self.approve(identity, job_id, notes, bulk=True))

    async def _run_bulk(self, job_ids: list[str], operation) -> BulkResult:
        result = BulkResult()
        for job_id in dict.fromkeys(job_ids):
            try:
                await operation(job_id)
            except HTTPException as exc:
                await self.session.rollback()
                result.failed.append(BulkItemFailure(job_id=job_id, code=error_code(exc), message=error_message(exc)))
                continue
            result.succeeded.append(job_id)

        result.succeeded_count = len(result.succeeded)
        result.failed_count = len(result.failed)
        logger.info("bulk operation: %d succeeded, %d failed", result.succeeded_count, result.failed_count)
        return result
