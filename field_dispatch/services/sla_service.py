from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from field_dispatch.models import Job, Property, now_utc
from field_dispatch.models.enums import JobStatus
from field_dispatch.schemas.sla import BreachedJobOut, SLAScanOut, SLAStatsOut

logger = logging.getLogger(__name__)

# Statuses where the appraiser side still owes work against the deadline.
BREACH_STATUSES = frozenset(
    {
        JobStatus.DISPATCHED,
        JobStatus.ACCEPTED,
        JobStatus.IN_PROGRESS,
        JobStatus.SUBMITTED,
    }
)

ACTIVE_STATUSES = frozenset(
    {
        JobStatus.ACCEPTED,
        JobStatus.IN_PROGRESS,
        JobStatus.SUBMITTED,
        JobStatus.UNDER_REVIEW,
    }
)

BREACHED_JOBS_LIMIT = 10


def is_breached(status: JobStatus | str, sla_due_at: datetime | None, now: datetime | None = None) -> bool:
    if sla_due_at is None:
        return False
    return JobStatus(status) in BREACH_STATUSES and sla_due_at < (now or now_utc())


def hours_overdue(sla_due_at: datetime, now: datetime | None = None) -> float:
    delta = (now or now_utc()) - sla_due_at
    return round(delta.total_seconds() / 3600, 1)


class SLAService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_status_counts(self) -> dict[str, int]:
        stmt = select(Job.status, func.count()).group_by(Job.status)
        rows = (await self.session.execute(stmt)).all()
        counts = {status.value: 0 for status in JobStatus}
        for status, count in rows:
            counts[status] = int(count)
        return counts

    async def _breached_rows(self, now: datetime, limit: int | None = None):
        stmt = (
            select(Job, Property)
            .join(Property, Property.property_id == Job.property_id, isouter=True)
            .where(
                Job.status.in_([s.value for s in BREACH_STATUSES]),
                Job.sla_due_at.is_not(None),
                Job.sla_due_at < now,
            )
            .order_by(Job.sla_due_at.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return (await self.session.execute(stmt)).all()

    async def _count_breached(self, now: datetime) -> int:
        stmt = (
            select(func.count())
            .select_from(Job)
            .where(
                Job.status.in_([s.value for s in BREACH_STATUSES]),
                Job.sla_due_at.is_not(None),
                Job.sla_due_at < now,
            )
        )
        return int((await self.session.execute(stmt)).scalar_one())

    async def get_sla_stats(self, now: datetime | None = None) -> SLAStatsOut:
        now = now or now_utc()
        counts = await self.get_status_counts()

        breached_jobs = [
            BreachedJobOut(
                job_id=job.job_id,
                status=JobStatus(job.status),
                assigned_appraiser_id=job.assigned_appraiser_id,
                address=prop.address_full if prop else None,
                city=prop.city if prop else None,
                sla_due_at=job.sla_due_at,
                hours_overdue=hours_overdue(job.sla_due_at, now),
            )
            for job, prop in await self._breached_rows(now, BREACHED_JOBS_LIMIT)
        ]

        return SLAStatsOut(
            pending_dispatch=counts[JobStatus.PENDING_DISPATCH.value],
            dispatched=counts[JobStatus.DISPATCHED.value],
            active=sum(counts[s.value] for s in ACTIVE_STATUSES),
            breached=await self._count_breached(now),
            breached_jobs=breached_jobs,
        )

    async def scan_breaches(self, now: datetime | None = None) -> SLAScanOut:
        """One read-only pass over overdue jobs; each breach is logged."""
        now = now or now_utc()
        job_ids = []
        for job, _prop in await self._breached_rows(now):
            job_ids.append(job.job_id)
            logger.warning(
                "job %s breached SLA: status=%s appraiser=%s overdue_h=%.1f",
                job.job_id,
                job.status,
                job.assigned_appraiser_id,
                hours_overdue(job.sla_due_at, now),
            )
        logger.info("SLA scan found %d breached jobs", len(job_ids))
        return SLAScanOut(breached=len(job_ids), job_ids=job_ids)
