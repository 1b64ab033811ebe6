"""New-job notifications for nearby appraisers.

Delivery transport (push, email) lives outside this service; the default
transport only logs. Failures never propagate to the dispatching caller.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from field_dispatch.core.config import settings
from field_dispatch.core.geo import distance_miles
from field_dispatch.models import AppraiserProfile, Job, Property
from field_dispatch.models.enums import VerificationStatus

logger = logging.getLogger(__name__)


class NotificationTransport(Protocol):
    async def send(self, user_id: str, title: str, body: str, data: dict[str, Any]) -> None: ...


class LoggingTransport:
    async def send(self, user_id: str, title: str, body: str, data: dict[str, Any]) -> None:
        logger.info("notify user=%s title=%r data=%s", user_id, title, data)


class JobNotifier:
    def __init__(
        self,
        session: AsyncSession,
        transport: NotificationTransport | None = None,
        enabled: bool | None = None,
    ):
        self.session = session
        self.transport = transport or LoggingTransport()
        self.enabled = settings.feature_enable_notifications if enabled is None else enabled

    async def notify_appraisers_of_new_job(self, job: Job, prop: Property, radius_miles: float) -> dict:
        if not self.enabled:
            return {"notified": 0}
        if prop.latitude is None or prop.longitude is None:
            logger.warning("job %s: property %s has no coordinates, skipping notifications", job.job_id, prop.property_id)
            return {"notified": 0}

        stmt = select(AppraiserProfile).where(
            AppraiserProfile.verification_status == VerificationStatus.VERIFIED.value,
            AppraiserProfile.home_base_lat.is_not(None),
            AppraiserProfile.home_base_lng.is_not(None),
        )
        result = await self.session.execute(stmt)

        notified = 0
        for profile in result.scalars().all():
            miles = distance_miles(profile.home_base_lat, profile.home_base_lng, prop.latitude, prop.longitude)
            if miles > min(radius_miles, profile.coverage_radius_miles):
                continue
            try:
                await self.transport.send(
                    profile.user_id,
                    "New job available",
                    f"{prop.address_full} ({miles:.1f} mi)",
                    {"job_id": job.job_id, "job_type": job.job_type, "distance_miles": round(miles, 1)},
                )
                notified += 1
            except Exception:
                logger.exception("job %s: notification to %s failed", job.job_id, profile.user_id)

        logger.info("job %s: notified %d appraisers within %.1f mi", job.job_id, notified, radius_miles)
        return {"notified": notified}
