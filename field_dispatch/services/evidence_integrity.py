"""Tamper-evidence checks for uploaded media.

Nothing here rejects evidence. The checks only produce flags that reviewers
see next to each item.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from field_dispatch.core.config import EvidencePolicy
from field_dispatch.core.geo import distance_miles


@dataclass(frozen=True)
class IntegrityAssessment:
    timestamp_suspicious: bool
    location_suspicious: bool
    distance_from_property_miles: float | None
    integrity_hash: str

    @property
    def verified(self) -> bool:
        return not (self.timestamp_suspicious or self.location_suspicious)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def integrity_hash(file_key: str, file_size: int, captured_at: datetime) -> str:
    payload = f"{file_key}-{file_size}-{_as_utc(captured_at).isoformat()}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def assess(
    *,
    file_key: str,
    file_size: int,
    captured_at: datetime,
    latitude: float | None,
    longitude: float | None,
    property_latitude: float | None,
    property_longitude: float | None,
    job_started_at: datetime | None,
    policy: EvidencePolicy,
    now: datetime,
) -> IntegrityAssessment:
    captured = _as_utc(captured_at)
    now = _as_utc(now)

    timestamp_suspicious = (
        captured > now
        or now - captured > timedelta(hours=policy.max_capture_age_hours)
        or (job_started_at is not None and captured < _as_utc(job_started_at))
    )

    distance = None
    location_suspicious = False
    if None not in (latitude, longitude, property_latitude, property_longitude):
        distance = round(distance_miles(latitude, longitude, property_latitude, property_longitude), 3)
        location_suspicious = distance > policy.max_distance_from_property_miles

    return IntegrityAssessment(
        timestamp_suspicious=timestamp_suspicious,
        location_suspicious=location_suspicious,
        distance_from_property_miles=distance,
        integrity_hash=integrity_hash(file_key, file_size, captured),
    )
