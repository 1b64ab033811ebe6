from field_dispatch.models import Evidence, Job, Payment
from field_dispatch.schemas.evidence import EvidenceFlags, EvidenceOut
from field_dispatch.schemas.job import AccessContact, AvailableJobOut, JobOut, SchedulingWindow
from field_dispatch.schemas.payout import PaymentOut


def job_out(m: Job) -> JobOut:
    return JobOut(**_job_fields(m))


def available_job_out(m: Job, distance_miles: float | None) -> AvailableJobOut:
    return AvailableJobOut(
        **_job_fields(m),
        distance_miles=round(distance_miles, 1) if distance_miles is not None else None,
    )


def _job_fields(m: Job) -> dict:
    return {
        "job_id": m.job_id,
        "organization_id": m.organization_id,
        "property_id": m.property_id,
        "job_type": m.job_type,
        "scope": m.scope,
        "status": m.status,
        "assigned_appraiser_id": m.assigned_appraiser_id,
        "geofence_radius": m.geofence_radius,
        "geofence_verified": m.geofence_verified,
        "payout_amount": m.payout_amount,
        "revision_requested": m.revision_requested,
        "revision_notes": m.revision_notes,
        "special_instructions": m.special_instructions,
        "scheduling_window": SchedulingWindow(**(m.scheduling_window_json or {})),
        "access_contact": AccessContact(**m.access_contact_json) if m.access_contact_json else None,
        "sla_due_at": m.sla_due_at,
        "created_at": m.created_at,
        "dispatched_at": m.dispatched_at,
        "accepted_at": m.accepted_at,
        "started_at": m.started_at,
        "submitted_at": m.submitted_at,
        "completed_at": m.completed_at,
        "status_history": m.status_history_json or [],
        "version": m.version,
    }


def evidence_out(m: Evidence) -> EvidenceOut:
    return EvidenceOut(
        evidence_id=m.evidence_id,
        job_id=m.job_id,
        media_type=m.media_type,
        category=m.category,
        file_name=m.file_name,
        file_key=m.file_key,
        file_url=m.file_url,
        file_size=m.file_size,
        mime_type=m.mime_type,
        captured_at=m.captured_at,
        latitude=m.latitude,
        longitude=m.longitude,
        integrity_hash=m.integrity_hash,
        verified=m.verified,
        flags=EvidenceFlags(
            timestamp_suspicious=m.timestamp_suspicious,
            location_suspicious=m.location_suspicious,
            distance_from_property_miles=m.distance_from_property_miles,
        ),
        exif=m.exif_json or {},
        notes=m.notes,
        uploaded_at=m.uploaded_at,
    )


def payment_out(m: Payment) -> PaymentOut:
    return PaymentOut(
        payment_id=m.payment_id,
        user_id=m.user_id,
        related_job_id=m.related_job_id,
        type=m.type,
        amount=m.amount,
        status=m.status,
        description=m.description,
        stripe_transfer_id=m.stripe_transfer_id,
        status_message=m.status_message,
        processed_at=m.processed_at,
        created_at=m.created_at,
    )
