from field_dispatch.models.records import (
    AppraiserProfile,
    AuditLog,
    Base,
    Evidence,
    Job,
    Payment,
    Property,
    new_id,
    now_utc,
)

__all__ = [
    "AppraiserProfile",
    "AuditLog",
    "Base",
    "Evidence",
    "Job",
    "Payment",
    "Property",
    "new_id",
    "now_utc",
]
