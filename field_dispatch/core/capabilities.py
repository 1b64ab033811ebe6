from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from field_dispatch.core.errors import api_error, forbidden, validation_failure
from field_dispatch.models.enums import Role

if TYPE_CHECKING:
    from field_dispatch.models import Job


ADMIN_ROLES = frozenset({Role.ADMIN.value, Role.SUPER_ADMIN.value})


@dataclass(frozen=True)
class Identity:
    """Caller identity resolved by the upstream auth layer."""

    user_id: str
    role: str
    organization_id: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


class Capability(str, Enum):
    admin = "admin"
    appraiser = "appraiser"
    assigned_appraiser = "assigned_appraiser"
    organization_member = "organization_member"
    job_viewer = "job_viewer"
    job_owner = "job_owner"


def has_capability(identity: Identity, capability: Capability, job: Job | None = None) -> bool:
    if capability is Capability.admin:
        return identity.is_admin
    if capability is Capability.appraiser:
        return identity.role == Role.APPRAISER.value

    if job is None:
        raise ValueError(f"Capability '{capability.value}' needs a job to check against")

    is_assignee = job.assigned_appraiser_id is not None and job.assigned_appraiser_id == identity.user_id
    is_org_member = identity.organization_id is not None and job.organization_id == identity.organization_id

    if capability is Capability.assigned_appraiser:
        return is_assignee
    if capability is Capability.organization_member:
        return is_org_member
    if capability is Capability.job_owner:
        return is_org_member or identity.is_admin
    if capability is Capability.job_viewer:
        return is_assignee or is_org_member or identity.is_admin
    return False


_DENIED_MESSAGES = {
    Capability.admin: "Admin access required",
    Capability.appraiser: "Appraiser access required",
    Capability.assigned_appraiser: "Job not assigned to you",
    Capability.organization_member: "Access denied",
    Capability.job_owner: "Access denied",
    Capability.job_viewer: "Access denied",
}


def require_capability(identity: Identity, capability: Capability, job: Job | None = None) -> None:
    if has_capability(identity, capability, job):
        return
    detail = {"capability": capability.value}
    if job is not None:
        detail["job_id"] = job.job_id
    raise forbidden(_DENIED_MESSAGES[capability], detail)


def require_feature(enabled: bool, feature_name: str, hint: str | None = None) -> None:
    if enabled:
        return
    raise api_error(
        403,
        "capability_disabled",
        f"Capability '{feature_name}' is disabled",
        {"feature": feature_name},
        hint=hint,
    )


def require_choice(
    value: str,
    allowed: set[str],
    *,
    message: str,
    field: str,
) -> None:
    if value in allowed:
        return
    raise validation_failure(message, {field: value, "allowed": sorted(allowed)})
