from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, Field, StringConstraints

from field_dispatch.models.enums import JobStatus, JobType

Reason = Annotated[str, StringConstraints(strip_whitespace=True, min_length=5, max_length=1000)]


class SchedulingWindow(BaseModel):
    date: datetime | None = None
    time: str | None = None
    flexible: bool = True


class AccessContact(BaseModel):
    name: str | None = None
    phone: str | None = None


class CreateJobRequest(BaseModel):
    property_id: str
    job_type: JobType = JobType.ONSITE_PHOTOS
    scope: str | None = None
    payout_amount: Decimal | None = Field(default=None, ge=0)
    geofence_radius: int | None = Field(default=None, gt=0)
    scheduling_window: SchedulingWindow = Field(default_factory=SchedulingWindow)
    access_contact: AccessContact | None = None
    special_instructions: str | None = Field(default=None, max_length=5000)
    dispatch: bool = False


class StartJobRequest(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class SubmitJobRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=5000)


class ClientCancelRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


class ReasonRequest(BaseModel):
    reason: Reason


class ReassignRequest(BaseModel):
    appraiser_id: str | None = None
    reason: Reason


class ApproveRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=5000)


class RevisionRequest(BaseModel):
    reason: Reason
    required_photos: list[str] = Field(default_factory=list)


class BulkCancelRequest(BaseModel):
    job_ids: list[str] = Field(min_length=1, max_length=500)
    reason: Reason


class BulkApproveRequest(BaseModel):
    job_ids: list[str] = Field(min_length=1, max_length=500)
    notes: str | None = Field(default=None, max_length=5000)


class BulkItemFailure(BaseModel):
    job_id: str
    code: str
    message: str


class BulkResult(BaseModel):
    ok: bool = True
    succeeded: list[str] = Field(default_factory=list)
    failed: list[BulkItemFailure] = Field(default_factory=list)
    succeeded_count: int = 0
    failed_count: int = 0


class JobOut(BaseModel):
    job_id: str
    organization_id: str
    property_id: str
    job_type: str
    scope: str | None = None
    status: JobStatus
    assigned_appraiser_id: str | None = None
    geofence_radius: int
    geofence_verified: bool
    payout_amount: Decimal | None = None
    revision_requested: bool
    revision_notes: str | None = None
    special_instructions: str | None = None
    scheduling_window: SchedulingWindow = Field(default_factory=SchedulingWindow)
    access_contact: AccessContact | None = None
    sla_due_at: datetime | None = None
    created_at: datetime
    dispatched_at: datetime | None = None
    accepted_at: datetime | None = None
    started_at: datetime | None = None
    submitted_at: datetime | None = None
    completed_at: datetime | None = None
    status_history: list[dict[str, Any]] = Field(default_factory=list)
    version: int


class AvailableJobOut(JobOut):
    distance_miles: float | None = None
