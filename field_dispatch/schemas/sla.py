from datetime import datetime

from pydantic import BaseModel, Field

from field_dispatch.models.enums import JobStatus


class BreachedJobOut(BaseModel):
    job_id: str
    status: JobStatus
    assigned_appraiser_id: str | None = None
    address: str | None = None
    city: str | None = None
    sla_due_at: datetime
    hours_overdue: float


class SLAStatsOut(BaseModel):
    pending_dispatch: int
    dispatched: int
    active: int
    breached: int
    breached_jobs: list[BreachedJobOut] = Field(default_factory=list)


class SLAScanOut(BaseModel):
    breached: int
    job_ids: list[str] = Field(default_factory=list)
