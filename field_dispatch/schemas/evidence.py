from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from field_dispatch.models.enums import MediaType


class UploadUrlRequest(BaseModel):
    file_name: str = Field(min_length=1, max_length=500)
    file_type: str
    file_size: int = Field(gt=0)
    category: str | None = Field(default=None, max_length=100)


class UploadUrlOut(BaseModel):
    upload_url: str
    public_url: str
    file_key: str
    expires_at: datetime


class ConfirmEvidenceRequest(BaseModel):
    file_key: str = Field(min_length=1, max_length=1024)
    file_name: str = Field(min_length=1, max_length=500)
    file_size: int = Field(gt=0)
    mime_type: str
    media_type: MediaType
    captured_at: datetime
    category: str | None = Field(default=None, max_length=100)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    exif: dict[str, Any] = Field(default_factory=dict)
    notes: str | None = Field(default=None, max_length=5000)


class EvidenceFlags(BaseModel):
    timestamp_suspicious: bool
    location_suspicious: bool
    distance_from_property_miles: float | None = None


class EvidenceOut(BaseModel):
    evidence_id: str
    job_id: str
    media_type: MediaType
    category: str | None = None
    file_name: str
    file_key: str
    file_url: str
    file_size: int
    mime_type: str
    captured_at: datetime
    latitude: float | None = None
    longitude: float | None = None
    integrity_hash: str
    verified: bool
    flags: EvidenceFlags
    exif: dict[str, Any] = Field(default_factory=dict)
    notes: str | None = None
    uploaded_at: datetime


class EvidenceCountsOut(BaseModel):
    job_id: str
    total: int
    by_category: dict[str, int] = Field(default_factory=dict)


class EvidenceDeleteResponse(BaseModel):
    ok: bool
    evidence_id: str
    storage_deleted: bool


class DownloadUrlOut(BaseModel):
    url: str


class EvidenceVerificationOut(BaseModel):
    evidence_id: str
    verified: bool
    integrity_hash: str
    hash_matches: bool
    has_geotag: bool
    has_exif: bool
    captured_at: datetime
    flags: EvidenceFlags


class MarkVerifiedRequest(BaseModel):
    verified: bool
