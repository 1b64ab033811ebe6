from uuid import uuid4

from field_dispatch.core.mime_utils import sanitize_filename
from field_dispatch.models import now_utc


def evidence_key(job_id: str, category: str | None, filename: str) -> str:
    stamp = now_utc().strftime("%Y%m%dT%H%M%S")
    folder = sanitize_filename(category) if category else "uncategorized"
    return f"evidence/{job_id}/{folder}/{stamp}-{uuid4().hex[:8]}-{sanitize_filename(filename)}"


def belongs_to_job(key: str, job_id: str) -> bool:
    return key.startswith(f"evidence/{job_id}/")
