from enum import Enum


class JobStatus(str, Enum):
    PENDING_DISPATCH = "PENDING_DISPATCH"
    DISPATCHED = "DISPATCHED"
    ACCEPTED = "ACCEPTED"
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.CANCELLED, JobStatus.FAILED})

# States that carry an assignee while active.
ASSIGNED_STATUSES = frozenset(
    {
        JobStatus.ACCEPTED,
        JobStatus.IN_PROGRESS,
        JobStatus.SUBMITTED,
        JobStatus.UNDER_REVIEW,
        JobStatus.COMPLETED,
    }
)


class JobType(str, Enum):
    ONSITE_PHOTOS = "ONSITE_PHOTOS"
    CERTIFIED_APPRAISAL = "CERTIFIED_APPRAISAL"


class MediaType(str, Enum):
    PHOTO = "PHOTO"
    VIDEO = "VIDEO"
    DOCUMENT = "DOCUMENT"
    FLOOR_PLAN = "FLOOR_PLAN"
    AUDIO = "AUDIO"


class PaymentType(str, Enum):
    JOB_PAYOUT = "JOB_PAYOUT"
    PAYOUT = "PAYOUT"


PAYOUT_PAYMENT_TYPES = (PaymentType.JOB_PAYOUT.value, PaymentType.PAYOUT.value)


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class VerificationStatus(str, Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    SUSPENDED = "SUSPENDED"


class Role(str, Enum):
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"
    APPRAISER = "APPRAISER"
    CLIENT = "CLIENT"
