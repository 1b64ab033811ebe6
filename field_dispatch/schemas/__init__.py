from field_dispatch.schemas.common import CursorPage, ErrorPayload, ErrorResponse
from field_dispatch.schemas.evidence import (
    ConfirmEvidenceRequest,
    DownloadUrlOut,
    EvidenceCountsOut,
    EvidenceDeleteResponse,
    EvidenceFlags,
    EvidenceOut,
    EvidenceVerificationOut,
    MarkVerifiedRequest,
    UploadUrlOut,
    UploadUrlRequest,
)
from field_dispatch.schemas.job import (
    AccessContact,
    ApproveRequest,
    AvailableJobOut,
    BulkApproveRequest,
    BulkCancelRequest,
    BulkItemFailure,
    BulkResult,
    ClientCancelRequest,
    CreateJobRequest,
    JobOut,
    ReasonRequest,
    ReassignRequest,
    RevisionRequest,
    SchedulingWindow,
    StartJobRequest,
    SubmitJobRequest,
)
from field_dispatch.schemas.payout import (
    AppraiserPayoutResult,
    PaymentOut,
    PayoutBatchOut,
    PayoutSummaryOut,
    ProcessPayoutsRequest,
    RetryPayoutsOut,
    RetryPayoutsRequest,
    SweepOut,
)
from field_dispatch.schemas.sla import BreachedJobOut, SLAScanOut, SLAStatsOut
from field_dispatch.schemas.status_history import (
    AssignmentEvent,
    RevisionRequestedEvent,
    StatusHistory,
    TransitionEvent,
)

__all__ = [
    "AccessContact",
    "ApproveRequest",
    "AppraiserPayoutResult",
    "AssignmentEvent",
    "AvailableJobOut",
    "BreachedJobOut",
    "BulkApproveRequest",
    "BulkCancelRequest",
    "BulkItemFailure",
    "BulkResult",
    "ClientCancelRequest",
    "ConfirmEvidenceRequest",
    "CreateJobRequest",
    "CursorPage",
    "DownloadUrlOut",
    "ErrorPayload",
    "ErrorResponse",
    "EvidenceCountsOut",
    "EvidenceDeleteResponse",
    "EvidenceFlags",
    "EvidenceOut",
    "EvidenceVerificationOut",
    "JobOut",
    "MarkVerifiedRequest",
    "PaymentOut",
    "PayoutBatchOut",
    "PayoutSummaryOut",
    "ProcessPayoutsRequest",
    "ReasonRequest",
    "ReassignRequest",
    "RetryPayoutsOut",
    "RetryPayoutsRequest",
    "RevisionRequest",
    "RevisionRequestedEvent",
    "SLAScanOut",
    "SLAStatsOut",
    "SchedulingWindow",
    "StartJobRequest",
    "StatusHistory",
    "SubmitJobRequest",
    "SweepOut",
    "TransitionEvent",
    "UploadUrlOut",
    "UploadUrlRequest",
]
