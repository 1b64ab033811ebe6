from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from field_dispatch.schemas.job import Reason


class ProcessPayoutsRequest(BaseModel):
    appraiser_ids: list[str] | None = None


class AppraiserPayoutResult(BaseModel):
    appraiser_id: str
    success: bool
    outcome: str
    amount: Decimal = Decimal("0")
    payment_count: int = 0
    transfer_id: str | None = None
    error: str | None = None


class PayoutBatchOut(BaseModel):
    ok: bool = True
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    total_amount: Decimal = Decimal("0")
    results: list[AppraiserPayoutResult] = Field(default_factory=list)


class RetryPayoutsRequest(BaseModel):
    payment_ids: list[str] = Field(min_length=1, max_length=500)
    reason: Reason


class RetryPayoutsOut(BaseModel):
    ok: bool = True
    retried: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)


class SweepOut(BaseModel):
    ok: bool = True
    marked_failed: int = 0


class PaymentOut(BaseModel):
    payment_id: str
    user_id: str | None = None
    related_job_id: str | None = None
    type: str
    amount: Decimal
    status: str
    description: str | None = None
    stripe_transfer_id: str | None = None
    status_message: str | None = None
    processed_at: datetime | None = None
    created_at: datetime


class PayoutSummaryOut(BaseModel):
    total_pending: Decimal
    appraiser_count: int
    avg_payout: Decimal
    next_payout_date: datetime
    pending_payouts: list[PaymentOut] = Field(default_factory=list)
