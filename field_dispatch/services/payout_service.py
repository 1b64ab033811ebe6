"""Batched settlement of pending appraiser payouts.

Each payee is settled independently: a failure for one payee is written onto
that payee's payments and the batch moves on. Payments are claimed
(PENDING -> PROCESSING) and committed before the gateway is called, so two
overlapping runs can never transfer the same payments twice.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from field_dispatch.core.capabilities import require_feature
from field_dispatch.core.config import PayoutPolicy, settings
from field_dispatch.integrations.transfers import StripeTransferGateway, TransferGateway, TransferGatewayError
from field_dispatch.models import AppraiserProfile, AuditLog, Payment, now_utc
from field_dispatch.models.enums import PAYOUT_PAYMENT_TYPES, PaymentStatus
from field_dispatch.schemas.payout import AppraiserPayoutResult, PayoutBatchOut, RetryPayoutsOut

logger = logging.getLogger(__name__)

STALE_PROCESSING_MESSAGE = "Transfer outcome unknown; confirm with the gateway before retrying"

# Weekly schedule: Monday 06:00 UTC.
PAYOUT_WEEKDAY = 0
PAYOUT_HOUR = 6


def idempotency_key(payment_ids: list[str], attempt: int = 0) -> str:
    """Stable per payment group and attempt.

    ``attempt`` grows with every admin retry, so a retried group gets a fresh
    key while a re-sent or swept group keeps the one it was first sent with.
    """
    joined = ",".join(sorted(payment_ids))
    if attempt:
        joined += f"#{attempt}"
    return "payout-" + hashlib.sha256(joined.encode("utf-8")).hexdigest()


def next_payout_date(now: datetime | None = None) -> datetime:
    now = now or now_utc()
    days_ahead = (PAYOUT_WEEKDAY - now.weekday()) % 7 or 7
    return (now + timedelta(days=days_ahead)).replace(hour=PAYOUT_HOUR, minute=0, second=0, microsecond=0)


class PayoutReconciler:
    def __init__(
        self,
        session: AsyncSession,
        gateway: TransferGateway | None = None,
        policy: PayoutPolicy | None = None,
    ):
        self.session = session
        self.gateway = gateway or StripeTransferGateway()
        self.policy = policy or settings.payout

    async def _pending_payments(self, appraiser_ids: list[str] | None = None) -> list[Payment]:
        stmt = select(Payment).where(
            Payment.status == PaymentStatus.PENDING.value,
            Payment.type.in_(PAYOUT_PAYMENT_TYPES),
            Payment.user_id.is_not(None),
        )
        if appraiser_ids:
            stmt = stmt.where(Payment.user_id.in_(appraiser_ids))
        stmt = stmt.order_by(Payment.created_at.asc(), Payment.payment_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def _set_status(self, payment_ids: list[str], expected: PaymentStatus, target: PaymentStatus, **values) -> int:
        stmt = (
            update(Payment)
            .where(Payment.payment_id.in_(payment_ids), Payment.status == expected.value)
            .values(status=target.value, updated_at=now_utc(), **values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def process_payouts(
        self,
        actor_id: str | None = None,
        appraiser_ids: list[str] | None = None,
    ) -> PayoutBatchOut:
        require_feature(settings.feature_enable_payouts, "payouts", hint="Set FEATURE_ENABLE_PAYOUTS=true")

        # plain values, since a rolled-back claim expires every loaded row
        groups: dict[str, list[tuple[str, Decimal, int]]] = {}
        for payment in await self._pending_payments(appraiser_ids):
            groups.setdefault(payment.user_id, []).append((payment.payment_id, Decimal(payment.amount), payment.retry_count or 0))

        batch = PayoutBatchOut()
        for appraiser_id, payments in groups.items():
            result = await self._settle_payee(appraiser_id, payments)
            batch.results.append(result)
            if result.outcome == "completed":
                batch.processed += 1
                batch.total_amount += result.amount
            elif result.success:
                batch.skipped += 1
            else:
                batch.failed += 1

        if batch.processed or batch.failed:
            self.session.add(
                AuditLog(
                    user_id=actor_id,
                    action="PAYOUTS_PROCESSED",
                    resource="payment",
                    metadata_json={
                        "processed": batch.processed,
                        "failed": batch.failed,
                        "skipped": batch.skipped,
                        "total_amount": str(batch.total_amount),
                        "appraiser_ids": [r.appraiser_id for r in batch.results],
                    },
                )
            )
            await self.session.commit()

        logger.info(
            "payout batch: processed=%d failed=%d skipped=%d total=%s",
            batch.processed,
            batch.failed,
            batch.skipped,
            batch.total_amount,
        )
        return batch

    async def _settle_payee(self, appraiser_id: str, payments: list[tuple[str, Decimal, int]]) -> AppraiserPayoutResult:
        payment_ids = [payment_id for payment_id, _amount, _retries in payments]
        amount = sum((a for _payment_id, a, _retries in payments), Decimal("0"))
        attempt = sum(retries for _payment_id, _amount, retries in payments)
        result = AppraiserPayoutResult(
            appraiser_id=appraiser_id,
            success=False,
            outcome="failed",
            amount=amount,
            payment_count=len(payments),
        )

        profile = await self.session.get(AppraiserProfile, appraiser_id)
        if not profile or not profile.payout_enabled or not profile.stripe_connect_id:
            message = "Payout configuration error: payouts disabled or no transfer account"
            await self._set_status(payment_ids, PaymentStatus.PENDING, PaymentStatus.FAILED, status_message=message)
            await self.session.commit()
            logger.warning("payout for %s failed: %s", appraiser_id, message)
            result.outcome = "misconfigured"
            result.error = message
            return result

        if amount < self.policy.minimum_amount:
            result.success = True
            result.outcome = "below_minimum"
            result.error = f"Below minimum payout amount ({self.policy.minimum_amount})"
            return result
        if amount > self.policy.maximum_amount:
            result.success = True
            result.outcome = "manual_review"
            result.error = f"Exceeds maximum payout amount ({self.policy.maximum_amount}), requires manual review"
            logger.warning("payout for %s held for review: amount=%s", appraiser_id, amount)
            return result

        claimed = await self._set_status(payment_ids, PaymentStatus.PENDING, PaymentStatus.PROCESSING)
        if claimed != len(payment_ids):
            await self.session.rollback()
            logger.warning("payout for %s skipped: payments claimed by another run", appraiser_id)
            result.outcome = "conflict"
            result.error = "Payments were claimed by another payout run"
            return result
        await self.session.commit()

        try:
            transfer = await asyncio.wait_for(
                self.gateway.create_transfer(
                    amount=amount,
                    destination_account_id=profile.stripe_connect_id,
                    description=f"Payout for {len(payments)} jobs",
                    metadata={"appraiser_id": appraiser_id, "payment_count": str(len(payments))},
                    idempotency_key=idempotency_key(payment_ids, attempt),
                ),
                timeout=self.policy.transfer_timeout_seconds,
            )
        except (TransferGatewayError, asyncio.TimeoutError) as exc:
            message = exc.message if isinstance(exc, TransferGatewayError) else "Transfer request timed out"
            await self._set_status(payment_ids, PaymentStatus.PROCESSING, PaymentStatus.FAILED, status_message=message)
            await self.session.commit()
            logger.warning("payout for %s failed: %s", appraiser_id, message)
            result.error = message
            return result

        await self._set_status(
            payment_ids,
            PaymentStatus.PROCESSING,
            PaymentStatus.COMPLETED,
            stripe_transfer_id=transfer.id,
            processed_at=now_utc(),
            status_message=None,
        )
        await self.session.commit()
        logger.info("payout for %s completed: amount=%s transfer=%s", appraiser_id, amount, transfer.id)

        result.success = True
        result.outcome = "completed"
        result.transfer_id = transfer.id
        return result

    async def retry_failed(self, actor_id: str | None, payment_ids: list[str], reason: str) -> RetryPayoutsOut:
        out = RetryPayoutsOut()
        # a swept payment may still have been paid, so it keeps its old key
        attempt = case(
            (Payment.status_message == STALE_PROCESSING_MESSAGE, Payment.retry_count),
            else_=Payment.retry_count + 1,
        )
        for payment_id in dict.fromkeys(payment_ids):
            changed = await self._set_status(
                [payment_id],
                PaymentStatus.FAILED,
                PaymentStatus.PENDING,
                status_message=f"Retry requested: {reason}",
                retry_count=attempt,
            )
            if changed:
                out.retried.append(payment_id)
            else:
                out.skipped.append(payment_id)

        if out.retried:
            self.session.add(
                AuditLog(
                    user_id=actor_id,
                    action="PAYOUTS_RETRIED",
                    resource="payment",
                    metadata_json={"payment_ids": out.retried, "reason": reason},
                )
            )
        await self.session.commit()
        logger.info("payout retry: retried=%d skipped=%d", len(out.retried), len(out.skipped))
        return out

    async def sweep_stale_processing(self, now: datetime | None = None) -> int:
        """Fail payments stuck in PROCESSING past the configured window."""
        cutoff = (now or now_utc()) - timedelta(minutes=self.policy.stale_processing_minutes)
        stmt = (
            update(Payment)
            .where(Payment.status == PaymentStatus.PROCESSING.value, Payment.updated_at < cutoff)
            .values(status=PaymentStatus.FAILED.value, status_message=STALE_PROCESSING_MESSAGE, updated_at=now_utc())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.commit()
        if result.rowcount:
            logger.warning("marked %d stale PROCESSING payments as FAILED", result.rowcount)
        return result.rowcount

    async def payout_summary(self, now: datetime | None = None) -> dict:
        pending = await self._pending_payments()
        total = sum((Decimal(p.amount) for p in pending), Decimal("0"))
        appraiser_count = len({p.user_id for p in pending})
        avg = (total / appraiser_count).quantize(Decimal("0.01")) if appraiser_count else Decimal("0")
        return {
            "total_pending": total,
            "appraiser_count": appraiser_count,
            "avg_payout": avg,
            "next_payout_date": next_payout_date(now),
            "pending_payouts": pending,
        }
