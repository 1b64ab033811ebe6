from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from field_dispatch.core.capabilities import Identity
from field_dispatch.core.errors import unauthenticated
from field_dispatch.db.session import get_session
from field_dispatch.integrations.transfers import StripeTransferGateway, TransferGateway
from field_dispatch.models.enums import Role
from field_dispatch.services.evidence_service import EvidenceService
from field_dispatch.services.job_service import JobService
from field_dispatch.services.payout_service import PayoutReconciler

_KNOWN_ROLES = {r.value for r in Role}


async def get_identity(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
    x_organization_id: str | None = Header(default=None),
) -> Identity:
    if not x_user_id or not x_user_role:
        raise unauthenticated()
    role = x_user_role.strip().upper()
    if role not in _KNOWN_ROLES:
        raise unauthenticated(f"Unknown role: {x_user_role}")
    return Identity(user_id=x_user_id, role=role, organization_id=x_organization_id or None)


def get_transfer_gateway() -> TransferGateway:
    return StripeTransferGateway()


async def get_job_service(session: AsyncSession = Depends(get_session)) -> JobService:
    return JobService(session)


async def get_evidence_service(session: AsyncSession = Depends(get_session)) -> EvidenceService:
    return EvidenceService(session)


async def get_payout_reconciler(
    session: AsyncSession = Depends(get_session),
    gateway: TransferGateway = Depends(get_transfer_gateway),
) -> PayoutReconciler:
    return PayoutReconciler(session, gateway=gateway)
