import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from field_dispatch.core.config import settings
from field_dispatch.core.logging import configure_logging
from field_dispatch.db.session import build_engine, build_sessionmaker
from field_dispatch.services.payout_service import PayoutReconciler
from field_dispatch.services.sla_service import SLAService
from field_dispatch.workers.celery_app import celery_app

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _run_pass(work: Callable[[AsyncSession], Awaitable[T]]) -> T:
    # each asyncio.run gets its own loop, so the engine cannot outlive it
    async def _run() -> T:
        engine = build_engine(settings.database_url)
        try:
            async with build_sessionmaker(engine)() as session:
                return await work(session)
        finally:
            await engine.dispose()

    configure_logging()
    return asyncio.run(_run())


@celery_app.task(name="field_dispatch.workers.tasks.process_payouts")
def process_payouts(appraiser_ids: list[str] | None = None) -> dict:
    async def _work(session: AsyncSession) -> dict:
        batch = await PayoutReconciler(session).process_payouts(actor_id=None, appraiser_ids=appraiser_ids)
        return batch.model_dump(mode="json")

    return _run_pass(_work)


@celery_app.task(name="field_dispatch.workers.tasks.sweep_stale_payouts")
def sweep_stale_payouts() -> dict:
    async def _work(session: AsyncSession) -> dict:
        marked = await PayoutReconciler(session).sweep_stale_processing()
        return {"marked_failed": marked}

    return _run_pass(_work)


@celery_app.task(name="field_dispatch.workers.tasks.scan_sla_breaches")
def scan_sla_breaches() -> dict:
    async def _work(session: AsyncSession) -> dict:
        scan = await SLAService(session).scan_breaches()
        return scan.model_dump(mode="json")

    return _run_pass(_work)
