import asyncio
import os
import tempfile
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# settings are read once at import time, so the environment must be ready first
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="field_dispatch_tests_"))
DB_PATH = _TEST_ROOT / "api.db"

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{DB_PATH}"
os.environ["OBJECT_STORE_BACKEND"] = "fs"
os.environ["LOCAL_OBJECT_STORE_PATH"] = str(_TEST_ROOT / "objects")
os.environ["OBJECT_STORE_PUBLIC_URL"] = "http://objects.test/field-evidence"
os.environ["REDIS_URL"] = "redis://localhost:6379/9"
os.environ["FEATURE_ENABLE_PAYOUTS"] = "true"

from field_dispatch.models import (  # noqa: E402
    AppraiserProfile,
    Base,
    Evidence,
    Job,
    Payment,
    Property,
)
from field_dispatch.models.enums import JobStatus, PaymentStatus, PaymentType, VerificationStatus  # noqa: E402
from field_dispatch.schemas.status_history import StatusHistory, TransitionEvent  # noqa: E402

ORG_ID = "org-1"
PROPERTY_LAT = 40.7128
PROPERTY_LON = -74.0060


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Seeder:
    """Writes fixture rows through a synchronous session on the test database."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def _add(self, row):
        with self.session_factory() as session:
            session.add(row)
            session.commit()
            session.refresh(row)
            session.expunge(row)
        return row

    def property(self, latitude=PROPERTY_LAT, longitude=PROPERTY_LON, organization_id=ORG_ID) -> Property:
        return self._add(
            Property(
                organization_id=organization_id,
                address_full="350 5th Ave, New York, NY",
                city="New York",
                state="NY",
                zip_code="10118",
                latitude=latitude,
                longitude=longitude,
            )
        )

    def appraiser(
        self,
        user_id: str | None = None,
        verification_status: str = VerificationStatus.VERIFIED.value,
        payout_enabled: bool = True,
        stripe_connect_id: str | None = "acct_test",
        home_base=(PROPERTY_LAT, PROPERTY_LON),
    ) -> AppraiserProfile:
        return self._add(
            AppraiserProfile(
                user_id=user_id or f"appraiser-{uuid4().hex[:8]}",
                first_name="Test",
                last_name="Appraiser",
                verification_status=verification_status,
                payout_enabled=payout_enabled,
                stripe_connect_id=stripe_connect_id,
                home_base_lat=home_base[0] if home_base else None,
                home_base_lng=home_base[1] if home_base else None,
                coverage_radius_miles=25.0,
            )
        )

    def job(
        self,
        status: JobStatus = JobStatus.DISPATCHED,
        assigned_appraiser_id: str | None = None,
        property_id: str | None = None,
        payout_amount: Decimal | None = Decimal("150.00"),
        sla_due_at: datetime | None = None,
        started_at: datetime | None = None,
        organization_id: str = ORG_ID,
    ) -> Job:
        if property_id is None:
            property_id = self.property(organization_id=organization_id).property_id
        now = utcnow()
        history = StatusHistory().append(TransitionEvent(status=status, timestamp=now, actor_id="seed"))
        return self._add(
            Job(
                organization_id=organization_id,
                property_id=property_id,
                job_type="ONSITE_PHOTOS",
                status=status.value,
                assigned_appraiser_id=assigned_appraiser_id,
                geofence_radius=500,
                payout_amount=payout_amount,
                scheduling_window_json={"flexible": True},
                dispatched_at=now,
                sla_due_at=sla_due_at or now + timedelta(hours=48),
                started_at=started_at,
                status_history_json=history.dump(),
                version=1,
            )
        )

    def evidence(self, job_id: str, count: int = 1) -> list[Evidence]:
        rows = []
        for i in range(count):
            key = f"evidence/{job_id}/exterior/seed-{i}.jpg"
            rows.append(
                self._add(
                    Evidence(
                        job_id=job_id,
                        media_type="PHOTO",
                        category="exterior",
                        file_name=f"seed-{i}.jpg",
                        file_key=key,
                        file_url=f"http://objects.test/field-evidence/{key}",
                        file_size=1024,
                        mime_type="image/jpeg",
                        captured_at=utcnow(),
                        integrity_hash="0" * 64,
                        verified=True,
                    )
                )
            )
        return rows

    def payment(
        self,
        user_id: str,
        amount: Decimal,
        status: PaymentStatus = PaymentStatus.PENDING,
        related_job_id: str | None = None,
        payment_type: PaymentType = PaymentType.JOB_PAYOUT,
        updated_at: datetime | None = None,
    ) -> Payment:
        row = Payment(
            user_id=user_id,
            related_job_id=related_job_id,
            type=payment_type.value,
            amount=amount,
            status=status.value,
            description="seed payout",
        )
        if updated_at is not None:
            row.updated_at = updated_at
        return self._add(row)


@pytest.fixture
def sync_session_factory():
    engine = create_engine(f"sqlite:///{DB_PATH}")
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    yield factory
    engine.dispose()


@pytest.fixture
def seed(sync_session_factory) -> Seeder:
    return Seeder(sync_session_factory)


@pytest.fixture
def client(sync_session_factory):
    from field_dispatch.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def run_db(tmp_path):
    """Run ``scenario(sessionmaker)`` against a fresh async SQLite database."""
    from field_dispatch.db.init_db import init_db
    from field_dispatch.db.session import build_engine, build_sessionmaker

    url = f"sqlite+aiosqlite:///{tmp_path / 'service.db'}"

    def _run(scenario):
        async def _main():
            engine = build_engine(url)
            try:
                await init_db(engine)
                return await scenario(build_sessionmaker(engine))
            finally:
                await engine.dispose()

        return asyncio.run(_main())

    return _run

