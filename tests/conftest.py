import os

# revshare 설정은 import 시점에 로드되므로 가장 먼저 지정
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["SMOOBU_API_KEY"] = "test-api-key"

from decimal import Decimal
from typing import List, Optional

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from revshare.config import settings
from revshare.models import Base, Ownership, RevenueCacheEntry, Unit
from revshare.providers.smoobu import SmoobuAPIError
from revshare.schemas.smoobu import SmoobuApartment, SmoobuReservation


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSession = sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded_db(db_session):
    """
    유닛 1 (Casa Azul, apt 101): owner-a 60% 승인, owner-b 40% 상태 없음, owner-c 승인 대기
    유닛 2 (Villa Verde, apt 102): owner-a 25% + 25%, owner-c 50%, owner-d 거절
    유닛 3 (Unlinked Loft): Smoobu 미연결
    """
    db_session.add_all(
        [
            Unit(id=1, name="Casa Azul", smoobu_apartment_id=101),
            Unit(id=2, name="Villa Verde", smoobu_apartment_id=102),
            Unit(id=3, name="Unlinked Loft", smoobu_apartment_id=None),
        ]
    )
    db_session.flush()
    db_session.add_all(
        [
            Ownership(unit_id=1, user_id="owner-a", percentage_owned=6000, approval_status="APPROVED"),
            Ownership(unit_id=1, user_id="owner-b", percentage_owned=4000, approval_status=None),
            Ownership(unit_id=1, user_id="owner-c", percentage_owned=1000, approval_status="PENDING_APPROVAL"),
            Ownership(unit_id=2, user_id="owner-a", percentage_owned=2500, approval_status="APPROVED"),
            Ownership(unit_id=2, user_id="owner-a", percentage_owned=2500, approval_status=None),
            Ownership(unit_id=2, user_id="owner-c", percentage_owned=5000, approval_status="APPROVED"),
            Ownership(unit_id=2, user_id="owner-d", percentage_owned=3000, approval_status="REJECTED"),
            Ownership(unit_id=None, user_id="owner-e", percentage_owned=500, approval_status=None),
        ]
    )
    db_session.commit()
    return db_session


def seed_cache(db, year: int, unit_id: int, monthly: dict) -> None:
    """month -> revenue (나머지 월은 0)"""
    for month in range(1, 13):
        revenue = Decimal(str(monthly.get(month, "0.00")))
        db.add(
            RevenueCacheEntry(
                year=year,
                unit_id=unit_id,
                month=month,
                revenue=revenue,
                booking_count=1 if revenue else 0,
            )
        )
    db.commit()


def make_reservation(
    id: int,
    arrival: str,
    price: Optional[float],
    apartment_id: Optional[int] = 101,
    type: str = "reservation",
) -> SmoobuReservation:
    payload = {
        "id": id,
        "reference-id": f"REF-{id}",
        "type": type,
        "arrival": arrival,
        "departure": arrival,
        "apartment": {"id": apartment_id, "name": f"Apt {apartment_id}"} if apartment_id else None,
        "channel": {"id": 1, "name": "Direct booking"},
        "guest-name": "Juan Dela Cruz",
        "price": price,
    }
    return SmoobuReservation.model_validate(payload)


class FakeRevenueProvider:
    """고정된 예약 목록을 돌려주거나 지정된 에러를 발생시키는 provider"""

    def __init__(
        self,
        reservations: Optional[List[SmoobuReservation]] = None,
        error: Optional[str] = None,
        apartments: Optional[List[SmoobuApartment]] = None,
    ):
        self.reservations = reservations or []
        self.error = error
        self.apartments = apartments or []
        self.calls = []

    async def get_all_reservations(self, date_from=None, date_to=None):
        self.calls.append((date_from, date_to))
        if self.error:
            raise SmoobuAPIError(self.error, status_code=503)
        return list(self.reservations)

    async def get_apartments(self):
        if self.error:
            raise SmoobuAPIError(self.error, status_code=503)
        return list(self.apartments)

    async def test_connection(self):
        return self.error is None


@pytest.fixture
def app_settings():
    return settings
