"""
예약 매출 캐시 동기화 서비스

Smoobu 예약을 (연도, 유닛, 월) 단위로 집계해 booking_revenue_cache를 연도 단위로 교체합니다.
제공자 조회 실패 시 기존 캐시는 그대로 두고 메타에 에러만 기록합니다.
"""

import logging
from collections import Counter
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Protocol, Tuple

from sqlalchemy.orm import Session

from revshare.config import Settings
from revshare.core.deductions import to_money
from revshare.core.exceptions import ExternalProviderError, ValidationError
from revshare.providers.smoobu import SmoobuAPIError, SmoobuClient
from revshare.repositories.revenue_cache_repository import RevenueCacheRepository
from revshare.repositories.unit_repository import UnitRepository
from revshare.schemas.revenue import (
    BookingRevenueOverview,
    RevenueRefreshResult,
    SmoobuApartmentLink,
    SmoobuConnectionStatus,
    UnitRevenueSummary,
)
from revshare.schemas.smoobu import SmoobuApartment, SmoobuReservation
from revshare.utils.date_utils import arrival_month, validate_year, year_bounds

logger = logging.getLogger(__name__)

MONTHS = range(1, 13)


class RevenueProvider(Protocol):
    async def get_all_reservations(
        self, date_from: Optional[str] = None, date_to: Optional[str] = None
    ) -> List[SmoobuReservation]: ...

    async def get_apartments(self) -> List[SmoobuApartment]: ...

    async def test_connection(self) -> bool: ...


class RevenueService:
    """매출 캐시 갱신 및 조회"""

    def __init__(
        self,
        db: Session,
        settings: Settings,
        provider: Optional[RevenueProvider] = None,
    ):
        self.db = db
        self.settings = settings
        self.provider = provider or SmoobuClient(settings)
        self.unit_repo = UnitRepository(db)
        self.cache_repo = RevenueCacheRepository(db)

    def _validate_year(self, year: int) -> None:
        try:
            validate_year(year)
        except ValueError as e:
            raise ValidationError(str(e), details={"year": year})

    async def refresh_revenue(
        self, year: int, actor_id: Optional[str] = None
    ) -> RevenueRefreshResult:
        """
        연도 매출 캐시 갱신

        Args:
            year: 대상 연도
            actor_id: 갱신을 요청한 관리자 ID

        Returns:
            RevenueRefreshResult: 실패 시 success=False, error에 원인
        """
        self._validate_year(year)

        linked_units = self.unit_repo.get_linked_units()
        if not linked_units:
            logger.info(f"Revenue refresh {year}: no linked units")
            return RevenueRefreshResult(
                year=year,
                success=True,
                booking_count=0,
                message="No linked units to refresh",
            )

        date_from, date_to = year_bounds(year)
        try:
            reservations = await self.provider.get_all_reservations(
                date_from=date_from, date_to=date_to
            )
        except SmoobuAPIError as e:
            logger.error(f"Revenue refresh {year} failed at provider: {e}")
            self._record_failure(year, actor_id, str(e))
            return RevenueRefreshResult(
                year=year,
                success=False,
                booking_count=0,
                message=f"Revenue refresh for {year} failed; previous cache kept",
                error=str(e),
            )

        apartment_to_unit = {u.smoobu_apartment_id: u.id for u in linked_units}
        buckets, booking_count = self._aggregate(year, reservations, apartment_to_unit)

        entries = [
            (unit_id, month, to_money(revenue), count)
            for (unit_id, month), (revenue, count) in sorted(buckets.items())
        ]
        total_revenue = sum((e[2] for e in entries), Decimal("0.00"))

        refreshed_at = datetime.now(timezone.utc)
        try:
            self.cache_repo.lock_year(year, refreshed_at)
            self.cache_repo.replace_year(year, entries, commit=False)
            self.cache_repo.upsert_meta(
                year=year,
                refreshed_at=refreshed_at,
                refreshed_by_user_id=actor_id,
                error=None,
                commit=False,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception(f"Revenue refresh {year}: cache write failed")
            raise

        logger.info(
            f"Revenue refresh {year} by {actor_id}: {booking_count} bookings, "
            f"{len(entries)} cache rows, total {total_revenue} {self.settings.CURRENCY}"
        )
        return RevenueRefreshResult(
            year=year,
            success=True,
            booking_count=booking_count,
            message=f"Refreshed {len(linked_units)} unit(s) with {booking_count} booking(s)",
        )

    def _aggregate(
        self,
        year: int,
        reservations: List[SmoobuReservation],
        apartment_to_unit: Dict[int, int],
    ) -> Tuple[Dict[Tuple[int, int], List], int]:
        """(unit_id, month) -> [revenue, booking_count]. 연결된 유닛의 12개월은 항상 0으로 채움"""
        buckets: Dict[Tuple[int, int], List] = {
            (unit_id, month): [Decimal("0"), 0]
            for unit_id in apartment_to_unit.values()
            for month in MONTHS
        }
        skipped: Counter = Counter()
        unlinked_apartments = set()
        counted = 0

        for reservation in reservations:
            if not reservation.counts_as_revenue:
                skipped[reservation.type] += 1
                continue
            if reservation.apartment is None:
                skipped["unassigned"] += 1
                continue
            unit_id = apartment_to_unit.get(reservation.apartment.id)
            if unit_id is None:
                unlinked_apartments.add(reservation.apartment.id)
                continue
            month = arrival_month(reservation.arrival, year)
            if month is None:
                skipped["other_year"] += 1
                continue

            bucket = buckets[(unit_id, month)]
            bucket[0] += Decimal(str(reservation.price or 0))
            bucket[1] += 1
            counted += 1

        logger.info(
            f"Revenue refresh {year}: fetched {len(reservations)}, counted {counted}, "
            f"skipped {dict(skipped)}, unlinked apartments {sorted(unlinked_apartments)}"
        )
        return buckets, counted

    def _record_failure(self, year: int, actor_id: Optional[str], error: str) -> None:
        """캐시 행은 건드리지 않고 메타에만 실패 기록"""
        try:
            self.cache_repo.upsert_meta(
                year=year,
                refreshed_at=datetime.now(timezone.utc),
                refreshed_by_user_id=actor_id,
                error=error,
                commit=True,
            )
        except Exception:
            logger.exception(f"Failed to record refresh error for {year}")
            raise

    def get_booking_revenue(self, year: int) -> BookingRevenueOverview:
        """관리자용 연간 매출 현황 (캐시 기준)"""
        self._validate_year(year)

        linked_units = sorted(self.unit_repo.get_linked_units(), key=lambda u: u.name)
        entries = self.cache_repo.get_year_entries(year)
        meta = self.cache_repo.get_meta(year)

        by_unit: Dict[int, Dict[int, Tuple[Decimal, int]]] = {}
        for entry in entries:
            by_unit.setdefault(entry.unit_id, {})[entry.month] = (
                to_money(entry.revenue),
                entry.booking_count,
            )

        zero = Decimal("0.00")
        monthly_totals = {month: zero for month in MONTHS}
        units: List[UnitRevenueSummary] = []
        for unit in linked_units:
            months = by_unit.get(unit.id, {})
            monthly_revenue = {m: months.get(m, (zero, 0))[0] for m in MONTHS}
            unit_bookings = sum(v[1] for v in months.values())
            for m, revenue in monthly_revenue.items():
                monthly_totals[m] += revenue
            units.append(
                UnitRevenueSummary(
                    unit_id=unit.id,
                    unit_name=unit.name,
                    smoobu_apartment_id=unit.smoobu_apartment_id,
                    monthly_revenue=monthly_revenue,
                    year_total=sum(monthly_revenue.values(), zero),
                    booking_count=unit_bookings,
                )
            )

        return BookingRevenueOverview(
            year=year,
            units=units,
            monthly_totals=monthly_totals,
            year_total=sum(monthly_totals.values(), zero),
            booking_count=sum(u.booking_count for u in units),
            currency=self.settings.CURRENCY,
            last_refreshed_at=meta.last_refreshed_at if meta else None,
            error=meta.error if meta else None,
        )

    async def get_apartment_links(self) -> List[SmoobuApartmentLink]:
        """Smoobu 아파트 목록과 각 아파트에 연결된 유닛 (유닛 연결 확인용)"""
        try:
            apartments = await self.provider.get_apartments()
        except SmoobuAPIError as e:
            logger.error(f"Failed to fetch Smoobu apartments: {e}")
            raise ExternalProviderError(str(e))

        units_by_apartment = {u.smoobu_apartment_id: u for u in self.unit_repo.get_linked_units()}
        links = []
        for apartment in sorted(apartments, key=lambda a: a.name):
            unit = units_by_apartment.get(apartment.id)
            links.append(
                SmoobuApartmentLink(
                    apartment_id=apartment.id,
                    name=apartment.name,
                    currency=apartment.currency,
                    linked_unit_id=unit.id if unit else None,
                    linked_unit_name=unit.name if unit else None,
                )
            )
        return links

    async def check_provider_connection(self) -> SmoobuConnectionStatus:
        connected = await self.provider.test_connection()
        return SmoobuConnectionStatus(
            connected=connected,
            checked_at=datetime.now(timezone.utc),
            error=None if connected else "Could not reach Smoobu with the configured API key",
        )
