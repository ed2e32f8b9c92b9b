from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import patch

import pytest

from conftest import FakeRevenueProvider, make_reservation, seed_cache
from revshare.core.exceptions import ValidationError
from revshare.models import RevenueCacheEntry, RevenueCacheMeta, Unit
from revshare.repositories.revenue_cache_repository import RevenueCacheRepository
from revshare.services.revenue_service import RevenueService


def sample_reservations():
    return [
        make_reservation(1, "2024-01-15", 5000, apartment_id=101),
        make_reservation(2, "2024-01-20", 2500.50, apartment_id=101, type="modification of booking"),
        make_reservation(3, "2024-01-10", 9999, apartment_id=101, type="cancellation"),
        make_reservation(4, "2024-02-01", 700, apartment_id=None),
        make_reservation(5, "2024-02-01", 800, apartment_id=999),
        make_reservation(6, "2024-03-02", 1200, apartment_id=102),
        make_reservation(7, "2023-12-30", 800, apartment_id=101),
        make_reservation(8, "2024-04-01", 0, apartment_id=102, type="blocked"),
    ]


def cache_rows(db, year):
    db.expire_all()
    return [
        (r.year, r.unit_id, r.month, r.revenue, r.booking_count)
        for r in db.query(RevenueCacheEntry)
        .filter(RevenueCacheEntry.year == year)
        .order_by(RevenueCacheEntry.unit_id, RevenueCacheEntry.month)
        .all()
    ]


@pytest.fixture
def provider():
    return FakeRevenueProvider(sample_reservations())


@pytest.fixture
def revenue_service(seeded_db, app_settings, provider):
    return RevenueService(seeded_db, app_settings, provider=provider)


class TestRefreshRevenue:
    """매출 캐시 갱신 테스트"""

    async def test_aggregates_counted_bookings_by_arrival_month(self, revenue_service, seeded_db, provider):
        # Act
        result = await revenue_service.refresh_revenue(2024, actor_id="admin-1")

        # Assert
        assert result.success is True
        assert result.booking_count == 3
        assert provider.calls == [("2024-01-01", "2024-12-31")]

        rows = cache_rows(seeded_db, 2024)
        # 연결된 유닛 2개 x 12개월, 활동이 없는 월도 0으로 채워짐
        assert len(rows) == 24
        by_key = {(r[1], r[2]): (r[3], r[4]) for r in rows}
        assert by_key[(1, 1)] == (Decimal("7500.50"), 2)
        assert by_key[(2, 3)] == (Decimal("1200.00"), 1)
        assert by_key[(1, 12)] == (Decimal("0.00"), 0)
        assert all(unit_id != 3 for _, unit_id, *_ in rows)

        meta = seeded_db.get(RevenueCacheMeta, 2024)
        assert meta.error is None
        assert meta.refreshed_by_user_id == "admin-1"
        assert meta.last_refreshed_at is not None

    async def test_refresh_twice_yields_identical_rows(self, revenue_service, seeded_db):
        await revenue_service.refresh_revenue(2024, actor_id="admin-1")
        first = cache_rows(seeded_db, 2024)

        await revenue_service.refresh_revenue(2024, actor_id="admin-2")
        second = cache_rows(seeded_db, 2024)

        assert first == second

    async def test_refresh_replaces_whole_year(self, seeded_db, app_settings):
        service = RevenueService(
            seeded_db, app_settings, provider=FakeRevenueProvider(sample_reservations())
        )
        await service.refresh_revenue(2024)

        service.provider = FakeRevenueProvider([make_reservation(10, "2024-06-05", 300, apartment_id=102)])
        result = await service.refresh_revenue(2024)

        rows = cache_rows(seeded_db, 2024)
        non_zero = [(r[1], r[2], r[3]) for r in rows if r[4] > 0]
        assert result.booking_count == 1
        assert non_zero == [(2, 6, Decimal("300.00"))]

    async def test_provider_failure_preserves_cache(self, seeded_db, app_settings):
        # Arrange
        seed_cache(seeded_db, 2024, 1, {1: "4000.00", 2: "3500.00"})
        before = cache_rows(seeded_db, 2024)
        service = RevenueService(
            seeded_db, app_settings, provider=FakeRevenueProvider(error="Smoobu is unreachable")
        )

        # Act
        result = await service.refresh_revenue(2024, actor_id="admin-1")

        # Assert
        assert result.success is False
        assert "unreachable" in result.error
        assert cache_rows(seeded_db, 2024) == before

        meta = seeded_db.get(RevenueCacheMeta, 2024)
        assert meta.error is not None
        assert "unreachable" in meta.error

    async def test_success_after_failure_clears_error(self, seeded_db, app_settings):
        service = RevenueService(seeded_db, app_settings, provider=FakeRevenueProvider(error="timeout"))
        await service.refresh_revenue(2024)

        service.provider = FakeRevenueProvider(sample_reservations())
        await service.refresh_revenue(2024)

        seeded_db.expire_all()
        assert seeded_db.get(RevenueCacheMeta, 2024).error is None

    @pytest.mark.parametrize("failing_step", ["upsert_meta", "replace_year"])
    async def test_cache_write_failure_keeps_previous_year(self, seeded_db, app_settings, failing_step):
        # Arrange
        seed_cache(seeded_db, 2024, 1, {1: "1234.00", 2: "99.00"})
        before = cache_rows(seeded_db, 2024)
        service = RevenueService(seeded_db, app_settings, provider=FakeRevenueProvider(sample_reservations()))
        real_step = getattr(RevenueCacheRepository, failing_step)

        def fail_after_real_step(repo, *args, **kwargs):
            # 실제 삭제/삽입이 flush된 뒤 실패
            real_step(repo, *args, **kwargs)
            raise RuntimeError("disk full")

        # Act
        with patch.object(RevenueCacheRepository, failing_step, autospec=True, side_effect=fail_after_real_step):
            with pytest.raises(RuntimeError):
                await service.refresh_revenue(2024, actor_id="admin-1")

        # Assert
        assert cache_rows(seeded_db, 2024) == before
        assert seeded_db.query(RevenueCacheMeta).count() == 0

    async def test_year_is_locked_before_rows_are_replaced(self, revenue_service):
        calls = []
        repo = revenue_service.cache_repo
        real_lock, real_replace = repo.lock_year, repo.replace_year

        def record(name, real):
            def wrapper(*args, **kwargs):
                calls.append(name)
                return real(*args, **kwargs)
            return wrapper

        with patch.object(repo, "lock_year", side_effect=record("lock", real_lock)), patch.object(
            repo, "replace_year", side_effect=record("replace", real_replace)
        ):
            result = await revenue_service.refresh_revenue(2024)

        assert result.success is True
        assert calls == ["lock", "replace"]

    def test_lock_year_is_idempotent(self, seeded_db):
        repo = RevenueCacheRepository(seeded_db)
        now = datetime(2024, 5, 1, tzinfo=timezone.utc)

        repo.lock_year(2024, now)
        repo.lock_year(2024, now)
        seeded_db.commit()

        assert seeded_db.query(RevenueCacheMeta).filter(RevenueCacheMeta.year == 2024).count() == 1

    async def test_no_linked_units(self, seeded_db, app_settings):
        seeded_db.query(Unit).update({Unit.smoobu_apartment_id: None})
        seeded_db.commit()
        provider = FakeRevenueProvider(sample_reservations())
        service = RevenueService(seeded_db, app_settings, provider=provider)

        result = await service.refresh_revenue(2024)

        assert result.success is True
        assert result.booking_count == 0
        assert result.message == "No linked units to refresh"
        assert provider.calls == []
        assert cache_rows(seeded_db, 2024) == []

    async def test_out_of_range_year_rejected(self, revenue_service):
        with pytest.raises(ValidationError):
            await revenue_service.refresh_revenue(1999)


class TestGetBookingRevenue:
    async def test_overview_after_refresh(self, revenue_service):
        await revenue_service.refresh_revenue(2024, actor_id="admin-1")

        overview = revenue_service.get_booking_revenue(2024)

        assert [u.unit_name for u in overview.units] == ["Casa Azul", "Villa Verde"]
        assert overview.units[0].monthly_revenue[1] == Decimal("7500.50")
        assert overview.units[0].year_total == Decimal("7500.50")
        assert overview.units[0].booking_count == 2
        assert overview.monthly_totals[3] == Decimal("1200.00")
        assert overview.year_total == Decimal("8700.50")
        assert overview.booking_count == 3
        assert overview.currency == "PHP"
        assert overview.last_refreshed_at is not None
        assert overview.error is None

    def test_overview_without_cache(self, revenue_service):
        overview = revenue_service.get_booking_revenue(2025)

        assert len(overview.units) == 2
        assert overview.year_total == Decimal("0.00")
        assert overview.last_refreshed_at is None
