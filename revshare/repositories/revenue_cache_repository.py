"""
매출 캐시 리포지토리

캐시 행은 연도 단위로만 교체됩니다 (meta 행 잠금 → delete → insert).
commit 여부는 호출하는 서비스가 결정하며, 한 트랜잭션 안에서 교체와 메타 기록이 함께 커밋됩니다.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from revshare.models.revenue import RevenueCacheEntry, RevenueCacheMeta
from revshare.repositories.base import BaseRepository
from revshare.schemas.revenue import RevenueCacheEntrySchema, RevenueCacheMetaSchema


class RevenueCacheRepository(BaseRepository[RevenueCacheEntry, RevenueCacheEntrySchema]):
    def __init__(self, db: Session):
        super().__init__(RevenueCacheEntry, RevenueCacheEntrySchema, db)

    def lock_year(self, year: int, now: datetime) -> None:
        """
        같은 연도 캐시 교체를 직렬화하기 위한 메타 행 잠금

        메타 행이 없으면 먼저 삽입하고 (ON CONFLICT DO NOTHING) FOR UPDATE로 잠급니다.
        동시에 들어온 같은 연도 갱신은 먼저 잠근 트랜잭션이 커밋될 때까지 대기합니다.
        """
        dialect = postgresql if self.db.get_bind().dialect.name == "postgresql" else sqlite
        self.db.execute(
            dialect.insert(RevenueCacheMeta)
            .values(year=year, last_refreshed_at=now)
            .on_conflict_do_nothing(index_elements=["year"])
        )
        (
            self.db.query(RevenueCacheMeta)
            .filter(RevenueCacheMeta.year == year)
            .with_for_update()
            .populate_existing()
            .one()
        )

    def replace_year(
        self,
        year: int,
        entries: Iterable[Tuple[int, int, Decimal, int]],
        commit: bool = True,
    ) -> int:
        """
        연도 전체 캐시 교체

        Args:
            year: 대상 연도
            entries: (unit_id, month, revenue, booking_count)

        Returns:
            int: 삽입된 행 수
        """
        self.db.execute(delete(RevenueCacheEntry).where(RevenueCacheEntry.year == year))
        rows = [
            RevenueCacheEntry(
                year=year,
                unit_id=unit_id,
                month=month,
                revenue=revenue,
                booking_count=booking_count,
            )
            for unit_id, month, revenue, booking_count in entries
        ]
        self.db.add_all(rows)
        self._commit_or_flush(commit)
        return len(rows)

    def get_year_entries(self, year: int) -> List[RevenueCacheEntrySchema]:
        rows = (
            self.db.query(RevenueCacheEntry)
            .filter(RevenueCacheEntry.year == year)
            .order_by(RevenueCacheEntry.unit_id, RevenueCacheEntry.month)
            .all()
        )
        return self._to_schemas(rows)

    def get_unit_entries(self, year: int, unit_id: int) -> List[RevenueCacheEntrySchema]:
        rows = (
            self.db.query(RevenueCacheEntry)
            .filter(
                RevenueCacheEntry.year == year,
                RevenueCacheEntry.unit_id == unit_id,
            )
            .order_by(RevenueCacheEntry.month)
            .all()
        )
        return self._to_schemas(rows)

    def get_monthly_revenue(self, year: int, unit_id: int) -> Dict[int, Decimal]:
        """월 -> 매출 (캐시가 없는 월은 포함되지 않음)"""
        return {e.month: e.revenue for e in self.get_unit_entries(year, unit_id)}

    def sum_revenue(self, year: int, unit_id: int, months: Iterable[int]) -> Decimal:
        total = (
            self.db.query(func.coalesce(func.sum(RevenueCacheEntry.revenue), 0))
            .filter(
                RevenueCacheEntry.year == year,
                RevenueCacheEntry.unit_id == unit_id,
                RevenueCacheEntry.month.in_(list(months)),
            )
            .scalar()
        )
        return Decimal(str(total or 0))

    # ---- meta ----

    def get_meta(self, year: int) -> Optional[RevenueCacheMetaSchema]:
        meta = self.db.get(RevenueCacheMeta, year)
        if meta is None:
            return None
        return RevenueCacheMetaSchema.model_validate(meta)

    def upsert_meta(
        self,
        year: int,
        refreshed_at: datetime,
        refreshed_by_user_id: Optional[str],
        error: Optional[str],
        commit: bool = True,
    ) -> RevenueCacheMetaSchema:
        """갱신 시도마다 기록 (실패 포함)"""
        meta = self.db.get(RevenueCacheMeta, year)
        if meta is None:
            meta = RevenueCacheMeta(year=year)
            self.db.add(meta)
        meta.last_refreshed_at = refreshed_at
        meta.refreshed_by_user_id = refreshed_by_user_id
        meta.error = error
        self._commit_or_flush(commit)
        return RevenueCacheMetaSchema.model_validate(meta)
