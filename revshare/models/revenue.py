"""
예약 매출 캐시 모델

Smoobu 예약 데이터를 (연도, 유닛, 월) 단위로 집계해 저장합니다.
캐시는 연도 단위로 통째로 삭제 후 재삽입되며, 부분 업데이트되지 않습니다.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import CheckConstraint, Index, PrimaryKeyConstraint

from revshare.models.base import Base


class RevenueCacheEntry(Base):
    """월별 매출 집계 (갱신 시각은 RevenueCacheMeta에 기록)"""

    __tablename__ = "booking_revenue_cache"
    __table_args__ = (
        PrimaryKeyConstraint("year", "unit_id", "month"),
        CheckConstraint("month BETWEEN 1 AND 12", name="ck_revenue_cache_month"),
        CheckConstraint("booking_count >= 0", name="ck_revenue_cache_booking_count"),
        Index("revenue_cache_year_idx", "year"),
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("units.id", ondelete="CASCADE"), nullable=False
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-12
    revenue: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    booking_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class RevenueCacheMeta(Base):
    """연도별 캐시 갱신 기록 (실패한 갱신 시도 포함)"""

    __tablename__ = "booking_revenue_cache_meta"

    year: Mapped[int] = mapped_column(Integer, primary_key=True)
    last_refreshed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    refreshed_by_user_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
