"""
분기 정산 데이터 모델

QuarterlySettlement는 유닛/분기별 확정 정산 기록입니다.
한번 생성된 정산은 수정되지 않으며, 지급 완료된 payout이 없을 때만 삭제할 수 있습니다.
OwnerPayout은 정산 시점의 소유 지분(basis points)을 스냅샷으로 보관합니다.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.schema import CheckConstraint, Index, UniqueConstraint

from revshare.models.base import BaseModel, BigIntegerPK


class QuarterlySettlement(BaseModel):
    __tablename__ = "quarterly_unit_settlement"
    __table_args__ = (
        # 동시 정산 방지 - 저장소 레벨 유니크 제약
        UniqueConstraint("unit_id", "year", "quarter", name="uq_settlement_unit_quarter"),
        CheckConstraint("quarter BETWEEN 1 AND 4", name="ck_settlement_quarter"),
        Index("settlement_unit_year_idx", "unit_id", "year"),
    )

    id: Mapped[int] = mapped_column(BigIntegerPK, primary_key=True, autoincrement=True)
    unit_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("units.id"), nullable=False
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    quarter: Mapped[int] = mapped_column(Integer, nullable=False)
    gross_revenue: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    fixed_expense: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    additional_expense: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    management_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    net_pool: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by_user_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )

    payouts: Mapped[List["OwnerPayout"]] = relationship(
        back_populates="settlement",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OwnerPayout.id",
    )

    def __repr__(self):
        return (
            f"<QuarterlySettlement(id={self.id}, unit={self.unit_id}, "
            f"Q{self.quarter} {self.year}, net_pool={self.net_pool})>"
        )


class OwnerPayout(BaseModel):
    __tablename__ = "quarterly_owner_payout"
    __table_args__ = (
        UniqueConstraint("settlement_id", "user_id", name="uq_payout_settlement_user"),
        Index("payout_settlement_idx", "settlement_id"),
        Index("payout_user_idx", "user_id"),
    )

    id: Mapped[int] = mapped_column(BigIntegerPK, primary_key=True, autoincrement=True)
    settlement_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("quarterly_unit_settlement.id", ondelete="CASCADE"),
        nullable=False,
    )
    # users 테이블 FK가 아닌 값 - 이후 소유권 변동이 이력에 영향을 주지 않음
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    percentage_owned: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    paid_by_user_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    settlement: Mapped["QuarterlySettlement"] = relationship(back_populates="payouts")
