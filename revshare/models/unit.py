"""
유닛/소유권 모델

units, ownership 테이블은 구매/승인 워크플로우가 소유하는 외부 테이블입니다.
정산 엔진은 이 테이블을 읽기만 합니다.
"""

import enum
from typing import Optional

from sqlalchemy import BigInteger, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from revshare.models.base import BaseModel, BigIntegerPK


class ApprovalStatusEnum(str, enum.Enum):
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Unit(BaseModel):
    __tablename__ = "units"

    id: Mapped[int] = mapped_column(BigIntegerPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Smoobu apartment id (연결 전에는 NULL)
    smoobu_apartment_id: Mapped[Optional[int]] = mapped_column(
        Integer, unique=True, nullable=True, index=True
    )

    def __repr__(self):
        return f"<Unit(id={self.id}, name={self.name}, smoobu={self.smoobu_apartment_id})>"

    @property
    def is_linked(self) -> bool:
        return self.smoobu_apartment_id is not None


class Ownership(BaseModel):
    __tablename__ = "ownership"
    __table_args__ = (
        Index("ownership_unit_idx", "unit_id"),
        Index("ownership_user_idx", "user_id"),
        Index("ownership_approval_status_idx", "approval_status"),
    )

    id: Mapped[int] = mapped_column(BigIntegerPK, primary_key=True, autoincrement=True)
    unit_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("units.id"), nullable=True
    )
    user_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    # basis points: 100 = 1%, 10000 = 100%
    percentage_owned: Mapped[int] = mapped_column(Integer, nullable=False)
    # NULL = 일반 구매 (승인 절차 없음)
    approval_status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
