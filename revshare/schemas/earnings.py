from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from revshare.schemas.settlement import OwnerPayoutResponse


class ShareStatus(str, Enum):
    PAID = "PAID"
    PENDING = "PENDING"
    ESTIMATE = "ESTIMATE"


class EarningsConfig(BaseModel):
    fixed_expense_per_quarter: Decimal
    management_fee_percent: Decimal


class OwnerShareEstimate(BaseModel):
    user_id: str
    percentage_owned: int
    percentage_display: str
    estimated_amount: Decimal


class EstimatedQuarter(BaseModel):
    """미정산 분기 추정치 - 저장되지 않으며 조회할 때마다 재계산됨"""

    unit_id: int
    year: int
    quarter: int
    label: str
    gross_revenue: Decimal
    fixed_expense: Decimal
    additional_expense: Decimal = Decimal("0.00")
    management_fee: Decimal
    net_pool: Decimal
    is_settled: bool = False
    # 이미 정산된 분기면 확정 정산 ID (추정치는 확정 값이 아님)
    settled_settlement_id: Optional[int] = None
    owners: List[OwnerShareEstimate] = Field(default_factory=list)


class SettledQuarterDetail(BaseModel):
    id: int
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    created_by_user_id: Optional[str] = None
    payouts: List[OwnerPayoutResponse] = Field(default_factory=list)


class QuarterEarnings(BaseModel):
    quarter: int
    label: str
    gross_revenue: Decimal
    fixed_expense: Decimal
    additional_expense: Decimal
    management_fee: Decimal
    net_pool: Decimal
    is_settled: bool
    settlement: Optional[SettledQuarterDetail] = None


class OwnerEarningsRow(BaseModel):
    user_id: str
    percentage_owned: int
    percentage_display: str
    quarter_shares: List[Decimal]
    year_total: Decimal


class UnitQuarterlyEarnings(BaseModel):
    unit_id: int
    year: int
    last_refreshed_at: Optional[datetime] = None
    quarters: List[QuarterEarnings]
    year_total_net_pool: Decimal
    owners: List[OwnerEarningsRow]
    config: EarningsConfig


class OwnerQuarterShare(BaseModel):
    quarter: int
    label: str
    owner_share: Decimal
    status: ShareStatus
    paid_at: Optional[datetime] = None


class OwnerUnitEarnings(BaseModel):
    unit_id: int
    unit_name: str
    owner_percentage: int
    owner_percentage_display: str
    quarters: List[OwnerQuarterShare]
    year_total: Decimal


class OwnerEarningsResponse(BaseModel):
    user_id: str
    year: int
    last_refreshed_at: Optional[datetime] = None
    units: List[OwnerUnitEarnings]
    grand_total: Decimal
