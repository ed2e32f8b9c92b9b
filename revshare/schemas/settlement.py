from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from revshare.utils.date_utils import validate_year


class SettlementCreate(BaseModel):
    unit_id: int = Field(..., gt=0)
    year: int
    quarter: int = Field(..., ge=1, le=4)
    additional_expense: Annotated[Decimal, Field(ge=0, decimal_places=2)] = Decimal("0")
    notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("year")
    @classmethod
    def validate_year_range(cls, v: int) -> int:
        return validate_year(v)


class PayoutMarkPaidRequest(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=2000)


class OwnerPayoutResponse(BaseModel):
    id: int
    settlement_id: int
    user_id: str
    percentage_owned: int
    amount: Decimal
    is_paid: bool
    paid_at: Optional[datetime] = None
    paid_by_user_id: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True

    @computed_field  # type: ignore[misc]
    @property
    def percentage_display(self) -> str:
        return f"{self.percentage_owned / 100:.2f}%"


class SettlementResponse(BaseModel):
    id: int
    unit_id: int
    year: int
    quarter: int
    gross_revenue: Decimal
    fixed_expense: Decimal
    additional_expense: Decimal
    management_fee: Decimal
    net_pool: Decimal
    notes: Optional[str] = None
    created_by_user_id: Optional[str] = None
    created_at: Optional[datetime] = None
    payouts: List[OwnerPayoutResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class BulkPayoutResult(BaseModel):
    settlement_id: int
    updated_count: int
    payouts: List[OwnerPayoutResponse]


class SettlementDeleteResult(BaseModel):
    settlement_id: int
    unit_id: int
    year: int
    quarter: int
    deleted_payouts: int
