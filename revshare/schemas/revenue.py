from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class RevenueCacheEntrySchema(BaseModel):
    year: int
    unit_id: int
    month: int = Field(..., ge=1, le=12)
    revenue: Decimal
    booking_count: int = Field(..., ge=0)

    class Config:
        from_attributes = True


class RevenueCacheMetaSchema(BaseModel):
    year: int
    last_refreshed_at: datetime
    refreshed_by_user_id: Optional[str] = None
    error: Optional[str] = None

    class Config:
        from_attributes = True


class RevenueRefreshResult(BaseModel):
    year: int
    success: bool
    booking_count: int = 0
    message: str
    error: Optional[str] = None


class UnitRevenueSummary(BaseModel):
    unit_id: int
    unit_name: str
    smoobu_apartment_id: int
    monthly_revenue: Dict[int, Decimal]
    year_total: Decimal
    booking_count: int


class BookingRevenueOverview(BaseModel):
    year: int
    units: List[UnitRevenueSummary]
    monthly_totals: Dict[int, Decimal]
    year_total: Decimal
    booking_count: int
    currency: str
    last_refreshed_at: Optional[datetime] = None
    error: Optional[str] = None


class SmoobuApartmentLink(BaseModel):
    """Smoobu 아파트와 연결된 유닛 (미연결이면 linked_unit_* None)"""

    apartment_id: int
    name: str
    currency: Optional[str] = None
    linked_unit_id: Optional[int] = None
    linked_unit_name: Optional[str] = None


class SmoobuConnectionStatus(BaseModel):
    connected: bool
    checked_at: datetime
    error: Optional[str] = None
