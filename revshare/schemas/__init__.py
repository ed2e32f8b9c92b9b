from .auth import BaseResponse, Error, ErrorCode, Principal
from .revenue import RevenueRefreshResult, BookingRevenueOverview
from .settlement import SettlementCreate, SettlementResponse, OwnerPayoutResponse
from .earnings import EstimatedQuarter, UnitQuarterlyEarnings, OwnerEarningsResponse
