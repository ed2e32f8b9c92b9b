from typing import Any

from dependency_injector.wiring import inject
from fastapi import APIRouter, Depends

from revshare.core.auth_middleware import require_admin
from revshare.core.exceptions import ExternalProviderError
from revshare.deps import get_revenue_service
from revshare.schemas.auth import BaseResponse, Principal
from revshare.services.revenue_service import RevenueService

router = APIRouter(prefix="/admin/revenue", tags=["revenue"])


@router.post("/refresh/{year}", response_model=BaseResponse)
@inject
async def refresh_revenue(
    year: int,
    admin: Principal = Depends(require_admin),
    revenue_service: RevenueService = Depends(get_revenue_service),
) -> Any:
    """Smoobu 예약으로 연도 매출 캐시를 갱신합니다. (관리자 전용)"""
    result = await revenue_service.refresh_revenue(year, actor_id=admin.user_id)
    if not result.success:
        raise ExternalProviderError(result.error or "unknown provider error", year=year)
    return BaseResponse(success=True, data={"refresh": result.model_dump(mode="json")})


@router.get("/{year}", response_model=BaseResponse)
@inject
async def get_booking_revenue(
    year: int,
    _admin: Principal = Depends(require_admin),
    revenue_service: RevenueService = Depends(get_revenue_service),
) -> Any:
    """연간 유닛별/월별 매출 현황 (캐시 기준, 관리자 전용)"""
    overview = revenue_service.get_booking_revenue(year)
    return BaseResponse(success=True, data={"revenue": overview.model_dump(mode="json")})
