from typing import Any

from dependency_injector.wiring import inject
from fastapi import APIRouter, Depends

from revshare.core.auth_middleware import require_admin, require_user
from revshare.deps import get_earnings_service
from revshare.schemas.auth import BaseResponse, Principal
from revshare.services.earnings_service import EarningsService

router = APIRouter(prefix="/admin/units", tags=["earnings"])

# 소유자 본인 수익 조회 (읽기 전용)
owner_router = APIRouter(prefix="/earnings", tags=["earnings-owner"])


@router.get("/{unit_id}/earnings/{year}", response_model=BaseResponse)
@inject
async def get_quarterly_earnings(
    unit_id: int,
    year: int,
    _admin: Principal = Depends(require_admin),
    earnings_service: EarningsService = Depends(get_earnings_service),
) -> Any:
    """유닛의 분기별 수익 (정산 확정 값 또는 추정치)"""
    earnings = earnings_service.get_quarterly_earnings(unit_id, year)
    return BaseResponse(success=True, data={"earnings": earnings.model_dump(mode="json")})


@router.get("/{unit_id}/earnings/{year}/{quarter}/projection", response_model=BaseResponse)
@inject
async def project_quarter(
    unit_id: int,
    year: int,
    quarter: int,
    _admin: Principal = Depends(require_admin),
    earnings_service: EarningsService = Depends(get_earnings_service),
) -> Any:
    """미정산 분기 추정치 (저장되지 않음)"""
    estimate = earnings_service.project_quarter(unit_id, year, quarter)
    return BaseResponse(success=True, data={"projection": estimate.model_dump(mode="json")})


@owner_router.get("/me/{year}", response_model=BaseResponse)
@inject
async def get_my_earnings(
    year: int,
    current_user: Principal = Depends(require_user),
    earnings_service: EarningsService = Depends(get_earnings_service),
) -> Any:
    """내 유닛별 분기 수익 (PAID / PENDING / ESTIMATE)"""
    earnings = earnings_service.get_owner_earnings(current_user.user_id, year)
    return BaseResponse(success=True, data={"earnings": earnings.model_dump(mode="json")})
