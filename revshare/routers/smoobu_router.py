from typing import Any

from dependency_injector.wiring import inject
from fastapi import APIRouter, Depends

from revshare.core.auth_middleware import require_admin
from revshare.deps import get_revenue_service
from revshare.schemas.auth import BaseResponse, Principal
from revshare.services.revenue_service import RevenueService

router = APIRouter(prefix="/admin/smoobu", tags=["smoobu"])


@router.get("/apartments", response_model=BaseResponse)
@inject
async def get_smoobu_apartments(
    _admin: Principal = Depends(require_admin),
    revenue_service: RevenueService = Depends(get_revenue_service),
) -> Any:
    """Smoobu 아파트 목록과 연결된 유닛 (관리자 전용)"""
    links = await revenue_service.get_apartment_links()
    return BaseResponse(
        success=True,
        data={"apartments": [link.model_dump(mode="json") for link in links]},
        meta={"count": len(links)},
    )


@router.post("/test-connection", response_model=BaseResponse)
@inject
async def check_smoobu_connection(
    _admin: Principal = Depends(require_admin),
    revenue_service: RevenueService = Depends(get_revenue_service),
) -> Any:
    """Smoobu API 키/연결 확인. 연결 실패도 200으로 결과만 반환"""
    status = await revenue_service.check_provider_connection()
    return BaseResponse(success=True, data={"connection": status.model_dump(mode="json")})
