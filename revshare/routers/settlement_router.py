from typing import Any, Optional

from dependency_injector.wiring import inject
from fastapi import APIRouter, Body, Depends, status

from revshare.core.auth_middleware import require_admin
from revshare.deps import get_payout_service, get_settlement_service
from revshare.schemas.auth import BaseResponse, Principal
from revshare.schemas.settlement import PayoutMarkPaidRequest, SettlementCreate
from revshare.services.payout_service import PayoutService
from revshare.services.settlement_service import SettlementService

router = APIRouter(prefix="/admin", tags=["settlement"])


@router.post("/settlements", response_model=BaseResponse, status_code=status.HTTP_201_CREATED)
@inject
async def create_settlement(
    request: SettlementCreate,
    admin: Principal = Depends(require_admin),
    settlement_service: SettlementService = Depends(get_settlement_service),
) -> Any:
    """분기 정산을 확정하고 소유자별 payout을 생성합니다. (관리자 전용)"""
    settlement = settlement_service.create_settlement(request, actor_id=admin.user_id)
    return BaseResponse(success=True, data={"settlement": settlement.model_dump(mode="json")})


@router.get("/settlements/{settlement_id}", response_model=BaseResponse)
@inject
async def get_settlement(
    settlement_id: int,
    _admin: Principal = Depends(require_admin),
    settlement_service: SettlementService = Depends(get_settlement_service),
) -> Any:
    settlement = settlement_service.get_settlement(settlement_id)
    return BaseResponse(success=True, data={"settlement": settlement.model_dump(mode="json")})


@router.get("/units/{unit_id}/settlements/{year}", response_model=BaseResponse)
@inject
async def list_settlements(
    unit_id: int,
    year: int,
    _admin: Principal = Depends(require_admin),
    settlement_service: SettlementService = Depends(get_settlement_service),
) -> Any:
    settlements = settlement_service.list_settlements(unit_id, year)
    return BaseResponse(
        success=True,
        data={"settlements": [s.model_dump(mode="json") for s in settlements]},
        meta={"count": len(settlements)},
    )


@router.delete("/settlements/{settlement_id}", response_model=BaseResponse)
@inject
async def delete_settlement(
    settlement_id: int,
    admin: Principal = Depends(require_admin),
    settlement_service: SettlementService = Depends(get_settlement_service),
) -> Any:
    """정산 삭제 - 지급 완료된 payout이 있으면 거부됩니다."""
    result = settlement_service.delete_settlement(settlement_id)
    return BaseResponse(success=True, data={"deleted": result.model_dump(mode="json")})


@router.post("/payouts/{payout_id}/mark-paid", response_model=BaseResponse)
@inject
async def mark_payout_paid(
    payout_id: int,
    request: Optional[PayoutMarkPaidRequest] = Body(default=None),
    admin: Principal = Depends(require_admin),
    payout_service: PayoutService = Depends(get_payout_service),
) -> Any:
    notes = request.notes if request else None
    payout = payout_service.mark_payout_paid(payout_id, actor_id=admin.user_id, notes=notes)
    return BaseResponse(success=True, data={"payout": payout.model_dump(mode="json")})


@router.post("/settlements/{settlement_id}/mark-all-paid", response_model=BaseResponse)
@inject
async def mark_all_payouts_paid(
    settlement_id: int,
    request: Optional[PayoutMarkPaidRequest] = Body(default=None),
    admin: Principal = Depends(require_admin),
    payout_service: PayoutService = Depends(get_payout_service),
) -> Any:
    """미지급 payout 일괄 지급 처리 (미지급이 없으면 updated_count=0)"""
    notes = request.notes if request else None
    result = payout_service.mark_all_unpaid_for_settlement(
        settlement_id, actor_id=admin.user_id, notes=notes
    )
    return BaseResponse(success=True, data={"result": result.model_dump(mode="json")})
