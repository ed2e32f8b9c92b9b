"""
분기 정산 서비스

정산은 한번 생성되면 수정되지 않습니다. 정산 행과 소유자별 payout 행은
하나의 트랜잭션으로 함께 생성되며, 지급 완료된 payout이 있으면 삭제할 수 없습니다.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from revshare.config import Settings
from revshare.core.deductions import (
    aggregate_owner_percentages,
    allocate_payouts,
    compute_deductions,
    to_money,
)
from revshare.core.exceptions import (
    DuplicateSettlementError,
    ImmutabilityViolationError,
    NotFoundError,
    ValidationError,
)
from revshare.repositories.revenue_cache_repository import RevenueCacheRepository
from revshare.repositories.settlement_repository import SettlementRepository
from revshare.repositories.unit_repository import OwnershipRepository, UnitRepository
from revshare.schemas.settlement import (
    SettlementCreate,
    SettlementDeleteResult,
    SettlementResponse,
)
from revshare.utils.date_utils import quarter_months, validate_year

logger = logging.getLogger(__name__)


class SettlementService:
    """정산 생성/조회/삭제"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.unit_repo = UnitRepository(db)
        self.ownership_repo = OwnershipRepository(db)
        self.cache_repo = RevenueCacheRepository(db)
        self.settlement_repo = SettlementRepository(db)

    def create_settlement(
        self, request: SettlementCreate, actor_id: Optional[str] = None
    ) -> SettlementResponse:
        """
        분기 정산 확정

        1. 중복 정산 확인 (DB 유니크 제약으로 동시 요청도 차단)
        2. 캐시에서 분기 매출 합계 (캐시가 없으면 0)
        3. 공제 계산 (고정비 → 추가비용 → 관리 수수료)
        4. 현재 소유 지분 스냅샷으로 payout 생성

        Raises:
            DuplicateSettlementError: 이미 정산된 분기
            NotFoundError: 유닛 없음
        """
        unit_id, year, quarter = request.unit_id, request.year, request.quarter
        if self.unit_repo.get_by_id(unit_id) is None:
            raise NotFoundError(f"Unit {unit_id} not found", details={"unit_id": unit_id})

        if self.settlement_repo.get_by_unit_quarter(unit_id, year, quarter) is not None:
            raise DuplicateSettlementError(unit_id, year, quarter)

        gross = to_money(self.cache_repo.sum_revenue(year, unit_id, quarter_months(quarter)))
        try:
            breakdown = compute_deductions(
                gross,
                self.settings.FIXED_EXPENSE_PER_QUARTER,
                request.additional_expense,
                self.settings.MANAGEMENT_FEE_PERCENT,
            )
        except ValueError as e:
            raise ValidationError(str(e), details={"unit_id": unit_id, "quarter": quarter})

        ownerships = self.ownership_repo.get_active_for_unit(unit_id)
        owners = aggregate_owner_percentages((o.user_id, o.percentage_owned) for o in ownerships)
        payouts = allocate_payouts(breakdown.net_pool, owners)

        try:
            settlement = self.settlement_repo.create_with_payouts(
                unit_id=unit_id,
                year=year,
                quarter=quarter,
                gross_revenue=breakdown.gross_revenue,
                fixed_expense=breakdown.fixed_expense,
                additional_expense=breakdown.additional_expense,
                management_fee=breakdown.management_fee,
                net_pool=breakdown.net_pool,
                notes=request.notes,
                created_by_user_id=actor_id,
                payouts=payouts,
                commit=False,
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            # 동시 요청이 먼저 커밋한 경우
            if self.settlement_repo.get_by_unit_quarter(unit_id, year, quarter) is not None:
                raise DuplicateSettlementError(unit_id, year, quarter)
            raise
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Settlement {settlement.id} created by {actor_id}: unit {unit_id} Q{quarter} {year}, "
            f"gross {breakdown.gross_revenue}, fee {breakdown.management_fee}, "
            f"net pool {breakdown.net_pool}, {len(payouts)} payout(s)"
        )
        return settlement

    def get_settlement(self, settlement_id: int) -> SettlementResponse:
        settlement = self.settlement_repo.get_by_id(settlement_id)
        if settlement is None:
            raise NotFoundError(
                f"Settlement {settlement_id} not found",
                details={"settlement_id": settlement_id},
            )
        return settlement

    def list_settlements(self, unit_id: int, year: int) -> List[SettlementResponse]:
        try:
            validate_year(year)
        except ValueError as e:
            raise ValidationError(str(e), details={"year": year})
        return self.settlement_repo.list_for_unit_year(unit_id, year)

    def delete_settlement(self, settlement_id: int) -> SettlementDeleteResult:
        """
        지급 완료된 payout이 없을 때만 정산과 payout 삭제

        지급 여부는 잠금 조회한 payout 행으로 판단하므로 확인과 삭제 사이에
        다른 요청이 지급 처리할 수 없습니다.

        Raises:
            NotFoundError: 정산 없음
            ImmutabilityViolationError: 지급 완료된 payout 존재
        """
        try:
            locked = self.settlement_repo.lock_with_payouts(settlement_id)
            if locked is None:
                raise NotFoundError(
                    f"Settlement {settlement_id} not found",
                    details={"settlement_id": settlement_id},
                )
            settlement, payouts = locked

            paid_count = sum(1 for p in payouts if p.is_paid)
            if paid_count > 0:
                raise ImmutabilityViolationError(
                    settlement_id=settlement.id,
                    unit_id=settlement.unit_id,
                    year=settlement.year,
                    quarter=settlement.quarter,
                    paid_count=paid_count,
                )

            deleted_payouts = self.settlement_repo.delete_with_payouts(
                settlement_id, commit=False
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Settlement {settlement_id} deleted: unit {settlement.unit_id} "
            f"Q{settlement.quarter} {settlement.year}, {deleted_payouts} payout(s) removed"
        )
        return SettlementDeleteResult(
            settlement_id=settlement_id,
            unit_id=settlement.unit_id,
            year=settlement.year,
            quarter=settlement.quarter,
            deleted_payouts=deleted_payouts,
        )
