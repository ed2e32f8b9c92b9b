"""
수익 조회 서비스 (읽기 전용)

정산된 분기는 확정된 정산 값을, 미정산 분기는 캐시 기반 추정치를 사용합니다.
추정치는 저장되지 않으며 호출할 때마다 다시 계산됩니다.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from revshare.config import Settings
from revshare.core.deductions import (
    DeductionBreakdown,
    aggregate_owner_percentages,
    compute_deductions,
    owner_share,
    percentage_display,
    to_money,
)
from revshare.core.exceptions import NotFoundError, ValidationError
from revshare.repositories.revenue_cache_repository import RevenueCacheRepository
from revshare.repositories.settlement_repository import SettlementRepository
from revshare.repositories.unit_repository import OwnershipRepository, UnitRepository
from revshare.schemas.earnings import (
    EarningsConfig,
    EstimatedQuarter,
    OwnerEarningsResponse,
    OwnerEarningsRow,
    OwnerQuarterShare,
    OwnerShareEstimate,
    OwnerUnitEarnings,
    QuarterEarnings,
    SettledQuarterDetail,
    ShareStatus,
    UnitQuarterlyEarnings,
)
from revshare.schemas.settlement import SettlementResponse
from revshare.schemas.unit import UnitSchema
from revshare.utils.date_utils import (
    quarter_label,
    quarter_months,
    validate_quarter,
    validate_year,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
QUARTERS = (1, 2, 3, 4)


class EarningsService:
    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.unit_repo = UnitRepository(db)
        self.ownership_repo = OwnershipRepository(db)
        self.cache_repo = RevenueCacheRepository(db)
        self.settlement_repo = SettlementRepository(db)

    # ---- helpers ----

    def _validate_period(self, year: int, quarter: Optional[int] = None) -> None:
        try:
            validate_year(year)
            if quarter is not None:
                validate_quarter(quarter)
        except ValueError as e:
            raise ValidationError(str(e), details={"year": year, "quarter": quarter})

    def _get_unit(self, unit_id: int) -> UnitSchema:
        unit = self.unit_repo.get_by_id(unit_id)
        if unit is None:
            raise NotFoundError(f"Unit {unit_id} not found", details={"unit_id": unit_id})
        return unit

    def _current_owners(self, unit_id: int) -> Dict[str, int]:
        rows = self.ownership_repo.get_active_for_unit(unit_id)
        return aggregate_owner_percentages((r.user_id, r.percentage_owned) for r in rows)

    def quarter_gross(self, monthly: Dict[int, Decimal], quarter: int) -> Decimal:
        """분기 3개월 캐시 합계 (캐시가 없으면 0)"""
        return to_money(sum((monthly.get(m, ZERO) for m in quarter_months(quarter)), ZERO))

    def estimate(self, gross_revenue: Decimal) -> DeductionBreakdown:
        """미정산 추정 - 추가 비용은 0으로 가정"""
        return compute_deductions(
            gross_revenue,
            self.settings.FIXED_EXPENSE_PER_QUARTER,
            ZERO,
            self.settings.MANAGEMENT_FEE_PERCENT,
        )

    # ---- operations ----

    def project_quarter(self, unit_id: int, year: int, quarter: int) -> EstimatedQuarter:
        """
        미정산 분기 추정치 계산 (쓰기 없음)

        Args:
            unit_id: 유닛 ID
            year: 연도
            quarter: 분기 (1-4)

        Returns:
            EstimatedQuarter: is_settled=False인 추정치.
                이미 정산된 분기면 settled_settlement_id로 확정 정산을 가리킴
        """
        self._validate_period(year, quarter)
        self._get_unit(unit_id)
        settled = self.settlement_repo.get_by_unit_quarter(unit_id, year, quarter)

        monthly = self.cache_repo.get_monthly_revenue(year, unit_id)
        breakdown = self.estimate(self.quarter_gross(monthly, quarter))
        owners = [
            OwnerShareEstimate(
                user_id=user_id,
                percentage_owned=percentage,
                percentage_display=percentage_display(percentage),
                estimated_amount=owner_share(breakdown.net_pool, percentage),
            )
            for user_id, percentage in self._current_owners(unit_id).items()
        ]
        return EstimatedQuarter(
            unit_id=unit_id,
            year=year,
            quarter=quarter,
            label=quarter_label(quarter),
            gross_revenue=breakdown.gross_revenue,
            fixed_expense=breakdown.fixed_expense,
            additional_expense=breakdown.additional_expense,
            management_fee=breakdown.management_fee,
            net_pool=breakdown.net_pool,
            is_settled=False,
            settled_settlement_id=settled.id if settled else None,
            owners=owners,
        )

    def get_quarterly_earnings(self, unit_id: int, year: int) -> UnitQuarterlyEarnings:
        """유닛 연간 분기별 수익 (정산 값 우선, 나머지는 추정)"""
        self._validate_period(year)
        self._get_unit(unit_id)

        monthly = self.cache_repo.get_monthly_revenue(year, unit_id)
        settlements = {
            s.quarter: s for s in self.settlement_repo.list_for_unit_year(unit_id, year)
        }
        meta = self.cache_repo.get_meta(year)

        quarters: List[QuarterEarnings] = []
        for quarter in QUARTERS:
            settlement = settlements.get(quarter)
            if settlement is not None:
                quarters.append(self._settled_quarter(settlement))
            else:
                breakdown = self.estimate(self.quarter_gross(monthly, quarter))
                quarters.append(
                    QuarterEarnings(
                        quarter=quarter,
                        label=quarter_label(quarter),
                        gross_revenue=breakdown.gross_revenue,
                        fixed_expense=breakdown.fixed_expense,
                        additional_expense=breakdown.additional_expense,
                        management_fee=breakdown.management_fee,
                        net_pool=breakdown.net_pool,
                        is_settled=False,
                    )
                )

        owners: List[OwnerEarningsRow] = []
        for user_id, percentage in self._current_owners(unit_id).items():
            shares: List[Decimal] = []
            for q in quarters:
                if q.is_settled and q.settlement is not None:
                    # 정산 시점 스냅샷 기준 (이후 취득한 소유자는 0)
                    payout = next(
                        (p for p in q.settlement.payouts if p.user_id == user_id), None
                    )
                    shares.append(to_money(payout.amount) if payout else ZERO)
                else:
                    shares.append(owner_share(q.net_pool, percentage))
            owners.append(
                OwnerEarningsRow(
                    user_id=user_id,
                    percentage_owned=percentage,
                    percentage_display=percentage_display(percentage),
                    quarter_shares=shares,
                    year_total=sum(shares, ZERO),
                )
            )

        return UnitQuarterlyEarnings(
            unit_id=unit_id,
            year=year,
            last_refreshed_at=meta.last_refreshed_at if meta else None,
            quarters=quarters,
            year_total_net_pool=sum((q.net_pool for q in quarters), ZERO),
            owners=owners,
            config=EarningsConfig(
                fixed_expense_per_quarter=self.settings.FIXED_EXPENSE_PER_QUARTER,
                management_fee_percent=self.settings.MANAGEMENT_FEE_PERCENT,
            ),
        )

    @staticmethod
    def _settled_quarter(settlement: SettlementResponse) -> QuarterEarnings:
        return QuarterEarnings(
            quarter=settlement.quarter,
            label=quarter_label(settlement.quarter),
            gross_revenue=to_money(settlement.gross_revenue),
            fixed_expense=to_money(settlement.fixed_expense),
            additional_expense=to_money(settlement.additional_expense),
            management_fee=to_money(settlement.management_fee),
            net_pool=to_money(settlement.net_pool),
            is_settled=True,
            settlement=SettledQuarterDetail(
                id=settlement.id,
                notes=settlement.notes,
                created_at=settlement.created_at,
                created_by_user_id=settlement.created_by_user_id,
                payouts=settlement.payouts,
            ),
        )

    def get_owner_earnings(self, user_id: str, year: int) -> OwnerEarningsResponse:
        """소유자 본인의 유닛별 분기 수익 (PAID / PENDING / ESTIMATE)"""
        self._validate_period(year)

        ownerships = self.ownership_repo.get_active_for_user(user_id)
        percentages: Dict[int, int] = {}
        for row in ownerships:
            percentages[row.unit_id] = percentages.get(row.unit_id, 0) + row.percentage_owned

        units = {u.id: u for u in self.unit_repo.get_by_ids(list(percentages))}
        settlements: Dict[int, Dict[int, SettlementResponse]] = {}
        for s in self.settlement_repo.list_for_units_year(list(units), year):
            settlements.setdefault(s.unit_id, {})[s.quarter] = s

        results: List[OwnerUnitEarnings] = []
        for unit_id, unit in units.items():
            percentage = percentages[unit_id]
            monthly = self.cache_repo.get_monthly_revenue(year, unit_id)
            quarter_shares: List[OwnerQuarterShare] = []
            for quarter in QUARTERS:
                settlement = settlements.get(unit_id, {}).get(quarter)
                payout = None
                if settlement is not None:
                    payout = next(
                        (p for p in settlement.payouts if p.user_id == user_id), None
                    )
                if payout is not None:
                    quarter_shares.append(
                        OwnerQuarterShare(
                            quarter=quarter,
                            label=quarter_label(quarter),
                            owner_share=to_money(payout.amount),
                            status=ShareStatus.PAID if payout.is_paid else ShareStatus.PENDING,
                            paid_at=payout.paid_at,
                        )
                    )
                    continue

                breakdown = self.estimate(self.quarter_gross(monthly, quarter))
                quarter_shares.append(
                    OwnerQuarterShare(
                        quarter=quarter,
                        label=quarter_label(quarter),
                        owner_share=owner_share(breakdown.net_pool, percentage),
                        status=ShareStatus.ESTIMATE,
                    )
                )

            results.append(
                OwnerUnitEarnings(
                    unit_id=unit_id,
                    unit_name=unit.name,
                    owner_percentage=percentage,
                    owner_percentage_display=percentage_display(percentage),
                    quarters=quarter_shares,
                    year_total=sum((q.owner_share for q in quarter_shares), ZERO),
                )
            )

        meta = self.cache_repo.get_meta(year)
        return OwnerEarningsResponse(
            user_id=user_id,
            year=year,
            last_refreshed_at=meta.last_refreshed_at if meta else None,
            units=results,
            grand_total=sum((u.year_total for u in results), ZERO),
        )
