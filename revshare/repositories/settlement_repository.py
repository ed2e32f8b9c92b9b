"""
정산/지급 리포지토리

정산 행과 payout 행은 같은 트랜잭션에서 생성됩니다.
(unit_id, year, quarter) 유니크 제약 위반은 IntegrityError로 그대로 전파됩니다.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session, selectinload

from revshare.models.settlement import OwnerPayout, QuarterlySettlement
from revshare.repositories.base import BaseRepository
from revshare.schemas.settlement import OwnerPayoutResponse, SettlementResponse


class SettlementRepository(BaseRepository[QuarterlySettlement, SettlementResponse]):
    def __init__(self, db: Session):
        super().__init__(QuarterlySettlement, SettlementResponse, db)

    def _with_payouts(self):
        return self.db.query(QuarterlySettlement).options(
            selectinload(QuarterlySettlement.payouts)
        )

    def get_by_id(self, id: int) -> Optional[SettlementResponse]:
        settlement = self._with_payouts().filter(QuarterlySettlement.id == id).first()
        return self._to_schema(settlement)

    def get_by_unit_quarter(
        self, unit_id: int, year: int, quarter: int
    ) -> Optional[SettlementResponse]:
        settlement = (
            self._with_payouts()
            .filter(
                QuarterlySettlement.unit_id == unit_id,
                QuarterlySettlement.year == year,
                QuarterlySettlement.quarter == quarter,
            )
            .first()
        )
        return self._to_schema(settlement)

    def list_for_unit_year(self, unit_id: int, year: int) -> List[SettlementResponse]:
        settlements = (
            self._with_payouts()
            .filter(
                QuarterlySettlement.unit_id == unit_id,
                QuarterlySettlement.year == year,
            )
            .order_by(QuarterlySettlement.quarter)
            .all()
        )
        return self._to_schemas(settlements)

    def list_for_units_year(
        self, unit_ids: Sequence[int], year: int
    ) -> List[SettlementResponse]:
        if not unit_ids:
            return []
        settlements = (
            self._with_payouts()
            .filter(
                QuarterlySettlement.unit_id.in_(list(unit_ids)),
                QuarterlySettlement.year == year,
            )
            .order_by(QuarterlySettlement.unit_id, QuarterlySettlement.quarter)
            .all()
        )
        return self._to_schemas(settlements)

    def create_with_payouts(
        self,
        unit_id: int,
        year: int,
        quarter: int,
        gross_revenue: Decimal,
        fixed_expense: Decimal,
        additional_expense: Decimal,
        management_fee: Decimal,
        net_pool: Decimal,
        notes: Optional[str],
        created_by_user_id: Optional[str],
        payouts: Sequence[Tuple[str, int, Decimal]],
        commit: bool = True,
    ) -> SettlementResponse:
        """정산 + payout 일괄 생성. payouts: (user_id, percentage_owned, amount)"""
        settlement = QuarterlySettlement(
            unit_id=unit_id,
            year=year,
            quarter=quarter,
            gross_revenue=gross_revenue,
            fixed_expense=fixed_expense,
            additional_expense=additional_expense,
            management_fee=management_fee,
            net_pool=net_pool,
            notes=notes,
            created_by_user_id=created_by_user_id,
        )
        settlement.payouts = [
            OwnerPayout(
                user_id=user_id,
                percentage_owned=percentage,
                amount=amount,
                is_paid=False,
            )
            for user_id, percentage, amount in payouts
        ]
        self.db.add(settlement)
        self._commit_or_flush(commit)
        self.db.refresh(settlement)
        return self._to_schema(settlement)

    def lock_with_payouts(
        self, settlement_id: int
    ) -> Optional[Tuple[QuarterlySettlement, List[OwnerPayout]]]:
        """
        삭제 전 정산 행과 하위 payout 행 잠금 조회 (ORM 객체 반환)

        지급 처리도 payout 행을 잠그므로 잠금 이후 읽은 is_paid 값은 커밋 전까지 바뀌지 않습니다.
        세션에 남아있는 이전 상태 대신 DB 값을 다시 읽습니다 (populate_existing).
        """
        settlement = (
            self.db.query(QuarterlySettlement)
            .filter(QuarterlySettlement.id == settlement_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if settlement is None:
            return None
        payouts = (
            self.db.query(OwnerPayout)
            .filter(OwnerPayout.settlement_id == settlement_id)
            .order_by(OwnerPayout.id)
            .with_for_update()
            .populate_existing()
            .all()
        )
        return settlement, payouts

    def delete_with_payouts(self, settlement_id: int, commit: bool = True) -> int:
        """정산과 하위 payout 삭제. 삭제된 payout 수 반환"""
        settlement = self.db.get(QuarterlySettlement, settlement_id)
        if settlement is None:
            return 0
        payout_count = len(settlement.payouts)
        # ORM cascade (delete-orphan)로 payout도 함께 삭제
        self.db.delete(settlement)
        self._commit_or_flush(commit)
        return payout_count


class PayoutRepository(BaseRepository[OwnerPayout, OwnerPayoutResponse]):
    def __init__(self, db: Session):
        super().__init__(OwnerPayout, OwnerPayoutResponse, db)

    def get_for_update(self, payout_id: int) -> Optional[OwnerPayout]:
        """동시 지급 처리 방지용 행 잠금 조회 (ORM 객체 반환)"""
        return (
            self.db.query(OwnerPayout)
            .filter(OwnerPayout.id == payout_id)
            .with_for_update()
            .first()
        )

    def mark_paid(
        self,
        payout_id: int,
        paid_at: datetime,
        paid_by_user_id: Optional[str],
        notes: Optional[str] = None,
        commit: bool = True,
    ) -> Optional[OwnerPayoutResponse]:
        """미지급 상태일 때만 지급 처리. 이미 지급됐거나 없으면 None"""
        payout = self.get_for_update(payout_id)
        if payout is None or payout.is_paid:
            return None
        self._stamp_paid(payout, paid_at, paid_by_user_id, notes)
        self._commit_or_flush(commit)
        return self._to_schema(payout)

    def mark_all_unpaid(
        self,
        settlement_id: int,
        paid_at: datetime,
        paid_by_user_id: Optional[str],
        notes: Optional[str] = None,
        commit: bool = True,
    ) -> List[OwnerPayoutResponse]:
        """정산의 미지급 payout 일괄 지급 처리 - 이미 지급된 행은 건드리지 않음"""
        unpaid = (
            self.db.query(OwnerPayout)
            .filter(
                OwnerPayout.settlement_id == settlement_id,
                OwnerPayout.is_paid.is_(False),
            )
            .order_by(OwnerPayout.id)
            .with_for_update()
            .all()
        )
        for payout in unpaid:
            self._stamp_paid(payout, paid_at, paid_by_user_id, notes)
        if unpaid:
            self._commit_or_flush(commit)
        return self._to_schemas(unpaid)

    @staticmethod
    def _stamp_paid(
        payout: OwnerPayout,
        paid_at: datetime,
        paid_by_user_id: Optional[str],
        notes: Optional[str],
    ) -> None:
        payout.is_paid = True
        payout.paid_at = paid_at
        payout.paid_by_user_id = paid_by_user_id
        # 메모는 전달된 경우에만 덮어씀
        if notes is not None:
            payout.notes = notes
