import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from revshare.core.exceptions import AlreadyPaidError, NotFoundError
from revshare.repositories.settlement_repository import (
    PayoutRepository,
    SettlementRepository,
)
from revshare.schemas.settlement import BulkPayoutResult, OwnerPayoutResponse

logger = logging.getLogger(__name__)


class PayoutService:
    """payout 지급 처리 (미지급 → 지급, 되돌리지 않음)"""

    def __init__(self, db: Session):
        self.db = db
        self.payout_repo = PayoutRepository(db)
        self.settlement_repo = SettlementRepository(db)

    def mark_payout_paid(
        self, payout_id: int, actor_id: Optional[str] = None, notes: Optional[str] = None
    ) -> OwnerPayoutResponse:
        """단건 지급 처리 - 이미 지급된 payout은 AlreadyPaidError"""
        try:
            payout = self.payout_repo.get_for_update(payout_id)
            if payout is None:
                raise NotFoundError(
                    f"Payout {payout_id} not found", details={"payout_id": payout_id}
                )
            if payout.is_paid:
                raise AlreadyPaidError(payout.id, payout.settlement_id, payout.paid_at)

            updated = self.payout_repo.mark_paid(
                payout_id,
                paid_at=datetime.now(timezone.utc),
                paid_by_user_id=actor_id,
                notes=notes,
                commit=False,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Payout {payout_id} (settlement {updated.settlement_id}, user {updated.user_id}, "
            f"amount {updated.amount}) marked paid by {actor_id}"
        )
        return updated

    def mark_all_unpaid_for_settlement(
        self,
        settlement_id: int,
        actor_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> BulkPayoutResult:
        """미지급 payout 일괄 지급 처리. 미지급이 없으면 아무것도 하지 않음"""
        if self.settlement_repo.get_by_id(settlement_id) is None:
            raise NotFoundError(
                f"Settlement {settlement_id} not found",
                details={"settlement_id": settlement_id},
            )

        try:
            updated = self.payout_repo.mark_all_unpaid(
                settlement_id,
                paid_at=datetime.now(timezone.utc),
                paid_by_user_id=actor_id,
                notes=notes,
                commit=False,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Settlement {settlement_id}: {len(updated)} payout(s) marked paid by {actor_id}"
        )
        return BulkPayoutResult(
            settlement_id=settlement_id,
            updated_count=len(updated),
            payouts=updated,
        )
