from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from revshare.models.unit import ApprovalStatusEnum, Ownership, Unit
from revshare.repositories.base import BaseRepository
from revshare.schemas.unit import OwnershipSchema, UnitSchema


class UnitRepository(BaseRepository[Unit, UnitSchema]):
    """유닛 조회 (읽기 전용)"""

    def __init__(self, db: Session):
        super().__init__(Unit, UnitSchema, db)

    def get_linked_units(self) -> List[UnitSchema]:
        """Smoobu apartment와 연결된 유닛"""
        units = (
            self.db.query(Unit)
            .filter(Unit.smoobu_apartment_id.isnot(None))
            .order_by(Unit.id)
            .all()
        )
        return self._to_schemas(units)

    def get_by_ids(self, unit_ids: List[int]) -> List[UnitSchema]:
        if not unit_ids:
            return []
        units = self.db.query(Unit).filter(Unit.id.in_(unit_ids)).order_by(Unit.id).all()
        return self._to_schemas(units)


class OwnershipRepository(BaseRepository[Ownership, OwnershipSchema]):
    """소유권 조회 (읽기 전용) - 승인됐거나 승인 절차가 없는 레코드만 유효"""

    def __init__(self, db: Session):
        super().__init__(Ownership, OwnershipSchema, db)

    @staticmethod
    def _active_filter():
        return or_(
            Ownership.approval_status.is_(None),
            Ownership.approval_status == ApprovalStatusEnum.APPROVED.value,
        )

    def get_active_for_unit(self, unit_id: int) -> List[OwnershipSchema]:
        rows = (
            self.db.query(Ownership)
            .filter(
                Ownership.unit_id == unit_id,
                Ownership.user_id.isnot(None),
                self._active_filter(),
            )
            .order_by(Ownership.id)
            .all()
        )
        return self._to_schemas(rows)

    def get_active_for_user(
        self, user_id: str, unit_id: Optional[int] = None
    ) -> List[OwnershipSchema]:
        query = self.db.query(Ownership).filter(
            Ownership.user_id == user_id,
            Ownership.unit_id.isnot(None),
            self._active_filter(),
        )
        if unit_id is not None:
            query = query.filter(Ownership.unit_id == unit_id)
        return self._to_schemas(query.order_by(Ownership.id).all())
