from fastapi import Depends
from sqlalchemy.orm import Session

from revshare.config import settings
from revshare.database.session import get_db
from revshare.providers.smoobu import SmoobuClient

# Services
from revshare.services.earnings_service import EarningsService
from revshare.services.payout_service import PayoutService
from revshare.services.revenue_service import RevenueProvider, RevenueService
from revshare.services.settlement_service import SettlementService


def get_revenue_provider() -> RevenueProvider:
    return SmoobuClient(settings)


def get_revenue_service(
    db: Session = Depends(get_db),
    provider: RevenueProvider = Depends(get_revenue_provider),
) -> RevenueService:
    return RevenueService(db=db, settings=settings, provider=provider)


def get_earnings_service(db: Session = Depends(get_db)) -> EarningsService:
    return EarningsService(db=db, settings=settings)


def get_settlement_service(db: Session = Depends(get_db)) -> SettlementService:
    return SettlementService(db=db, settings=settings)


def get_payout_service(db: Session = Depends(get_db)) -> PayoutService:
    return PayoutService(db=db)
