from .unit_repository import UnitRepository, OwnershipRepository
from .revenue_cache_repository import RevenueCacheRepository
from .settlement_repository import SettlementRepository, PayoutRepository

__all__ = [
    "UnitRepository",
    "OwnershipRepository",
    "RevenueCacheRepository",
    "SettlementRepository",
    "PayoutRepository",
]
