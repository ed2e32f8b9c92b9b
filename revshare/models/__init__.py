from revshare.models.base import Base
from revshare.models.unit import Unit, Ownership, ApprovalStatusEnum
from revshare.models.revenue import RevenueCacheEntry, RevenueCacheMeta
from revshare.models.settlement import QuarterlySettlement, OwnerPayout

__all__ = [
    "Base",
    "Unit",
    "Ownership",
    "ApprovalStatusEnum",
    "RevenueCacheEntry",
    "RevenueCacheMeta",
    "QuarterlySettlement",
    "OwnerPayout",
]
