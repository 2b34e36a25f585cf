"""SQLAlchemy models package."""

from .user import User  # noqa: F401
from .mason import Mason, MasonKycStatus  # noqa: F401
from .points_ledger import PointsLedgerEntry, PointsSourceType  # noqa: F401
from .rewards import RewardCatalogItem, RewardCategory  # noqa: F401
from .redemption import (  # noqa: F401
    RedemptionRequest,
    RedemptionStateEvent,
    RedemptionStatus,
)
from .bag_lift import BagLift, BagLiftStatus  # noqa: F401
