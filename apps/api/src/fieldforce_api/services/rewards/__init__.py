"""Rewards ledger, catalog and redemption service exports."""

from .bag_lifts import BagLiftService  # noqa: F401
from .catalog import RewardCatalogService  # noqa: F401
from .errors import (  # noqa: F401
    InactiveRewardError,
    InsufficientBalanceError,
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    RewardsError,
    RewardsValidationError,
)
from .intake import RedemptionIntakeService  # noqa: F401
from .ledger import (  # noqa: F401
    BalanceSnapshot,
    PointsLedgerService,
    bounded_limit,
    decode_time_uuid_cursor,
    encode_time_uuid_cursor,
)
from .state_machine import REFUND_MEMO, RedemptionStateMachine, TransitionOutcome  # noqa: F401
