"""Business-rule failures raised by the rewards services."""

from __future__ import annotations

from typing import Any

from fieldforce_api.models.redemption import RedemptionStatus


class RewardsError(RuntimeError):
    """Base exception for rewards ledger and redemption failures."""

    kind = "rewards_error"

    def details(self) -> dict[str, Any]:
        """Structured fields surfaced alongside the message at the API boundary."""

        return {}


class RewardsValidationError(RewardsError):
    """Raised for malformed input that passed payload parsing."""

    kind = "validation_error"

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field

    def details(self) -> dict[str, Any]:
        return {"field": self.field} if self.field else {}


class NotFoundError(RewardsError):
    """Raised when a referenced mason, reward, request or bag lift is missing."""

    kind = "not_found"

    def __init__(self, entity: str, identifier: Any) -> None:
        super().__init__(f"{entity} {identifier} not found")
        self.entity = entity
        self.identifier = identifier

    def details(self) -> dict[str, Any]:
        return {"entity": self.entity, "id": str(self.identifier)}


class InactiveRewardError(RewardsError):
    """Raised when a reward exists but is not currently redeemable."""

    kind = "inactive_reward"

    def __init__(self, reward_id: int) -> None:
        super().__init__(f"Reward {reward_id} is not active")
        self.reward_id = reward_id

    def details(self) -> dict[str, Any]:
        return {"rewardId": self.reward_id}


class InsufficientBalanceError(RewardsError):
    """Raised when a mason cannot cover a redemption debit."""

    kind = "insufficient_balance"

    def __init__(self, balance: int, required: int) -> None:
        super().__init__(f"Insufficient points balance. Available: {balance}, Required: {required}")
        self.balance = balance
        self.required = required

    def details(self) -> dict[str, Any]:
        return {"balance": self.balance, "required": self.required}


class InsufficientStockError(RewardsError):
    """Raised when catalog stock cannot cover an approval."""

    kind = "insufficient_stock"

    def __init__(self, reward_id: int, available: int, requested: int) -> None:
        super().__init__(f"Insufficient stock. Available: {available}, Required: {requested}")
        self.reward_id = reward_id
        self.available = available
        self.requested = requested

    def details(self) -> dict[str, Any]:
        return {"rewardId": self.reward_id, "available": self.available, "requested": self.requested}


class InvalidTransitionError(RewardsError):
    """Raised when a status change is not reachable from the current status."""

    kind = "invalid_transition"

    def __init__(self, current_status: str, requested_status: str) -> None:
        super().__init__(f"Cannot transition from {current_status} to {requested_status}")
        self.current_status = current_status
        self.requested_status = requested_status

    @classmethod
    def for_redemption(
        cls, current_status: RedemptionStatus, requested_status: RedemptionStatus
    ) -> "InvalidTransitionError":
        return cls(current_status.value, requested_status.value)

    def details(self) -> dict[str, Any]:
        return {"currentStatus": self.current_status, "requestedStatus": self.requested_status}


__all__ = [
    "InactiveRewardError",
    "InsufficientBalanceError",
    "InsufficientStockError",
    "InvalidTransitionError",
    "NotFoundError",
    "RewardsError",
    "RewardsValidationError",
]
