from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from threading import Lock
from typing import Dict


@dataclass
class RewardsSnapshot:
    redemptions: Dict[str, int]
    refusals: Dict[str, int]
    transitions: Dict[str, int]
    ledger: Dict[str, int]
    stock: Dict[str, int]

    def as_dict(self) -> Dict[str, object]:
        return {
            "redemptions": dict(self.redemptions),
            "refusals": dict(self.refusals),
            "transitions": dict(self.transitions),
            "ledger": dict(self.ledger),
            "stock": dict(self.stock),
        }


class RewardsObservabilityStore:
    """Collect redemption and ledger telemetry for dashboards and alerting."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._redemptions: Dict[str, int] = defaultdict(int)
        self._refusals: Dict[str, int] = defaultdict(int)
        self._transitions: Dict[str, int] = defaultdict(int)
        self._ledger: Dict[str, int] = defaultdict(int)
        self._stock: Dict[str, int] = defaultdict(int)

    def record_redemption_created(self, points: int) -> None:
        with self._lock:
            self._redemptions["created"] += 1
            self._redemptions["points_debited"] += points

    def record_refusal(self, kind: str) -> None:
        with self._lock:
            self._refusals[kind or "unknown"] += 1

    def record_transition(self, from_status: str, to_status: str) -> None:
        with self._lock:
            self._transitions[f"{from_status}->{to_status}"] += 1

    def record_ledger_entry(self, source_type: str, points: int) -> None:
        with self._lock:
            self._ledger[f"entries:{source_type}"] += 1
            self._ledger[f"points:{source_type}"] += points

    def record_stock_movement(self, direction: str, quantity: int) -> None:
        with self._lock:
            self._stock[direction] += quantity

    def snapshot(self) -> RewardsSnapshot:
        with self._lock:
            return RewardsSnapshot(
                redemptions=dict(self._redemptions),
                refusals=dict(self._refusals),
                transitions=dict(self._transitions),
                ledger=dict(self._ledger),
                stock=dict(self._stock),
            )

    def reset(self) -> None:
        with self._lock:
            self._redemptions.clear()
            self._refusals.clear()
            self._transitions.clear()
            self._ledger.clear()
            self._stock.clear()


_STORE = RewardsObservabilityStore()


def get_rewards_store() -> RewardsObservabilityStore:
    return _STORE


__all__ = ["get_rewards_store", "RewardsObservabilityStore", "RewardsSnapshot"]
