"""Observability endpoints for the rewards pipeline."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from fieldforce_api.api.dependencies.security import require_internal_api_key
from fieldforce_api.observability.rewards import get_rewards_store


router = APIRouter(prefix="/observability", tags=["Observability"])


@router.get(
    "/rewards",
    dependencies=[Depends(require_internal_api_key)],
    summary="Rewards observability snapshot",
)
async def get_rewards_snapshot() -> dict[str, object]:
    """Retrieve redemption, transition and ledger counters (requires internal API key)."""
    return get_rewards_store().snapshot().as_dict()
