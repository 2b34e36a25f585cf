"""Bag-lift review endpoints; approvals accrue points to the ledger."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldforce_api.api.errors import raise_http_error
from fieldforce_api.api.dependencies.session import ensure_company_access, require_role
from fieldforce_api.core.settings import settings
from fieldforce_api.db.session import get_session
from fieldforce_api.models.bag_lift import BagLiftStatus
from fieldforce_api.models.mason import Mason
from fieldforce_api.models.user import User
from fieldforce_api.schemas.rewards import BagLiftResponse, BagLiftReview
from fieldforce_api.services.rewards import BagLiftService, RewardsError


router = APIRouter(prefix="/bag-lifts", tags=["bag-lifts"])


@router.get("", response_model=List[BagLiftResponse])
async def list_bag_lifts(
    status_filter: Optional[str] = Query(None, alias="status"),
    mason_id: Optional[UUID] = Query(None, alias="masonId"),
    db: AsyncSession = Depends(get_session),
    user: User = Depends(require_role(settings.rewards_read_min_role)),
) -> List[BagLiftResponse]:
    status_value: BagLiftStatus | None = None
    if status_filter:
        try:
            status_value = BagLiftStatus(status_filter.strip().lower())
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=f"Unsupported bag lift status: {status_filter}") from exc

    bag_lifts = await BagLiftService(db).list_bag_lifts(
        status=status_value,
        mason_id=mason_id,
        company_id=user.company_id,
    )
    return [BagLiftResponse.model_validate(item) for item in bag_lifts]


@router.patch("/{bag_lift_id}", response_model=BagLiftResponse)
async def review_bag_lift(
    bag_lift_id: UUID,
    payload: BagLiftReview,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(require_role(settings.rewards_review_min_role)),
) -> BagLiftResponse:
    """Approve or reject a pending bag lift."""

    service = BagLiftService(db)
    try:
        bag_lift = await service.get(bag_lift_id)
        company_id = (
            await db.execute(select(Mason.company_id).where(Mason.id == bag_lift.mason_id))
        ).scalar_one_or_none()
        ensure_company_access(user, company_id)
        reviewed = await service.review(bag_lift_id, status=payload.status, reviewer_id=user.id)
    except RewardsError as exc:
        raise_http_error(exc)
    return BagLiftResponse.model_validate(reviewed)
