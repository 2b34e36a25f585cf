"""API endpoints for the points ledger, reward catalog and redemption workflow."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fieldforce_api.api.errors import raise_http_error
from fieldforce_api.api.dependencies.session import ensure_company_access, require_role
from fieldforce_api.core.settings import settings
from fieldforce_api.db.session import get_session
from fieldforce_api.models.mason import Mason
from fieldforce_api.models.redemption import RedemptionStatus
from fieldforce_api.models.user import User
from fieldforce_api.schemas.rewards import (
    BalanceResponse,
    LedgerEntryCreate,
    LedgerEntryResponse,
    LedgerWindowResponse,
    RedemptionCreate,
    RedemptionEventResponse,
    RedemptionResponse,
    RedemptionStatusUpdate,
    RedemptionWindowResponse,
    RewardCatalogItemResponse,
    RewardCategoryResponse,
)
from fieldforce_api.services.rewards import (
    NotFoundError,
    PointsLedgerService,
    RedemptionIntakeService,
    RedemptionStateMachine,
    RewardCatalogService,
    RewardsError,
    decode_time_uuid_cursor,
    encode_time_uuid_cursor,
)


router = APIRouter(prefix="/rewards", tags=["rewards"])

require_rewards_reader = require_role(settings.rewards_read_min_role)
require_rewards_reviewer = require_role(settings.rewards_review_min_role)
require_ledger_adjuster = require_role(settings.ledger_adjust_min_role)


async def _load_mason(db: AsyncSession, mason_id: UUID, user: User) -> Mason:
    result = await db.execute(select(Mason).where(Mason.id == mason_id))
    mason = result.scalar_one_or_none()
    if mason is None:
        raise_http_error(NotFoundError("Mason", mason_id))
    ensure_company_access(user, mason.company_id)
    return mason


def _parse_status(value: str | None) -> RedemptionStatus | None:
    if value is None:
        return None
    try:
        return RedemptionStatus.parse(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Unsupported redemption status: {value}") from exc


@router.post(
    "/redemptions",
    response_model=RedemptionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_redemption(
    payload: RedemptionCreate,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(require_rewards_reviewer),
) -> RedemptionResponse:
    """Debit a mason's points and open a pending redemption request."""

    await _load_mason(db, payload.mason_id, user)
    service = RedemptionIntakeService(db)
    try:
        redemption = await service.create_request(
            mason_id=payload.mason_id,
            reward_id=payload.reward_id,
            quantity=payload.quantity,
            delivery_name=payload.delivery_name,
            delivery_phone=payload.delivery_phone,
            delivery_address=payload.delivery_address,
        )
    except RewardsError as exc:
        raise_http_error(exc)
    return RedemptionResponse.model_validate(redemption)


@router.patch("/redemptions/{redemption_id}", response_model=RedemptionResponse)
async def update_redemption_status(
    redemption_id: UUID,
    payload: RedemptionStatusUpdate,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(require_rewards_reviewer),
) -> RedemptionResponse:
    """Apply an administrator decision to a redemption request."""

    try:
        existing = await RedemptionIntakeService(db).get_request(redemption_id)
        ensure_company_access(user, existing.mason.company_id)
        outcome = await RedemptionStateMachine(db).transition(
            redemption_id=redemption_id,
            target_status=payload.status,
            actor_id=str(user.id),
            actor_label=user.label,
            fulfillment_notes=payload.fulfillment_notes,
        )
    except RewardsError as exc:
        raise_http_error(exc)
    return RedemptionResponse.model_validate(outcome.request)


@router.get("/redemptions", response_model=RedemptionWindowResponse)
async def list_redemptions(
    status_filter: Optional[str] = Query(None, alias="status"),
    mason_id: Optional[UUID] = Query(None, alias="masonId"),
    limit: int = Query(settings.rewards_list_default_limit, ge=1, le=settings.rewards_list_max_limit),
    cursor: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_session),
    user: User = Depends(require_rewards_reader),
) -> RedemptionWindowResponse:
    """Return a newest-first window of redemption requests for the caller's company."""

    try:
        decoded_cursor = decode_time_uuid_cursor(cursor) if cursor else None
        redemptions, next_cursor = await RedemptionIntakeService(db).list_requests(
            status=_parse_status(status_filter),
            mason_id=mason_id,
            company_id=user.company_id,
            limit=limit,
            cursor=decoded_cursor,
        )
    except RewardsError as exc:
        raise_http_error(exc)
    return RedemptionWindowResponse(
        redemptions=[RedemptionResponse.model_validate(item) for item in redemptions],
        nextCursor=encode_time_uuid_cursor(*next_cursor) if next_cursor else None,
    )


@router.get("/redemptions/{redemption_id}", response_model=RedemptionResponse)
async def get_redemption(
    redemption_id: UUID,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(require_rewards_reader),
) -> RedemptionResponse:
    try:
        redemption = await RedemptionIntakeService(db).get_request(redemption_id)
    except RewardsError as exc:
        raise_http_error(exc)
    ensure_company_access(user, redemption.mason.company_id)
    return RedemptionResponse.model_validate(redemption)


@router.get("/redemptions/{redemption_id}/events", response_model=List[RedemptionEventResponse])
async def list_redemption_events(
    redemption_id: UUID,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(require_rewards_reader),
) -> List[RedemptionEventResponse]:
    """Return the transition audit trail of a redemption request."""

    try:
        redemption = await RedemptionIntakeService(db).get_request(redemption_id)
        ensure_company_access(user, redemption.mason.company_id)
        events = await RedemptionStateMachine(db).list_events(redemption_id)
    except RewardsError as exc:
        raise_http_error(exc)
    return [RedemptionEventResponse.model_validate(event) for event in events]


@router.get("/masons/{mason_id}/ledger", response_model=LedgerWindowResponse)
async def list_mason_ledger(
    mason_id: UUID,
    source_types: Optional[List[str]] = Query(None, alias="sourceType"),
    limit: int = Query(settings.rewards_list_default_limit, ge=1, le=settings.rewards_list_max_limit),
    cursor: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_session),
    user: User = Depends(require_rewards_reader),
) -> LedgerWindowResponse:
    """Return a mason's ledger entries newest first together with the current balance."""

    await _load_mason(db, mason_id, user)
    service = PointsLedgerService(db)
    try:
        decoded_cursor = decode_time_uuid_cursor(cursor) if cursor else None
        entries, next_cursor = await service.list_entries(
            mason_id=mason_id,
            source_types=source_types,
            limit=limit,
            cursor=decoded_cursor,
        )
        balance = await service.get_balance(mason_id)
    except RewardsError as exc:
        raise_http_error(exc)
    return LedgerWindowResponse(
        entries=[LedgerEntryResponse.model_validate(entry) for entry in entries],
        balance=balance,
        nextCursor=encode_time_uuid_cursor(*next_cursor) if next_cursor else None,
    )


@router.get("/ledger", response_model=LedgerWindowResponse)
async def list_company_ledger(
    source_types: Optional[List[str]] = Query(None, alias="sourceType"),
    limit: int = Query(settings.rewards_list_default_limit, ge=1, le=settings.rewards_list_max_limit),
    cursor: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_session),
    user: User = Depends(require_rewards_reader),
) -> LedgerWindowResponse:
    """Return ledger entries across every mason the caller can see."""

    try:
        decoded_cursor = decode_time_uuid_cursor(cursor) if cursor else None
        entries, next_cursor = await PointsLedgerService(db).list_entries(
            company_id=user.company_id,
            source_types=source_types,
            limit=limit,
            cursor=decoded_cursor,
        )
    except RewardsError as exc:
        raise_http_error(exc)
    return LedgerWindowResponse(
        entries=[LedgerEntryResponse.model_validate(entry) for entry in entries],
        nextCursor=encode_time_uuid_cursor(*next_cursor) if next_cursor else None,
    )


@router.post(
    "/masons/{mason_id}/ledger",
    response_model=LedgerEntryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_ledger_adjustment(
    mason_id: UUID,
    payload: LedgerEntryCreate,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(require_ledger_adjuster),
) -> LedgerEntryResponse:
    """Credit a bonus or post a manual correction to a mason's points."""

    await _load_mason(db, mason_id, user)
    try:
        entry = await PointsLedgerService(db).append_entry(
            mason_id,
            source_type=payload.source_type,
            points=payload.points,
            source_id=str(user.id),
            memo=payload.memo,
        )
    except RewardsError as exc:
        raise_http_error(exc)
    return LedgerEntryResponse.model_validate(entry)


@router.get("/masons/{mason_id}/balance", response_model=BalanceResponse)
async def get_mason_balance(
    mason_id: UUID,
    db: AsyncSession = Depends(get_session),
    user: User = Depends(require_rewards_reader),
) -> BalanceResponse:
    await _load_mason(db, mason_id, user)
    try:
        snapshot = await PointsLedgerService(db).snapshot(mason_id)
    except RewardsError as exc:
        raise_http_error(exc)
    return BalanceResponse.model_validate(snapshot)


@router.get("/catalog", response_model=List[RewardCatalogItemResponse])
async def list_catalog(
    active_only: bool = Query(False, alias="activeOnly"),
    db: AsyncSession = Depends(get_session),
    _: User = Depends(require_rewards_reader),
) -> List[RewardCatalogItemResponse]:
    items = await RewardCatalogService(db).list_items(active_only=active_only)
    return [RewardCatalogItemResponse.model_validate(item) for item in items]


@router.get("/catalog/{reward_id}", response_model=RewardCatalogItemResponse)
async def get_catalog_item(
    reward_id: int,
    db: AsyncSession = Depends(get_session),
    _: User = Depends(require_rewards_reader),
) -> RewardCatalogItemResponse:
    try:
        item = await RewardCatalogService(db).get_active_item(reward_id)
    except RewardsError as exc:
        raise_http_error(exc)
    return RewardCatalogItemResponse.model_validate(item)


@router.get("/categories", response_model=List[RewardCategoryResponse])
async def list_categories(
    db: AsyncSession = Depends(get_session),
    _: User = Depends(require_rewards_reader),
) -> List[RewardCategoryResponse]:
    categories = await RewardCatalogService(db).list_categories()
    return [RewardCategoryResponse.model_validate(category) for category in categories]
