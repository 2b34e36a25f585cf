"""Redemption request intake: pricing, balance checks and the initial debit."""

from __future__ import annotations

from datetime import datetime
from typing import Tuple
from uuid import UUID, uuid4

from loguru import logger
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fieldforce_api.models.mason import Mason
from fieldforce_api.models.points_ledger import PointsSourceType
from fieldforce_api.models.redemption import RedemptionRequest, RedemptionStatus
from fieldforce_api.observability.rewards import get_rewards_store

from .catalog import RewardCatalogService
from .errors import (
    InactiveRewardError,
    InsufficientBalanceError,
    NotFoundError,
    RewardsError,
    RewardsValidationError,
)
from .ledger import PointsLedgerService, bounded_limit


class RedemptionIntakeService:
    """Creates and lists redemption requests."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._catalog = RewardCatalogService(session)
        self._ledger = PointsLedgerService(session)

    async def create_request(
        self,
        *,
        mason_id: UUID,
        reward_id: int,
        quantity: int,
        delivery_name: str | None = None,
        delivery_phone: str | None = None,
        delivery_address: str | None = None,
    ) -> RedemptionRequest:
        """Price a redemption, debit the mason and persist the pending request.

        The debit, the request row and the ledger entry commit together or not
        at all.
        """

        try:
            return await self._create_request(
                mason_id=mason_id,
                reward_id=reward_id,
                quantity=quantity,
                delivery_name=delivery_name,
                delivery_phone=delivery_phone,
                delivery_address=delivery_address,
            )
        except RewardsError as exc:
            get_rewards_store().record_refusal(exc.kind)
            logger.info(
                "Refused redemption request",
                mason_id=str(mason_id),
                reward_id=reward_id,
                quantity=quantity,
                reason=exc.kind,
            )
            raise

    async def _create_request(
        self,
        *,
        mason_id: UUID,
        reward_id: int,
        quantity: int,
        delivery_name: str | None,
        delivery_phone: str | None,
        delivery_address: str | None,
    ) -> RedemptionRequest:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise RewardsValidationError("Quantity must be a positive integer", field="quantity")

        reward = await self._catalog.get_active_item(reward_id)
        if not reward.is_active:
            raise InactiveRewardError(reward.id)

        mason = await self._get_mason(mason_id)
        cost = quantity * int(reward.point_cost)

        balance = await self._ledger.get_balance(mason.id)
        if balance < cost:
            raise InsufficientBalanceError(balance=balance, required=cost)

        request = RedemptionRequest(
            id=uuid4(),
            mason_id=mason.id,
            reward_id=reward.id,
            quantity=quantity,
            status=RedemptionStatus.PENDING,
            points_debited=cost,
            delivery_name=delivery_name or mason.name,
            delivery_phone=delivery_phone or mason.phone_number,
            delivery_address=delivery_address,
        )
        try:
            # Re-checked atomically against the materialized balance.
            debit = await self._ledger.record_entry(
                mason.id,
                source_type=PointsSourceType.REDEMPTION,
                points=-cost,
                source_id=str(request.id),
                memo=f"redemption: {reward.name} x{quantity}",
                require_funds=True,
            )
            self._session.add(request)
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise

        await self._session.refresh(request)
        get_rewards_store().record_redemption_created(cost)
        self._ledger.publish_metrics([debit])
        logger.info(
            "Created redemption request",
            redemption_id=str(request.id),
            mason_id=str(mason.id),
            reward_id=reward.id,
            quantity=quantity,
            points_debited=cost,
        )
        return request

    async def get_request(self, redemption_id: UUID) -> RedemptionRequest:
        stmt = (
            select(RedemptionRequest)
            .options(selectinload(RedemptionRequest.mason), selectinload(RedemptionRequest.reward))
            .where(RedemptionRequest.id == redemption_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        request = result.scalar_one_or_none()
        if request is None:
            raise NotFoundError("Redemption request", redemption_id)
        return request

    async def list_requests(
        self,
        *,
        status: RedemptionStatus | None = None,
        mason_id: UUID | None = None,
        company_id: int | None = None,
        limit: int | None = None,
        cursor: Tuple[datetime, UUID] | None = None,
    ) -> tuple[list[RedemptionRequest], Tuple[datetime, UUID] | None]:
        """Return a newest-first window of redemption requests."""

        page_size = bounded_limit(limit)
        stmt = (
            select(RedemptionRequest)
            .options(selectinload(RedemptionRequest.mason), selectinload(RedemptionRequest.reward))
            .order_by(RedemptionRequest.created_at.desc(), RedemptionRequest.id.desc())
            .execution_options(populate_existing=True)
        )
        if status is not None:
            stmt = stmt.where(RedemptionRequest.status == status)
        if mason_id is not None:
            stmt = stmt.where(RedemptionRequest.mason_id == mason_id)
        if company_id is not None:
            stmt = stmt.join(Mason, Mason.id == RedemptionRequest.mason_id).where(Mason.company_id == company_id)
        if cursor:
            cursor_time, cursor_id = cursor
            stmt = stmt.where(
                or_(
                    RedemptionRequest.created_at < cursor_time,
                    and_(
                        RedemptionRequest.created_at == cursor_time,
                        RedemptionRequest.id < cursor_id,
                    ),
                )
            )

        stmt = stmt.limit(page_size + 1)
        result = await self._session.execute(stmt)
        rows = list(result.scalars().all())
        requests = rows[:page_size]
        next_cursor: Tuple[datetime, UUID] | None = None
        if len(rows) > page_size and requests:
            tail = requests[-1]
            next_cursor = (tail.created_at, tail.id)
        return requests, next_cursor

    async def _get_mason(self, mason_id: UUID) -> Mason:
        result = await self._session.execute(select(Mason).where(Mason.id == mason_id))
        mason = result.scalar_one_or_none()
        if mason is None:
            raise NotFoundError("Mason", mason_id)
        return mason


__all__ = ["RedemptionIntakeService"]
