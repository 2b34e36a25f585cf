"""Reward catalog reads and atomic stock movements."""

from __future__ import annotations

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fieldforce_api.models.rewards import RewardCatalogItem, RewardCategory

from .errors import InsufficientStockError, NotFoundError, RewardsValidationError


class RewardCatalogService:
    """Catalog lookups plus stock changes expressed as conditional UPDATEs.

    Stock movements flush but never commit; they run inside the redemption
    transition that owns the transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_active_item(self, reward_id: int) -> RewardCatalogItem:
        """Return the catalog item regardless of ``is_active``; callers decide."""

        stmt = (
            select(RewardCatalogItem)
            .options(selectinload(RewardCatalogItem.category))
            .where(RewardCatalogItem.id == reward_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        item = result.scalar_one_or_none()
        if item is None:
            raise NotFoundError("Reward", reward_id)
        return item

    async def list_items(self, *, active_only: bool = False) -> list[RewardCatalogItem]:
        stmt = (
            select(RewardCatalogItem)
            .options(selectinload(RewardCatalogItem.category))
            .order_by(RewardCatalogItem.name.asc(), RewardCatalogItem.id.asc())
            .execution_options(populate_existing=True)
        )
        if active_only:
            stmt = stmt.where(RewardCatalogItem.is_active.is_(True))
        result = await self._session.execute(stmt)
        items = list(result.scalars().all())
        logger.debug("Fetched reward catalog", count=len(items), active_only=active_only)
        return items

    async def list_categories(self) -> list[RewardCategory]:
        result = await self._session.execute(select(RewardCategory).order_by(RewardCategory.name.asc()))
        return list(result.scalars().all())

    async def current_stock(self, reward_id: int) -> int | None:
        result = await self._session.execute(
            select(RewardCatalogItem.stock).where(RewardCatalogItem.id == reward_id)
        )
        value = result.scalar_one_or_none()
        return int(value) if value is not None else None

    async def decrement_stock(self, reward_id: int, quantity: int) -> int:
        """Take ``quantity`` units off the shelf, failing rather than going negative."""

        self._validate_quantity(quantity)
        stmt = (
            update(RewardCatalogItem)
            .where(RewardCatalogItem.id == reward_id, RewardCatalogItem.stock >= quantity)
            .values(stock=RewardCatalogItem.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            available = await self.current_stock(reward_id)
            if available is None:
                raise NotFoundError("Reward", reward_id)
            raise InsufficientStockError(reward_id, available=available, requested=quantity)

        remaining = await self.current_stock(reward_id) or 0
        logger.info("Decremented reward stock", reward_id=reward_id, quantity=quantity, stock=remaining)
        return remaining

    async def increment_stock(self, reward_id: int, quantity: int) -> int:
        """Return ``quantity`` units to the shelf."""

        self._validate_quantity(quantity)
        stmt = (
            update(RewardCatalogItem)
            .where(RewardCatalogItem.id == reward_id)
            .values(stock=RewardCatalogItem.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise NotFoundError("Reward", reward_id)

        row = (
            await self._session.execute(
                select(RewardCatalogItem.stock, RewardCatalogItem.total_available_quantity).where(
                    RewardCatalogItem.id == reward_id
                )
            )
        ).one()
        stock, ceiling = int(row.stock), int(row.total_available_quantity or 0)
        # Soft ceiling only.
        if ceiling and stock > ceiling:
            logger.warning(
                "Reward stock exceeds total available quantity",
                reward_id=reward_id,
                stock=stock,
                total_available_quantity=ceiling,
            )
        logger.info("Incremented reward stock", reward_id=reward_id, quantity=quantity, stock=stock)
        return stock

    @staticmethod
    def _validate_quantity(quantity: int) -> None:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise RewardsValidationError("Quantity must be a positive integer", field="quantity")


__all__ = ["RewardCatalogService"]
