import pytest

from fieldforce_api.models import RewardCatalogItem, RewardCategory
from fieldforce_api.services.rewards import (
    InsufficientStockError,
    NotFoundError,
    RewardCatalogService,
    RewardsValidationError,
)


async def _add_reward(session, **overrides) -> RewardCatalogItem:
    values = {"name": "Helmet", "point_cost": 150, "stock": 3, "total_available_quantity": 3}
    values.update(overrides)
    reward = RewardCatalogItem(**values)
    session.add(reward)
    await session.commit()
    return reward


@pytest.mark.asyncio
async def test_decrement_stock_is_conditional(session_factory) -> None:
    async with session_factory() as session:
        reward = await _add_reward(session)
        service = RewardCatalogService(session)

        assert await service.decrement_stock(reward.id, 2) == 1
        with pytest.raises(InsufficientStockError) as excinfo:
            await service.decrement_stock(reward.id, 2)
        assert excinfo.value.available == 1
        assert excinfo.value.requested == 2
        assert await service.current_stock(reward.id) == 1


@pytest.mark.asyncio
async def test_increment_stock_allows_exceeding_total(session_factory) -> None:
    async with session_factory() as session:
        reward = await _add_reward(session, stock=3, total_available_quantity=3)
        service = RewardCatalogService(session)

        assert await service.increment_stock(reward.id, 2) == 5
        await session.commit()
        refreshed = await service.get_active_item(reward.id)
        assert refreshed.stock == 5


@pytest.mark.asyncio
async def test_stock_movements_validate_inputs(session_factory) -> None:
    async with session_factory() as session:
        service = RewardCatalogService(session)
        with pytest.raises(RewardsValidationError):
            await service.decrement_stock(1, 0)
        with pytest.raises(NotFoundError):
            await service.decrement_stock(999, 1)
        with pytest.raises(NotFoundError):
            await service.increment_stock(999, 1)


@pytest.mark.asyncio
async def test_get_active_item_returns_inactive_items(session_factory) -> None:
    async with session_factory() as session:
        reward = await _add_reward(session, is_active=False)
        service = RewardCatalogService(session)

        item = await service.get_active_item(reward.id)
        assert item.is_active is False
        with pytest.raises(NotFoundError):
            await service.get_active_item(reward.id + 100)


@pytest.mark.asyncio
async def test_list_items_and_categories(session_factory) -> None:
    async with session_factory() as session:
        tools = RewardCategory(name="Tools")
        safety = RewardCategory(name="Safety")
        session.add_all([tools, safety])
        await session.flush()
        await _add_reward(session, name="Tool Kit", category_id=tools.id, point_cost=400)
        await _add_reward(session, name="Helmet", category_id=safety.id)
        await _add_reward(session, name="Archived Bag", is_active=False)

        service = RewardCatalogService(session)
        names = [item.name for item in await service.list_items()]
        assert names == ["Archived Bag", "Helmet", "Tool Kit"]
        active = [item.name for item in await service.list_items(active_only=True)]
        assert active == ["Helmet", "Tool Kit"]
        assert [category.name for category in await service.list_categories()] == ["Safety", "Tools"]
