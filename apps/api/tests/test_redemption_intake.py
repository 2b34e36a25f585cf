from uuid import uuid4

import pytest
from sqlalchemy import func, select

from fieldforce_api.models import Mason, PointsLedgerEntry, RedemptionRequest
from fieldforce_api.models.points_ledger import PointsSourceType
from fieldforce_api.models.redemption import RedemptionStatus
from fieldforce_api.services.rewards import (
    InactiveRewardError,
    InsufficientBalanceError,
    NotFoundError,
    PointsLedgerService,
    RedemptionIntakeService,
    RewardsValidationError,
)


@pytest.mark.asyncio
async def test_create_request_debits_and_links_ledger_entry(session_factory, rewards_world, reset_rewards_store) -> None:
    async with session_factory() as session:
        service = RedemptionIntakeService(session)
        request = await service.create_request(
            mason_id=rewards_world.mason_id,
            reward_id=rewards_world.reward_id,
            quantity=2,
            delivery_address="12 Mill Road",
        )

        assert request.status == RedemptionStatus.PENDING
        assert request.points_debited == 300
        assert request.delivery_name == "Ravi Kumar"
        assert request.delivery_phone == "9000000001"
        assert request.delivery_address == "12 Mill Road"

        debit = (
            await session.execute(select(PointsLedgerEntry).where(PointsLedgerEntry.source_id == str(request.id)))
        ).scalar_one()
        assert debit.points == -300
        assert debit.source_type == PointsSourceType.REDEMPTION

        ledger = PointsLedgerService(session)
        snapshot = await ledger.snapshot(rewards_world.mason_id)
        assert snapshot.balance == 400
        assert snapshot.materialized_balance == 400
        assert snapshot.pending_points == 300

    counters = reset_rewards_store.snapshot().as_dict()
    assert counters["redemptions"]["created"] == 1
    assert counters["redemptions"]["points_debited"] == 300


@pytest.mark.asyncio
async def test_explicit_delivery_details_are_kept(session_factory, rewards_world) -> None:
    async with session_factory() as session:
        request = await RedemptionIntakeService(session).create_request(
            mason_id=rewards_world.mason_id,
            reward_id=rewards_world.reward_id,
            quantity=1,
            delivery_name="Site Office",
            delivery_phone="9111111111",
        )
        assert request.delivery_name == "Site Office"
        assert request.delivery_phone == "9111111111"


@pytest.mark.asyncio
async def test_insufficient_balance_writes_nothing(session_factory, rewards_world, reset_rewards_store) -> None:
    async with session_factory() as session:
        service = RedemptionIntakeService(session)
        with pytest.raises(InsufficientBalanceError) as excinfo:
            await service.create_request(
                mason_id=rewards_world.mason_id,
                reward_id=rewards_world.reward_id,
                quantity=5,
            )
        assert excinfo.value.balance == 700
        assert excinfo.value.required == 750

        count = (await session.execute(select(func.count()).select_from(RedemptionRequest))).scalar_one()
        assert count == 0
        assert await PointsLedgerService(session).get_balance(rewards_world.mason_id) == 700

    assert reset_rewards_store.snapshot().refusals == {"insufficient_balance": 1}


@pytest.mark.asyncio
async def test_exact_balance_can_be_spent(session_factory, seed_world) -> None:
    world = await seed_world(session_factory, balance=300)
    async with session_factory() as session:
        await RedemptionIntakeService(session).create_request(
            mason_id=world.mason_id, reward_id=world.reward_id, quantity=2
        )
        assert await PointsLedgerService(session).get_balance(world.mason_id) == 0


@pytest.mark.asyncio
async def test_quantity_must_be_positive(session_factory, rewards_world) -> None:
    async with session_factory() as session:
        service = RedemptionIntakeService(session)
        for quantity in (0, -1):
            with pytest.raises(RewardsValidationError):
                await service.create_request(
                    mason_id=rewards_world.mason_id,
                    reward_id=rewards_world.reward_id,
                    quantity=quantity,
                )


@pytest.mark.asyncio
async def test_unknown_references_raise_not_found(session_factory, rewards_world) -> None:
    async with session_factory() as session:
        service = RedemptionIntakeService(session)
        with pytest.raises(NotFoundError):
            await service.create_request(mason_id=rewards_world.mason_id, reward_id=9999, quantity=1)
        with pytest.raises(NotFoundError):
            await service.create_request(mason_id=uuid4(), reward_id=rewards_world.reward_id, quantity=1)


@pytest.mark.asyncio
async def test_inactive_reward_is_refused(session_factory, seed_world) -> None:
    world = await seed_world(session_factory, is_active=False)
    async with session_factory() as session:
        with pytest.raises(InactiveRewardError):
            await RedemptionIntakeService(session).create_request(
                mason_id=world.mason_id, reward_id=world.reward_id, quantity=1
            )


@pytest.mark.asyncio
async def test_list_requests_filters_and_pages(session_factory, seed_world) -> None:
    world = await seed_world(session_factory, balance=5_000)
    async with session_factory() as session:
        other = Mason(name="Other Company", company_id=2)
        session.add(other)
        await session.commit()
        await PointsLedgerService(session).append_entry(other.id, source_type=PointsSourceType.BONUS, points=500)

        service = RedemptionIntakeService(session)
        created = [
            await service.create_request(mason_id=world.mason_id, reward_id=world.reward_id, quantity=1)
            for _ in range(3)
        ]
        await service.create_request(mason_id=other.id, reward_id=world.reward_id, quantity=1)

        first, cursor = await service.list_requests(company_id=world.company_id, limit=2)
        assert [item.id for item in first] == [created[2].id, created[1].id]
        assert cursor is not None
        second, cursor = await service.list_requests(company_id=world.company_id, limit=2, cursor=cursor)
        assert [item.id for item in second] == [created[0].id]
        assert cursor is None

        pending, _ = await service.list_requests(status=RedemptionStatus.parse("placed"))
        assert len(pending) == 4

        fetched = await service.get_request(created[0].id)
        assert fetched.mason.name == "Ravi Kumar"
        assert fetched.reward.name == "Helmet"
