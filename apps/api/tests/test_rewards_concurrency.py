import asyncio

import pytest
from sqlalchemy import select

from fieldforce_api.models import RedemptionRequest
from fieldforce_api.models.redemption import RedemptionStatus
from fieldforce_api.services.rewards import (
    InsufficientBalanceError,
    InsufficientStockError,
    PointsLedgerService,
    RedemptionIntakeService,
    RedemptionStateMachine,
    RewardCatalogService,
)


async def _gather(factory, count, operation):
    async def _run(index):
        async with factory() as session:
            try:
                return await operation(session, index)
            except Exception as exc:  # collected for assertions
                return exc

    return await asyncio.gather(*(_run(index) for index in range(count)))


@pytest.mark.asyncio
async def test_concurrent_requests_never_overdraw(file_session_factory, seed_world) -> None:
    world = await seed_world(file_session_factory, balance=700, stock=10)

    async def _request(session, _index):
        return await RedemptionIntakeService(session).create_request(
            mason_id=world.mason_id, reward_id=world.reward_id, quantity=2
        )

    results = await _gather(file_session_factory, 5, _request)

    successes = [result for result in results if isinstance(result, RedemptionRequest)]
    failures = [result for result in results if not isinstance(result, RedemptionRequest)]
    assert len(successes) == 2
    assert all(isinstance(failure, InsufficientBalanceError) for failure in failures)

    async with file_session_factory() as session:
        snapshot = await PointsLedgerService(session).snapshot(world.mason_id)
        assert snapshot.balance == 100
        assert snapshot.materialized_balance == 100


@pytest.mark.asyncio
async def test_concurrent_approvals_never_oversell(file_session_factory, seed_world) -> None:
    world = await seed_world(file_session_factory, balance=1_000, stock=3)
    async with file_session_factory() as session:
        intake = RedemptionIntakeService(session)
        request_ids = [
            (await intake.create_request(mason_id=world.mason_id, reward_id=world.reward_id, quantity=1)).id
            for _ in range(5)
        ]

    async def _approve(session, index):
        return await RedemptionStateMachine(session).transition(
            redemption_id=request_ids[index], target_status=RedemptionStatus.APPROVED
        )

    results = await _gather(file_session_factory, 5, _approve)

    applied = [result for result in results if not isinstance(result, Exception)]
    failures = [result for result in results if isinstance(result, Exception)]
    assert len(applied) == 3
    assert all(isinstance(failure, InsufficientStockError) for failure in failures)

    async with file_session_factory() as session:
        assert await RewardCatalogService(session).current_stock(world.reward_id) == 0
        statuses = (
            await session.execute(select(RedemptionRequest.status).where(RedemptionRequest.id.in_(request_ids)))
        ).scalars().all()
        assert sorted(status.value for status in statuses) == ["approved"] * 3 + ["pending"] * 2


@pytest.mark.asyncio
async def test_concurrent_reviewers_apply_side_effects_once(file_session_factory, seed_world) -> None:
    world = await seed_world(file_session_factory, balance=700, stock=3)
    async with file_session_factory() as session:
        request = await RedemptionIntakeService(session).create_request(
            mason_id=world.mason_id, reward_id=world.reward_id, quantity=1
        )

    async def _approve(session, _index):
        return await RedemptionStateMachine(session).transition(
            redemption_id=request.id, target_status=RedemptionStatus.APPROVED
        )

    results = await _gather(file_session_factory, 2, _approve)

    assert not any(isinstance(result, Exception) for result in results)
    assert sorted(result.applied for result in results) == [False, True]

    async with file_session_factory() as session:
        assert await RewardCatalogService(session).current_stock(world.reward_id) == 2
        events = await RedemptionStateMachine(session).list_events(request.id)
        assert len(events) == 1
