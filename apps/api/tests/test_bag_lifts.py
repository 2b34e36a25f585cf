from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from fieldforce_api.models import BagLift, PointsLedgerEntry
from fieldforce_api.models.bag_lift import BagLiftStatus
from fieldforce_api.models.points_ledger import PointsSourceType
from fieldforce_api.services.rewards import (
    BagLiftService,
    InvalidTransitionError,
    NotFoundError,
    PointsLedgerService,
    RewardsValidationError,
)


async def _add_lift(session_factory, mason_id, *, points: int = 120, bag_count: int = 12) -> BagLift:
    async with session_factory() as session:
        lift = BagLift(mason_id=mason_id, dealer_id="DLR-7", bag_count=bag_count, points_credited=points)
        session.add(lift)
        await session.commit()
        return lift


@pytest.mark.asyncio
async def test_approval_credits_points(session_factory, rewards_world) -> None:
    lift = await _add_lift(session_factory, rewards_world.mason_id)

    async with session_factory() as session:
        service = BagLiftService(session)
        reviewed = await service.review(lift.id, status="approved", reviewer_id=rewards_world.admin_id)

        assert reviewed.status == BagLiftStatus.APPROVED
        assert reviewed.approved_by == rewards_world.admin_id
        assert reviewed.approved_at is not None

        credit = (
            await session.execute(select(PointsLedgerEntry).where(PointsLedgerEntry.source_id == str(lift.id)))
        ).scalar_one()
        assert credit.source_type == PointsSourceType.BAG_LIFT
        assert credit.points == 120
        assert await PointsLedgerService(session).get_balance(rewards_world.mason_id) == 820

        with pytest.raises(InvalidTransitionError):
            await service.review(lift.id, status="rejected")


@pytest.mark.asyncio
async def test_rejection_writes_no_points(session_factory, rewards_world) -> None:
    lift = await _add_lift(session_factory, rewards_world.mason_id)

    async with session_factory() as session:
        reviewed = await BagLiftService(session).review(lift.id, status=BagLiftStatus.REJECTED)
        assert reviewed.status == BagLiftStatus.REJECTED
        entries = (
            await session.execute(select(PointsLedgerEntry).where(PointsLedgerEntry.source_id == str(lift.id)))
        ).scalars().all()
        assert entries == []


@pytest.mark.asyncio
async def test_review_validates_input(session_factory, rewards_world) -> None:
    lift = await _add_lift(session_factory, rewards_world.mason_id, points=0)

    async with session_factory() as session:
        service = BagLiftService(session)
        with pytest.raises(RewardsValidationError):
            await service.review(lift.id, status="pending")
        with pytest.raises(RewardsValidationError):
            await service.review(lift.id, status="archived")
        with pytest.raises(NotFoundError):
            await service.review(uuid4(), status="approved")

        approved = await service.review(lift.id, status="approved")
        assert approved.status == BagLiftStatus.APPROVED
        assert await PointsLedgerService(session).get_balance(rewards_world.mason_id) == 700


@pytest.mark.asyncio
async def test_bag_lift_endpoints(app_with_db, rewards_world) -> None:
    app, session_factory = app_with_db
    lift = await _add_lift(session_factory, rewards_world.mason_id)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        pending = await client.get("/api/v1/bag-lifts", params={"status": "pending"}, headers=rewards_world.headers)
        assert pending.status_code == 200
        assert [item["id"] for item in pending.json()] == [str(lift.id)]
        assert pending.json()[0]["bagCount"] == 12

        reviewed = await client.patch(
            f"/api/v1/bag-lifts/{lift.id}", json={"status": "Approved"}, headers=rewards_world.headers
        )
        assert reviewed.status_code == 200
        assert reviewed.json()["status"] == "approved"
        assert reviewed.json()["approvedBy"] == str(rewards_world.admin_id)

        again = await client.patch(
            f"/api/v1/bag-lifts/{lift.id}", json={"status": "rejected"}, headers=rewards_world.headers
        )
        assert again.status_code == 409
        assert again.json()["detail"]["error"] == "invalid_transition"

        balance = await client.get(
            f"/api/v1/rewards/masons/{rewards_world.mason_id}/balance", headers=rewards_world.headers
        )
        assert balance.json()["balance"] == 820
