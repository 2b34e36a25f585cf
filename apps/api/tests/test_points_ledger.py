from uuid import uuid4

import pytest
from sqlalchemy import select

from fieldforce_api.models import Mason, PointsLedgerEntry
from fieldforce_api.models.points_ledger import PointsSourceType
from fieldforce_api.services.rewards import (
    NotFoundError,
    PointsLedgerService,
    RewardsValidationError,
    decode_time_uuid_cursor,
    encode_time_uuid_cursor,
)


@pytest.mark.asyncio
async def test_balance_is_sum_of_entries(session_factory) -> None:
    async with session_factory() as session:
        mason = Mason(name="Balance Mason")
        session.add(mason)
        await session.commit()

        service = PointsLedgerService(session)
        assert await service.get_balance(mason.id) == 0

        await service.append_entry(mason.id, source_type=PointsSourceType.BAG_LIFT, points=500, source_id="lift-1")
        await service.append_entry(mason.id, source_type="meeting", points=250)
        await service.append_entry(mason.id, source_type=PointsSourceType.ADJUSTMENT, points=-50, memo="correction")

        assert await service.get_balance(mason.id) == 700
        snapshot = await service.snapshot(mason.id)
        assert snapshot.balance == 700
        assert snapshot.materialized_balance == 700
        assert snapshot.pending_points == 0
        assert snapshot.drift == 0


@pytest.mark.asyncio
async def test_zero_point_entries_are_rejected(session_factory) -> None:
    async with session_factory() as session:
        mason = Mason(name="Zero Mason")
        session.add(mason)
        await session.commit()

        service = PointsLedgerService(session)
        with pytest.raises(RewardsValidationError):
            await service.append_entry(mason.id, source_type=PointsSourceType.BONUS, points=0)

        entries = (await session.execute(select(PointsLedgerEntry))).scalars().all()
        assert entries == []


@pytest.mark.asyncio
async def test_unknown_source_type_is_rejected(session_factory) -> None:
    async with session_factory() as session:
        mason = Mason(name="Source Mason")
        session.add(mason)
        await session.commit()

        with pytest.raises(RewardsValidationError) as excinfo:
            await PointsLedgerService(session).append_entry(mason.id, source_type="lottery", points=10)
        assert excinfo.value.field == "sourceType"


@pytest.mark.asyncio
async def test_unknown_mason_raises_not_found(session_factory) -> None:
    async with session_factory() as session:
        service = PointsLedgerService(session)
        missing = uuid4()

        with pytest.raises(NotFoundError):
            await service.get_balance(missing)
        with pytest.raises(NotFoundError):
            await service.append_entry(missing, source_type=PointsSourceType.BONUS, points=10)

        entries = (await session.execute(select(PointsLedgerEntry))).scalars().all()
        assert entries == []


@pytest.mark.asyncio
async def test_list_entries_pages_newest_first(session_factory) -> None:
    async with session_factory() as session:
        mason = Mason(name="Paging Mason")
        session.add(mason)
        await session.commit()

        service = PointsLedgerService(session)
        for points in (10, 20, 30, 40, 50):
            await service.append_entry(mason.id, source_type=PointsSourceType.SCHEME, points=points)
        await service.append_entry(mason.id, source_type=PointsSourceType.BONUS, points=5)

        first, cursor = await service.list_entries(mason_id=mason.id, limit=4)
        assert [entry.points for entry in first] == [5, 50, 40, 30]
        assert cursor is not None

        second, next_cursor = await service.list_entries(mason_id=mason.id, limit=4, cursor=cursor)
        assert [entry.points for entry in second] == [20, 10]
        assert next_cursor is None

        schemes, _ = await service.list_entries(mason_id=mason.id, source_types=["scheme"], limit=10)
        assert {entry.source_type for entry in schemes} == {PointsSourceType.SCHEME}
        assert len(schemes) == 5


@pytest.mark.asyncio
async def test_list_entries_scoped_to_company(session_factory) -> None:
    async with session_factory() as session:
        ours = Mason(name="Ours", company_id=1)
        theirs = Mason(name="Theirs", company_id=2)
        session.add_all([ours, theirs])
        await session.commit()

        service = PointsLedgerService(session)
        await service.append_entry(ours.id, source_type=PointsSourceType.BONUS, points=10)
        await service.append_entry(theirs.id, source_type=PointsSourceType.BONUS, points=20)

        entries, _ = await service.list_entries(company_id=1)
        assert [entry.mason_id for entry in entries] == [ours.id]


def test_cursor_round_trip_and_rejects_garbage() -> None:
    from datetime import datetime, timezone

    identifier = uuid4()
    timestamp = datetime(2026, 10, 17, 9, 30, tzinfo=timezone.utc)
    assert decode_time_uuid_cursor(encode_time_uuid_cursor(timestamp, identifier)) == (timestamp, identifier)

    with pytest.raises(RewardsValidationError):
        decode_time_uuid_cursor("not-a-cursor")
