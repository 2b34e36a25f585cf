"""Seed development administrators, masons and a reward catalog into the API database."""

from __future__ import annotations

import asyncio
import os
from typing import TypedDict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fieldforce_api.core.settings import settings
from fieldforce_api.models import Mason, RewardCatalogItem, RewardCategory, User
from fieldforce_api.models.points_ledger import PointsSourceType
from fieldforce_api.services.rewards import PointsLedgerService


DEV_COMPANY_ID = int(os.getenv("DEV_COMPANY_ID", "1"))


class SeedUser(TypedDict):
    email: str
    display_name: str
    role: str


class SeedMason(TypedDict):
    name: str
    phone_number: str
    opening_points: int


class SeedReward(TypedDict):
    name: str
    category: str
    point_cost: int
    stock: int


DEV_USERS: list[SeedUser] = [
    {
        "email": os.getenv("DEV_MANAGER_EMAIL", "manager@fieldforce.dev").lower(),
        "display_name": "Senior Manager QA",
        "role": "senior-manager",
    },
    {
        "email": os.getenv("DEV_EXECUTIVE_EMAIL", "executive@fieldforce.dev").lower(),
        "display_name": "Executive QA",
        "role": "executive",
    },
]

DEV_MASONS: list[SeedMason] = [
    {"name": "Ravi Kumar", "phone_number": "9000000001", "opening_points": 700},
    {"name": "Anil Singh", "phone_number": "9000000002", "opening_points": 150},
]

DEV_REWARDS: list[SeedReward] = [
    {"name": "Helmet", "category": "Safety", "point_cost": 150, "stock": 3},
    {"name": "Tool Kit", "category": "Tools", "point_cost": 400, "stock": 10},
    {"name": "Mobile Phone", "category": "Electronics", "point_cost": 2500, "stock": 2},
]


async def seed_users(session: AsyncSession) -> None:
    for user in DEV_USERS:
        existing = await session.execute(select(User).where(User.email == user["email"]))
        record = existing.scalar_one_or_none()
        if record:
            record.display_name = user["display_name"]
            record.role = user["role"]
            record.company_id = DEV_COMPANY_ID
        else:
            session.add(
                User(
                    email=user["email"],
                    display_name=user["display_name"],
                    role=user["role"],
                    company_id=DEV_COMPANY_ID,
                )
            )
    await session.commit()


async def seed_catalog(session: AsyncSession) -> None:
    categories: dict[str, RewardCategory] = {}
    for reward in DEV_REWARDS:
        name = reward["category"]
        if name not in categories:
            existing = await session.execute(select(RewardCategory).where(RewardCategory.name == name))
            category = existing.scalar_one_or_none()
            if category is None:
                category = RewardCategory(name=name)
                session.add(category)
                await session.flush()
            categories[name] = category

        existing_reward = await session.execute(
            select(RewardCatalogItem).where(RewardCatalogItem.name == reward["name"])
        )
        if existing_reward.scalar_one_or_none() is None:
            session.add(
                RewardCatalogItem(
                    name=reward["name"],
                    category_id=categories[name].id,
                    point_cost=reward["point_cost"],
                    stock=reward["stock"],
                    total_available_quantity=reward["stock"],
                )
            )
    await session.commit()


async def seed_masons(session: AsyncSession) -> None:
    ledger = PointsLedgerService(session)
    for mason in DEV_MASONS:
        existing = await session.execute(select(Mason).where(Mason.phone_number == mason["phone_number"]))
        if existing.scalar_one_or_none() is not None:
            continue
        record = Mason(name=mason["name"], phone_number=mason["phone_number"], company_id=DEV_COMPANY_ID)
        session.add(record)
        await session.commit()
        if mason["opening_points"]:
            await ledger.append_entry(
                record.id,
                source_type=PointsSourceType.BONUS,
                points=mason["opening_points"],
                memo="opening balance",
            )


async def main() -> None:
    engine = create_async_engine(settings.database_url, future=True)
    session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        async with session_factory() as session:
            await seed_users(session)
            await seed_catalog(session)
            await seed_masons(session)
        print("Development rewards data ready")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
