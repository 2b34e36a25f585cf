import sys
from dataclasses import dataclass
from pathlib import Path
from uuid import UUID

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


def _configure_path() -> None:
    src_path = Path(__file__).resolve().parents[1] / "src"
    if src_path.exists():
        sys.path.insert(0, str(src_path))


_configure_path()

from fieldforce_api import models  # noqa: E402,F401
from fieldforce_api.app import create_app  # noqa: E402
from fieldforce_api.db.base import Base  # noqa: E402
from fieldforce_api.db.session import get_session  # noqa: E402
from fieldforce_api.models import Mason, RewardCatalogItem, RewardCategory, User  # noqa: E402
from fieldforce_api.models.points_ledger import PointsSourceType  # noqa: E402
from fieldforce_api.observability.rewards import get_rewards_store  # noqa: E402
from fieldforce_api.services.rewards import PointsLedgerService  # noqa: E402


@dataclass
class RewardsWorld:
    admin_id: UUID
    mason_id: UUID
    reward_id: int
    category_id: int
    company_id: int

    @property
    def headers(self) -> dict[str, str]:
        return {"X-Session-User": str(self.admin_id)}


async def seed_rewards_world(
    session_factory,
    *,
    balance: int = 700,
    point_cost: int = 150,
    stock: int = 3,
    total_available_quantity: int | None = None,
    is_active: bool = True,
    company_id: int = 1,
    role: str = "senior-manager",
    email: str = "manager@example.com",
) -> RewardsWorld:
    async with session_factory() as session:
        admin = User(email=email, display_name="Manager QA", role=role, company_id=company_id)
        mason = Mason(name="Ravi Kumar", phone_number="9000000001", company_id=company_id)
        category = RewardCategory(name=f"Tools {email}")
        session.add_all([admin, mason, category])
        await session.flush()
        reward = RewardCatalogItem(
            name="Helmet",
            category_id=category.id,
            point_cost=point_cost,
            stock=stock,
            total_available_quantity=stock if total_available_quantity is None else total_available_quantity,
            is_active=is_active,
        )
        session.add(reward)
        await session.commit()
        if balance:
            await PointsLedgerService(session).append_entry(
                mason.id,
                source_type=PointsSourceType.BONUS,
                points=balance,
                memo="opening balance",
            )
        return RewardsWorld(
            admin_id=admin.id,
            mason_id=mason.id,
            reward_id=reward.id,
            category_id=category.id,
            company_id=company_id,
        )


@pytest.fixture(autouse=True)
def reset_rewards_store():
    store = get_rewards_store()
    store.reset()
    yield store
    store.reset()


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """File-backed database so concurrent sessions use separate connections."""

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'rewards.db'}",
        future=True,
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def rewards_world(session_factory) -> RewardsWorld:
    return await seed_rewards_world(session_factory)


@pytest_asyncio.fixture
async def app_with_db(session_factory):
    app = create_app()

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    try:
        yield app, session_factory
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def seed_world():
    return seed_rewards_world
