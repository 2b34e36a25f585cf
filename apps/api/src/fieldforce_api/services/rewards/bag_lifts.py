"""Bag-lift review and accrual into the points ledger."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fieldforce_api.models.bag_lift import BagLift, BagLiftStatus
from fieldforce_api.models.mason import Mason
from fieldforce_api.models.points_ledger import PointsLedgerEntry, PointsSourceType

from .errors import InvalidTransitionError, NotFoundError, RewardsValidationError
from .ledger import PointsLedgerService


class BagLiftService:
    """Reviews pending bag lifts; approval credits ``points_credited`` to the ledger."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._ledger = PointsLedgerService(session)

    async def get(self, bag_lift_id: UUID) -> BagLift:
        stmt = select(BagLift).where(BagLift.id == bag_lift_id).execution_options(populate_existing=True)
        bag_lift = (await self._session.execute(stmt)).scalar_one_or_none()
        if bag_lift is None:
            raise NotFoundError("Bag lift", bag_lift_id)
        return bag_lift

    async def list_bag_lifts(
        self,
        *,
        status: BagLiftStatus | None = None,
        company_id: int | None = None,
        mason_id: UUID | None = None,
    ) -> list[BagLift]:
        stmt = select(BagLift).order_by(BagLift.purchase_date.desc(), BagLift.id.desc())
        if status is not None:
            stmt = stmt.where(BagLift.status == status)
        if mason_id is not None:
            stmt = stmt.where(BagLift.mason_id == mason_id)
        if company_id is not None:
            stmt = stmt.join(Mason, Mason.id == BagLift.mason_id).where(Mason.company_id == company_id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def review(
        self,
        bag_lift_id: UUID,
        *,
        status: BagLiftStatus | str,
        reviewer_id: UUID | None = None,
    ) -> BagLift:
        """Approve or reject a pending bag lift."""

        try:
            target = BagLiftStatus(status)
        except ValueError as exc:
            raise RewardsValidationError(f"Unknown bag lift status: {status}", field="status") from exc
        if target == BagLiftStatus.PENDING:
            raise RewardsValidationError("Bag lifts can only be approved or rejected", field="status")

        bag_lift = await self.get(bag_lift_id)
        current = BagLiftStatus(bag_lift.status)
        if current != BagLiftStatus.PENDING:
            raise InvalidTransitionError(current.value, target.value)

        entries: list[PointsLedgerEntry] = []
        try:
            result = await self._session.execute(
                update(BagLift)
                .where(BagLift.id == bag_lift.id, BagLift.status == BagLiftStatus.PENDING)
                .values(status=target, approved_by=reviewer_id, approved_at=datetime.now(timezone.utc))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                latest = (
                    await self._session.execute(select(BagLift.status).where(BagLift.id == bag_lift.id))
                ).scalar_one()
                raise InvalidTransitionError(BagLiftStatus(latest).value, target.value)
            if target == BagLiftStatus.APPROVED and (bag_lift.points_credited or 0) > 0:
                entries.append(
                    await self._ledger.record_entry(
                        bag_lift.mason_id,
                        source_type=PointsSourceType.BAG_LIFT,
                        points=int(bag_lift.points_credited),
                        source_id=str(bag_lift.id),
                        memo=f"bag lift: {bag_lift.bag_count} bags",
                    )
                )
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise

        await self._session.refresh(bag_lift)
        self._ledger.publish_metrics(entries)
        logger.info(
            "Reviewed bag lift",
            bag_lift_id=str(bag_lift.id),
            mason_id=str(bag_lift.mason_id),
            status=target.value,
            points_credited=bag_lift.points_credited if entries else 0,
        )
        return bag_lift


__all__ = ["BagLiftService"]
