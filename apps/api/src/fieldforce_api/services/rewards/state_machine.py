"""Redemption state machine orchestration and audit logging."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fieldforce_api.models.points_ledger import PointsLedgerEntry, PointsSourceType
from fieldforce_api.models.redemption import RedemptionRequest, RedemptionStateEvent, RedemptionStatus
from fieldforce_api.observability.rewards import get_rewards_store

from .catalog import RewardCatalogService
from .errors import InactiveRewardError, InvalidTransitionError, NotFoundError, RewardsValidationError
from .ledger import PointsLedgerService


REFUND_MEMO = "refund: rejected"


@dataclass(slots=True)
class TransitionOutcome:
    """Result of a transition request; ``applied`` is False for same-state no-ops."""

    request: RedemptionRequest
    applied: bool
    event: RedemptionStateEvent | None = None
    ledger_entries: list[PointsLedgerEntry] = field(default_factory=list)


class RedemptionStateMachine:
    """Applies administrator decisions to redemption requests.

    Each applied transition moves the status with a compare-and-set UPDATE, runs
    its stock and ledger side effects, and writes an audit event, all in one
    transaction. Any failure rolls the whole step back.
    """

    _ALLOWED_TRANSITIONS: dict[RedemptionStatus, set[RedemptionStatus]] = {
        RedemptionStatus.PENDING: {RedemptionStatus.APPROVED, RedemptionStatus.REJECTED},
        RedemptionStatus.APPROVED: {RedemptionStatus.SHIPPED, RedemptionStatus.REJECTED},
        RedemptionStatus.SHIPPED: {RedemptionStatus.DELIVERED},
        RedemptionStatus.DELIVERED: set(),
        RedemptionStatus.REJECTED: set(),
    }

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._catalog = RewardCatalogService(session)
        self._ledger = PointsLedgerService(session)

    async def transition(
        self,
        *,
        redemption_id: UUID,
        target_status: RedemptionStatus | str,
        actor_id: str | None = None,
        actor_label: str | None = None,
        fulfillment_notes: str | None = None,
    ) -> TransitionOutcome:
        """Move a redemption request to ``target_status`` if the transition table allows it."""

        target = self._coerce_status(target_status)
        request = await self._get_request(redemption_id)
        current = RedemptionStatus(request.status)

        if target == current:
            logger.debug(
                "Redemption transition is a no-op",
                redemption_id=str(redemption_id),
                status=current.value,
            )
            return TransitionOutcome(request=request, applied=False)

        if target not in self._ALLOWED_TRANSITIONS[current]:
            raise InvalidTransitionError.for_redemption(current, target)

        try:
            applied = await self._compare_and_set(request, current, target, fulfillment_notes)
            entries: list[PointsLedgerEntry] = []
            event: RedemptionStateEvent | None = None
            if applied:
                entries = await self._apply_side_effects(request, current, target)
                event = RedemptionStateEvent(
                    redemption_id=request.id,
                    from_status=current.value,
                    to_status=target.value,
                    actor_id=actor_id,
                    actor_label=actor_label,
                    notes=fulfillment_notes,
                    metadata_json={
                        "rewardId": request.reward_id,
                        "quantity": request.quantity,
                        "pointsRefunded": sum(entry.points for entry in entries),
                    },
                )
                self._session.add(event)
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise

        if not applied:
            # Another reviewer moved the request between our read and the CAS.
            latest = await self._get_request(redemption_id)
            latest_status = RedemptionStatus(latest.status)
            if latest_status == target:
                return TransitionOutcome(request=latest, applied=False)
            raise InvalidTransitionError.for_redemption(latest_status, target)

        await self._session.refresh(request)
        store = get_rewards_store()
        store.record_transition(current.value, target.value)
        if target == RedemptionStatus.APPROVED:
            store.record_stock_movement("decrement", request.quantity)
        elif current == RedemptionStatus.APPROVED and target == RedemptionStatus.REJECTED:
            store.record_stock_movement("increment", request.quantity)
        self._ledger.publish_metrics(entries)
        logger.info(
            "Redemption status transitioned",
            redemption_id=str(request.id),
            from_status=current.value,
            to_status=target.value,
            actor_id=actor_id,
        )
        return TransitionOutcome(request=request, applied=True, event=event, ledger_entries=entries)

    async def list_events(self, redemption_id: UUID) -> list[RedemptionStateEvent]:
        """Return the chronological audit timeline for a request."""

        await self._get_request(redemption_id)
        stmt = (
            select(RedemptionStateEvent)
            .where(RedemptionStateEvent.redemption_id == redemption_id)
            .order_by(RedemptionStateEvent.created_at.asc(), RedemptionStateEvent.id.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars())

    async def _compare_and_set(
        self,
        request: RedemptionRequest,
        current: RedemptionStatus,
        target: RedemptionStatus,
        fulfillment_notes: str | None,
    ) -> bool:
        values: dict[str, object] = {"status": target, "updated_at": datetime.now(timezone.utc)}
        if fulfillment_notes is not None:
            values["fulfillment_notes"] = fulfillment_notes
        stmt = (
            update(RedemptionRequest)
            .where(RedemptionRequest.id == request.id, RedemptionRequest.status == current)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def _apply_side_effects(
        self,
        request: RedemptionRequest,
        current: RedemptionStatus,
        target: RedemptionStatus,
    ) -> list[PointsLedgerEntry]:
        if target == RedemptionStatus.APPROVED:
            reward = await self._catalog.get_active_item(request.reward_id)
            if not reward.is_active:
                raise InactiveRewardError(reward.id)
            await self._catalog.decrement_stock(reward.id, request.quantity)
            return []

        if target == RedemptionStatus.REJECTED:
            if current == RedemptionStatus.APPROVED:
                await self._catalog.increment_stock(request.reward_id, request.quantity)
            refund = await self._ledger.record_entry(
                request.mason_id,
                source_type=PointsSourceType.REDEMPTION,
                points=request.points_debited,
                source_id=str(request.id),
                memo=REFUND_MEMO,
            )
            return [refund]

        return []

    async def _get_request(self, redemption_id: UUID) -> RedemptionRequest:
        stmt = (
            select(RedemptionRequest)
            .where(RedemptionRequest.id == redemption_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        request = result.scalar_one_or_none()
        if request is None:
            raise NotFoundError("Redemption request", redemption_id)
        return request

    @staticmethod
    def _coerce_status(value: RedemptionStatus | str) -> RedemptionStatus:
        if isinstance(value, RedemptionStatus):
            return value
        try:
            return RedemptionStatus.parse(value)
        except ValueError as exc:
            raise RewardsValidationError(f"Unknown redemption status: {value}", field="status") from exc


__all__ = ["REFUND_MEMO", "RedemptionStateMachine", "TransitionOutcome"]
