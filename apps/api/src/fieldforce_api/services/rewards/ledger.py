"""Append-only points ledger and balance projection."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Sequence, Tuple
from uuid import UUID, uuid4

from loguru import logger
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fieldforce_api.core.settings import settings
from fieldforce_api.models.mason import Mason
from fieldforce_api.models.points_ledger import PointsLedgerEntry, PointsSourceType
from fieldforce_api.models.redemption import RedemptionRequest, RedemptionStatus
from fieldforce_api.observability.rewards import get_rewards_store

from .errors import InsufficientBalanceError, NotFoundError, RewardsValidationError


# Requests whose points are spent but not yet settled by delivery or refund.
_OPEN_REDEMPTION_STATUSES = (RedemptionStatus.PENDING, RedemptionStatus.APPROVED)


@dataclass(slots=True)
class BalanceSnapshot:
    """Ledger-derived balance alongside the materialized running total."""

    mason_id: UUID
    balance: int
    materialized_balance: int
    pending_points: int

    @property
    def drift(self) -> int:
        return self.materialized_balance - self.balance


def bounded_limit(limit: int | None) -> int:
    """Clamp a requested page size into the configured listing window."""

    if limit is None:
        return settings.rewards_list_default_limit
    return max(1, min(limit, settings.rewards_list_max_limit))


def encode_time_uuid_cursor(timestamp: datetime, identifier: UUID) -> str:
    """Encode pagination cursor for chronological queries."""

    payload = f"{timestamp.isoformat()}|{identifier}".encode("utf-8")
    return base64.urlsafe_b64encode(payload).decode("utf-8")


def decode_time_uuid_cursor(cursor: str) -> Tuple[datetime, UUID]:
    """Decode pagination cursor into datetime and UUID parts."""

    try:
        raw = base64.urlsafe_b64decode(cursor.encode("utf-8")).decode("utf-8")
        timestamp_str, identifier_str = raw.split("|", 1)
        return datetime.fromisoformat(timestamp_str), UUID(identifier_str)
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise RewardsValidationError("Malformed pagination cursor", field="cursor") from exc


def _coerce_source_type(value: PointsSourceType | str) -> PointsSourceType:
    try:
        return PointsSourceType(value)
    except ValueError as exc:
        raise RewardsValidationError(f"Unknown ledger source type: {value}", field="sourceType") from exc


class PointsLedgerService:
    """Owns every write to ``points_ledger`` and the mason's materialized balance.

    Entries are never updated or deleted. ``record_entry`` participates in the
    caller's transaction; ``append_entry`` is the standalone, committing form.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append_entry(
        self,
        mason_id: UUID,
        *,
        source_type: PointsSourceType | str,
        points: int,
        source_id: str | None = None,
        memo: str | None = None,
    ) -> PointsLedgerEntry:
        """Record a ledger entry and commit it together with the balance change."""

        try:
            entry = await self.record_entry(
                mason_id,
                source_type=source_type,
                points=points,
                source_id=source_id,
                memo=memo,
            )
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise
        self.publish_metrics([entry])
        return entry

    async def record_entry(
        self,
        mason_id: UUID,
        *,
        source_type: PointsSourceType | str,
        points: int,
        source_id: str | None = None,
        memo: str | None = None,
        require_funds: bool = False,
    ) -> PointsLedgerEntry:
        """Insert a ledger row and move the materialized balance without committing.

        With ``require_funds`` a debit only applies when the materialized balance
        covers it; the check and the decrement are a single conditional UPDATE.
        """

        if isinstance(points, bool) or not isinstance(points, int) or points == 0:
            raise RewardsValidationError("Ledger entries require a non-zero integer amount", field="points")
        source = _coerce_source_type(source_type)

        stmt = (
            update(Mason)
            .where(Mason.id == mason_id)
            .values(points_balance=Mason.points_balance + points)
            .execution_options(synchronize_session=False)
        )
        if require_funds and points < 0:
            stmt = stmt.where(Mason.points_balance >= -points)
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            materialized = await self.materialized_balance(mason_id)
            if materialized is None:
                raise NotFoundError("Mason", mason_id)
            raise InsufficientBalanceError(balance=materialized, required=-points)

        entry = PointsLedgerEntry(
            id=uuid4(),
            mason_id=mason_id,
            source_type=source,
            source_id=source_id,
            points=points,
            memo=memo,
        )
        self._session.add(entry)
        await self._session.flush()
        logger.info(
            "Recorded points ledger entry",
            mason_id=str(mason_id),
            source_type=source.value,
            source_id=source_id,
            points=points,
        )
        return entry

    def publish_metrics(self, entries: Iterable[PointsLedgerEntry]) -> None:
        """Count committed entries in the rewards telemetry store."""

        store = get_rewards_store()
        for entry in entries:
            store.record_ledger_entry(PointsSourceType(entry.source_type).value, entry.points)

    async def get_balance(self, mason_id: UUID) -> int:
        """Return the mason's balance as the sum of all ledger entries."""

        await self._require_mason(mason_id)
        stmt = select(func.coalesce(func.sum(PointsLedgerEntry.points), 0)).where(
            PointsLedgerEntry.mason_id == mason_id
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def materialized_balance(self, mason_id: UUID) -> int | None:
        stmt = select(Mason.points_balance).where(Mason.id == mason_id)
        result = await self._session.execute(stmt)
        value = result.scalar_one_or_none()
        return int(value) if value is not None else None

    async def snapshot(self, mason_id: UUID) -> BalanceSnapshot:
        """Return ledger, materialized and in-flight redemption totals for a mason."""

        balance = await self.get_balance(mason_id)
        materialized = await self.materialized_balance(mason_id)
        pending_stmt = select(func.coalesce(func.sum(RedemptionRequest.points_debited), 0)).where(
            RedemptionRequest.mason_id == mason_id,
            RedemptionRequest.status.in_(_OPEN_REDEMPTION_STATUSES),
        )
        pending = int((await self._session.execute(pending_stmt)).scalar_one())
        snapshot = BalanceSnapshot(
            mason_id=mason_id,
            balance=balance,
            materialized_balance=materialized or 0,
            pending_points=pending,
        )
        if snapshot.drift:
            logger.warning(
                "Materialized points balance drifted from ledger",
                mason_id=str(mason_id),
                ledger_balance=balance,
                materialized_balance=snapshot.materialized_balance,
            )
        return snapshot

    async def list_entries(
        self,
        *,
        mason_id: UUID | None = None,
        company_id: int | None = None,
        source_types: Sequence[PointsSourceType | str] | None = None,
        limit: int | None = None,
        cursor: Tuple[datetime, UUID] | None = None,
    ) -> tuple[list[PointsLedgerEntry], Tuple[datetime, UUID] | None]:
        """Return a newest-first slice of ledger entries."""

        page_size = bounded_limit(limit)
        stmt = select(PointsLedgerEntry).order_by(
            PointsLedgerEntry.created_at.desc(), PointsLedgerEntry.id.desc()
        )
        if mason_id is not None:
            stmt = stmt.where(PointsLedgerEntry.mason_id == mason_id)
        if company_id is not None:
            stmt = stmt.join(Mason, Mason.id == PointsLedgerEntry.mason_id).where(Mason.company_id == company_id)
        if source_types:
            stmt = stmt.where(
                PointsLedgerEntry.source_type.in_([_coerce_source_type(value) for value in source_types])
            )
        if cursor:
            cursor_time, cursor_id = cursor
            stmt = stmt.where(
                or_(
                    PointsLedgerEntry.created_at < cursor_time,
                    and_(
                        PointsLedgerEntry.created_at == cursor_time,
                        PointsLedgerEntry.id < cursor_id,
                    ),
                )
            )

        stmt = stmt.limit(page_size + 1)
        result = await self._session.execute(stmt)
        rows = list(result.scalars().all())
        entries = rows[:page_size]
        next_cursor: Tuple[datetime, UUID] | None = None
        if len(rows) > page_size and entries:
            tail = entries[-1]
            next_cursor = (tail.created_at, tail.id)
        return entries, next_cursor

    async def _require_mason(self, mason_id: UUID) -> None:
        result = await self._session.execute(select(Mason.id).where(Mason.id == mason_id))
        if result.scalar_one_or_none() is None:
            raise NotFoundError("Mason", mason_id)


__all__ = [
    "BalanceSnapshot",
    "PointsLedgerService",
    "bounded_limit",
    "decode_time_uuid_cursor",
    "encode_time_uuid_cursor",
]
