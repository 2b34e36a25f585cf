"""Append-only points ledger."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from fieldforce_api.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PointsSourceType(str, Enum):
    """Origin of a ledger movement."""

    BAG_LIFT = "bag_lift"
    MEETING = "meeting"
    SCHEME = "scheme"
    BONUS = "bonus"
    REDEMPTION = "redemption"
    ADJUSTMENT = "adjustment"


class PointsLedgerEntry(Base):
    """Immutable signed point movement for a mason."""

    __tablename__ = "points_ledger"
    __table_args__ = (
        CheckConstraint("points <> 0", name="non_zero_points"),
        Index("ix_points_ledger_mason_created", "mason_id", "created_at"),
        Index("ix_points_ledger_source", "source_type", "source_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    mason_id = Column(UUID(as_uuid=True), ForeignKey("masons.id", ondelete="RESTRICT"), nullable=False)
    source_type = Column(
        SqlEnum(
            PointsSourceType,
            name="points_source_type",
            values_callable=lambda enum: [item.value for item in enum],
        ),
        nullable=False,
    )
    source_id = Column(String(64), nullable=True)
    points = Column(Integer, nullable=False)
    memo = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)

    mason = relationship("Mason", back_populates="ledger_entries")
