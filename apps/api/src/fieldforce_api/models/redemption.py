"""Reward redemption requests and their transition audit log."""

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
    JSON,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from fieldforce_api.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RedemptionStatus(str, Enum):
    """Lifecycle of a redemption request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SHIPPED = "shipped"
    DELIVERED = "delivered"

    @classmethod
    def parse(cls, value: str) -> "RedemptionStatus":
        """Parse a status string, accepting ``placed`` as an alias of ``pending``."""

        normalized = value.strip().lower()
        if normalized == "placed":
            return cls.PENDING
        return cls(normalized)


class RedemptionRequest(Base):
    """A mason's request to exchange points for catalog stock."""

    __tablename__ = "reward_redemptions"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="positive_quantity"),
        CheckConstraint("points_debited > 0", name="positive_points_debited"),
        Index("ix_reward_redemptions_status_created", "status", "created_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    mason_id = Column(UUID(as_uuid=True), ForeignKey("masons.id", ondelete="RESTRICT"), nullable=False, index=True)
    reward_id = Column(Integer, ForeignKey("rewards.id", ondelete="RESTRICT"), nullable=False)
    quantity = Column(Integer, nullable=False)
    status = Column(
        SqlEnum(
            RedemptionStatus,
            name="reward_redemption_status",
            values_callable=lambda enum: [item.value for item in enum],
        ),
        nullable=False,
        default=RedemptionStatus.PENDING,
        server_default=RedemptionStatus.PENDING.value,
    )
    points_debited = Column(Integer, nullable=False)
    delivery_name = Column(String, nullable=True)
    delivery_phone = Column(String(32), nullable=True)
    delivery_address = Column(Text, nullable=True)
    fulfillment_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    mason = relationship("Mason", back_populates="redemptions")
    reward = relationship("RewardCatalogItem", back_populates="redemptions")
    events = relationship(
        "RedemptionStateEvent",
        back_populates="redemption",
        order_by="RedemptionStateEvent.created_at",
    )


class RedemptionStateEvent(Base):
    """Audit entry written for every applied redemption transition."""

    __tablename__ = "reward_redemption_events"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    redemption_id = Column(
        UUID(as_uuid=True),
        ForeignKey("reward_redemptions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    from_status = Column(String(32), nullable=True)
    to_status = Column(String(32), nullable=False)
    actor_id = Column(String(64), nullable=True)
    actor_label = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    metadata_json = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False)

    redemption = relationship("RedemptionRequest", back_populates="events")
