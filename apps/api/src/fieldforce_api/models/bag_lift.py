"""Bag-lift purchase records that accrue points once approved."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, Enum as SqlEnum, ForeignKey, Integer, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from fieldforce_api.db.base import Base


class BagLiftStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class BagLift(Base):
    __tablename__ = "bag_lifts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    mason_id = Column(UUID(as_uuid=True), ForeignKey("masons.id", ondelete="RESTRICT"), nullable=False, index=True)
    dealer_id = Column(String, nullable=True)
    purchase_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    bag_count = Column(Integer, nullable=False)
    points_credited = Column(Integer, nullable=False, default=0, server_default="0")
    status = Column(
        SqlEnum(
            BagLiftStatus,
            name="bag_lift_status",
            values_callable=lambda enum: [item.value for item in enum],
        ),
        nullable=False,
        default=BagLiftStatus.PENDING,
        server_default=BagLiftStatus.PENDING.value,
    )
    approved_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    mason = relationship("Mason", back_populates="bag_lifts")
    approver = relationship("User")
