"""Mason (field incentive participant) models."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, Enum as SqlEnum, ForeignKey, Integer, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from fieldforce_api.db.base import Base


class MasonKycStatus(str, Enum):
    """KYC review status mirrored from onboarding."""

    NONE = "none"
    PENDING = "pending"
    VERIFIED = "verified"
    APPROVED = "approved"
    REJECTED = "rejected"


class Mason(Base):
    """Points-earning participant onboarded by the field team.

    ``points_balance`` is a materialized running total of the ledger; it is only
    moved by the ledger service in the same transaction as the entry it reflects.
    """

    __tablename__ = "masons"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String, nullable=False)
    phone_number = Column(String(32), nullable=True)
    dealer_id = Column(String, nullable=True, index=True)
    company_id = Column(Integer, nullable=True, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    kyc_status = Column(
        SqlEnum(MasonKycStatus, name="mason_kyc_status", values_callable=lambda enum: [item.value for item in enum]),
        nullable=False,
        default=MasonKycStatus.NONE,
        server_default=MasonKycStatus.NONE.value,
    )
    points_balance = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    ledger_entries = relationship("PointsLedgerEntry", back_populates="mason")
    redemptions = relationship("RedemptionRequest", back_populates="mason")
    bag_lifts = relationship("BagLift", back_populates="mason")
