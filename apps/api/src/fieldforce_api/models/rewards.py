"""Reward catalog models."""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    func,
)
from sqlalchemy.orm import relationship

from fieldforce_api.db.base import Base


class RewardCategory(Base):
    """Grouping for redeemable catalog items."""

    __tablename__ = "reward_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False, unique=True)

    rewards = relationship("RewardCatalogItem", back_populates="category")


class RewardCatalogItem(Base):
    """Redeemable item priced in points with on-hand stock."""

    __tablename__ = "rewards"
    __table_args__ = (
        CheckConstraint("point_cost > 0", name="positive_point_cost"),
        CheckConstraint("stock >= 0", name="non_negative_stock"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("reward_categories.id", ondelete="SET NULL"), nullable=True)
    point_cost = Column(Integer, nullable=False)
    stock = Column(Integer, nullable=False, default=0, server_default="0")
    total_available_quantity = Column(Integer, nullable=False, default=0, server_default="0")
    is_active = Column(Boolean, nullable=False, default=True, server_default="true")
    meta = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    category = relationship("RewardCategory", back_populates="rewards")
    redemptions = relationship("RedemptionRequest", back_populates="reward")
