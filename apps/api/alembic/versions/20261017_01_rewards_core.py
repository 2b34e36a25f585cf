"""Rewards core tables: users, masons, points ledger, catalog, redemptions, bag lifts.

Revision ID: 20261017_01
Revises: 
Create Date: 2026-10-17
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261017_01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid() -> sa.types.TypeEngine:
    return sa.dialects.postgresql.UUID(as_uuid=True)


def upgrade() -> None:
    kyc_status = sa.Enum("none", "pending", "verified", "approved", "rejected", name="mason_kyc_status")
    source_type = sa.Enum(
        "bag_lift", "meeting", "scheme", "bonus", "redemption", "adjustment", name="points_source_type"
    )
    redemption_status = sa.Enum(
        "pending", "approved", "rejected", "shipped", "delivered", name="reward_redemption_status"
    )
    bag_lift_status = sa.Enum("pending", "approved", "rejected", name="bag_lift_status")

    op.create_table(
        "users",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("display_name", sa.String(), nullable=True),
        sa.Column("role", sa.String(length=48), nullable=False, server_default="junior-executive"),
        sa.Column("company_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_company_id", "users", ["company_id"])

    op.create_table(
        "masons",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("dealer_id", sa.String(), nullable=True),
        sa.Column("company_id", sa.Integer(), nullable=True),
        sa.Column("user_id", _uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("kyc_status", kyc_status, nullable=False, server_default="none"),
        sa.Column("points_balance", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_masons_dealer_id", "masons", ["dealer_id"])
    op.create_index("ix_masons_company_id", "masons", ["company_id"])

    op.create_table(
        "points_ledger",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("mason_id", _uuid(), sa.ForeignKey("masons.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("source_type", source_type, nullable=False),
        sa.Column("source_id", sa.String(length=64), nullable=True),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("memo", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("points <> 0", name=op.f("ck_points_ledger_non_zero_points")),
    )
    op.create_index("ix_points_ledger_mason_created", "points_ledger", ["mason_id", "created_at"])
    op.create_index("ix_points_ledger_source", "points_ledger", ["source_type", "source_id"])

    op.create_table(
        "reward_categories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=120), nullable=False, unique=True),
    )

    op.create_table(
        "rewards",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column(
            "category_id",
            sa.Integer(),
            sa.ForeignKey("reward_categories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("point_cost", sa.Integer(), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_available_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("meta", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("point_cost > 0", name=op.f("ck_rewards_positive_point_cost")),
        sa.CheckConstraint("stock >= 0", name=op.f("ck_rewards_non_negative_stock")),
    )
    op.create_index("ix_rewards_name", "rewards", ["name"])

    op.create_table(
        "reward_redemptions",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("mason_id", _uuid(), sa.ForeignKey("masons.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("reward_id", sa.Integer(), sa.ForeignKey("rewards.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("status", redemption_status, nullable=False, server_default="pending"),
        sa.Column("points_debited", sa.Integer(), nullable=False),
        sa.Column("delivery_name", sa.String(), nullable=True),
        sa.Column("delivery_phone", sa.String(length=32), nullable=True),
        sa.Column("delivery_address", sa.Text(), nullable=True),
        sa.Column("fulfillment_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("quantity > 0", name=op.f("ck_reward_redemptions_positive_quantity")),
        sa.CheckConstraint("points_debited > 0", name=op.f("ck_reward_redemptions_positive_points_debited")),
    )
    op.create_index("ix_reward_redemptions_mason_id", "reward_redemptions", ["mason_id"])
    op.create_index("ix_reward_redemptions_status_created", "reward_redemptions", ["status", "created_at"])

    op.create_table(
        "reward_redemption_events",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column(
            "redemption_id",
            _uuid(),
            sa.ForeignKey("reward_redemptions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("from_status", sa.String(length=32), nullable=True),
        sa.Column("to_status", sa.String(length=32), nullable=False),
        sa.Column("actor_id", sa.String(length=64), nullable=True),
        sa.Column("actor_label", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        "ix_reward_redemption_events_redemption_id",
        "reward_redemption_events",
        ["redemption_id"],
    )

    op.create_table(
        "bag_lifts",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("mason_id", _uuid(), sa.ForeignKey("masons.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("dealer_id", sa.String(), nullable=True),
        sa.Column("purchase_date", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("bag_count", sa.Integer(), nullable=False),
        sa.Column("points_credited", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", bag_lift_status, nullable=False, server_default="pending"),
        sa.Column("approved_by", _uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_bag_lifts_mason_id", "bag_lifts", ["mason_id"])


def downgrade() -> None:
    op.drop_index("ix_bag_lifts_mason_id", table_name="bag_lifts")
    op.drop_table("bag_lifts")
    op.drop_index("ix_reward_redemption_events_redemption_id", table_name="reward_redemption_events")
    op.drop_table("reward_redemption_events")
    op.drop_index("ix_reward_redemptions_status_created", table_name="reward_redemptions")
    op.drop_index("ix_reward_redemptions_mason_id", table_name="reward_redemptions")
    op.drop_table("reward_redemptions")
    op.drop_index("ix_rewards_name", table_name="rewards")
    op.drop_table("rewards")
    op.drop_table("reward_categories")
    op.drop_index("ix_points_ledger_source", table_name="points_ledger")
    op.drop_index("ix_points_ledger_mason_created", table_name="points_ledger")
    op.drop_table("points_ledger")
    op.drop_index("ix_masons_company_id", table_name="masons")
    op.drop_index("ix_masons_dealer_id", table_name="masons")
    op.drop_table("masons")
    op.drop_index("ix_users_company_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_name in ("bag_lift_status", "reward_redemption_status", "points_source_type", "mason_kyc_status"):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
