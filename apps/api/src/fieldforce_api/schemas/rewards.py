from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from fieldforce_api.models.bag_lift import BagLiftStatus
from fieldforce_api.models.points_ledger import PointsSourceType
from fieldforce_api.models.redemption import RedemptionStatus

# meta: schema: rewards


class RewardCategoryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: int
    name: str


class RewardCatalogItemResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: int
    name: str
    category_id: int | None = Field(None, alias="categoryId")
    point_cost: int = Field(..., alias="pointCost")
    stock: int
    total_available_quantity: int = Field(0, alias="totalAvailableQuantity")
    is_active: bool = Field(..., alias="isActive")
    meta: dict | None = None
    created_at: datetime | None = Field(None, alias="createdAt")
    updated_at: datetime | None = Field(None, alias="updatedAt")


class RedemptionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mason_id: UUID = Field(..., alias="masonId")
    reward_id: int = Field(..., alias="rewardId")
    # Positivity is enforced by RedemptionIntakeService.
    quantity: int
    delivery_name: str | None = Field(None, alias="deliveryName", max_length=255)
    delivery_phone: str | None = Field(None, alias="deliveryPhone", max_length=32)
    delivery_address: str | None = Field(None, alias="deliveryAddress")


class RedemptionStatusUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: Literal["approved", "rejected", "shipped", "delivered"]
    fulfillment_notes: str | None = Field(None, alias="fulfillmentNotes")

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value


class RedemptionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: UUID
    mason_id: UUID = Field(..., alias="masonId")
    reward_id: int = Field(..., alias="rewardId")
    quantity: int
    status: RedemptionStatus
    points_debited: int = Field(..., alias="pointsDebited")
    delivery_name: str | None = Field(None, alias="deliveryName")
    delivery_phone: str | None = Field(None, alias="deliveryPhone")
    delivery_address: str | None = Field(None, alias="deliveryAddress")
    fulfillment_notes: str | None = Field(None, alias="fulfillmentNotes")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")


class RedemptionWindowResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    redemptions: list[RedemptionResponse]
    next_cursor: str | None = Field(None, alias="nextCursor")


class RedemptionEventResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: UUID
    from_status: str | None = Field(None, alias="fromStatus")
    to_status: str = Field(..., alias="toStatus")
    actor_id: str | None = Field(None, alias="actorId")
    actor_label: str | None = Field(None, alias="actorLabel")
    notes: str | None = None
    metadata: dict = Field(
        default_factory=dict,
        alias="metadata",
        validation_alias=AliasChoices("metadata_json", "metadata"),
    )
    created_at: datetime = Field(..., alias="createdAt")


class LedgerEntryCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source_type: Literal["bonus", "adjustment"] = Field(..., alias="sourceType")
    points: int
    memo: str | None = Field(None, max_length=500)


class LedgerEntryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: UUID
    mason_id: UUID = Field(..., alias="masonId")
    source_type: PointsSourceType = Field(..., alias="sourceType")
    source_id: str | None = Field(None, alias="sourceId")
    points: int
    memo: str | None = None
    created_at: datetime = Field(..., alias="createdAt")


class LedgerWindowResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    entries: list[LedgerEntryResponse]
    balance: int | None = None
    next_cursor: str | None = Field(None, alias="nextCursor")


class BalanceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    mason_id: UUID = Field(..., alias="masonId")
    balance: int
    materialized_balance: int = Field(..., alias="materializedBalance")
    pending_points: int = Field(..., alias="pendingPoints")


class BagLiftReview(BaseModel):
    status: Literal["approved", "rejected"]

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value


class BagLiftResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: UUID
    mason_id: UUID = Field(..., alias="masonId")
    dealer_id: str | None = Field(None, alias="dealerId")
    purchase_date: datetime = Field(..., alias="purchaseDate")
    bag_count: int = Field(..., alias="bagCount")
    points_credited: int = Field(..., alias="pointsCredited")
    status: BagLiftStatus
    approved_by: UUID | None = Field(None, alias="approvedBy")
    approved_at: datetime | None = Field(None, alias="approvedAt")
    created_at: datetime = Field(..., alias="createdAt")
