from decimal import Decimal
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from vcards.schemas.common import UTCDateTime


class TransactionRange(str, Enum):
    ALL = "all"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


class PurchaseRequest(BaseModel):
    card_id: int
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2, description="Purchase amount (must be > 0)")
    merchant_name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=500)

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "forbid"

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        # Normalise to cents; precision is bounded by the field constraints
        return v.quantize(Decimal("0.01"))

    @field_validator("merchant_name")
    @classmethod
    def validate_merchant(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Merchant name is required")
        return v


class TransactionResponse(BaseModel):
    id: int
    card_id: int
    amount: Decimal
    merchant_name: str
    status: Literal["success", "failed"]
    description: str | None = None
    failure_reason: str | None = None
    created_at: UTCDateTime

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class TransactionListItem(TransactionResponse):
    card_last_four_digits: str


class PurchaseResponse(BaseModel):
    status: Literal["success", "failed"]
    reason: str | None = None
    transaction: TransactionResponse | None = None
    remaining_balance: Decimal | None = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class TransactionSummary(BaseModel):
    total: int
    successful: int
    failed: int
    total_amount: Decimal

    class Config:
        alias_generator = to_camel
        populate_by_name = True
