from decimal import Decimal

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from vcards.schemas.common import UTCDateTime
from vcards.schemas.transaction import TransactionResponse

MONEY = Decimal("0.01")


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class CardCreate(CamelModel):
    spending_limit: Decimal = Field(
        ..., gt=0, max_digits=12, decimal_places=2, description="Maximum total spend allowed on the card"
    )
    expiry_date: UTCDateTime = Field(..., description="ISO 8601 date/time after which purchases are refused")
    merchant_lock: str | None = Field(default=None, max_length=255)
    name: str | None = Field(default=None, max_length=100)

    class Config:
        extra = "forbid"

    @field_validator("spending_limit")
    @classmethod
    def quantize_limit(cls, v: Decimal) -> Decimal:
        return v.quantize(MONEY)


class CardUpdate(CamelModel):
    is_active: bool | None = None
    spending_limit: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    merchant_lock: str | None = Field(default=None, max_length=255)

    class Config:
        extra = "forbid"

    @field_validator("spending_limit")
    @classmethod
    def quantize_limit(cls, v: Decimal | None) -> Decimal | None:
        return v.quantize(MONEY) if v is not None else v


class CardResponse(CamelModel):
    """Public view of a card. Only ever built through ``mask_card``."""

    id: int
    user_id: int
    card_number: str
    last_four_digits: str
    cvv: str
    expiry_date: UTCDateTime
    spending_limit: Decimal
    current_spent: Decimal
    remaining_balance: Decimal
    merchant_lock: str | None = None
    name: str | None = None
    is_active: bool
    created_at: UTCDateTime
    updated_at: UTCDateTime


class CardDetailResponse(CamelModel):
    card: CardResponse
    transactions: list[TransactionResponse]


class CardDeleteResponse(BaseModel):
    message: str
