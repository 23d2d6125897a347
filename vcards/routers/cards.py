from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vcards.core.config import Settings, get_settings
from vcards.core.dependencies import get_current_user, get_owned_card
from vcards.crud.card import CardCRUD
from vcards.crud.transaction import TransactionCRUD
from vcards.db.models import AuditAction, Card, User
from vcards.db.session import get_db
from vcards.schemas.card import CardCreate, CardDeleteResponse, CardDetailResponse, CardResponse, CardUpdate
from vcards.schemas.transaction import TransactionResponse
from vcards.services.audit import record_card_event
from vcards.services.card_issuer import issue_card
from vcards.services.masking import mask_card

router = APIRouter(prefix="/cards", tags=["cards"])

# Columns that cannot be cleared; an explicit null for them is ignored.
NON_NULLABLE_UPDATES = ("is_active", "spending_limit")


@router.get("", response_model=list[CardResponse])
async def list_cards(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    cards = await CardCRUD.list_by_user(db, current_user.id)
    return [mask_card(card) for card in cards]


@router.post("", response_model=CardResponse, status_code=status.HTTP_201_CREATED)
async def create_card(
    payload: CardCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    card = await issue_card(
        db,
        user_id=current_user.id,
        spending_limit=payload.spending_limit,
        expiry_date=payload.expiry_date,
        merchant_lock=payload.merchant_lock,
        name=payload.name,
        prefix=settings.card_number_prefix,
    )
    await record_card_event(db, card, AuditAction.CREATE, {"spending_limit": str(card.spending_limit)})
    return mask_card(card)


@router.get("/{card_id}", response_model=CardDetailResponse)
async def get_card(
    card: Card = Depends(get_owned_card),
    db: AsyncSession = Depends(get_db),
):
    transactions = await TransactionCRUD.list_for_card(db, card.id)
    return CardDetailResponse(
        card=mask_card(card),
        transactions=[TransactionResponse.model_validate(tx) for tx in transactions],
    )


@router.patch("/{card_id}", response_model=CardResponse)
async def update_card(
    payload: CardUpdate,
    card: Card = Depends(get_owned_card),
    db: AsyncSession = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    for field in NON_NULLABLE_UPDATES:
        if field in changes and changes[field] is None:
            changes.pop(field)
    if "merchant_lock" in changes:
        changes["merchant_lock"] = changes["merchant_lock"] or None

    updated = await CardCRUD.update(db, card, **changes) if changes else card
    await record_card_event(db, updated, AuditAction.UPDATE, {"fields": sorted(changes)})
    return mask_card(updated)


@router.delete("/{card_id}", response_model=CardDeleteResponse)
async def delete_card(
    card: Card = Depends(get_owned_card),
    db: AsyncSession = Depends(get_db),
):
    await CardCRUD.delete(db, card)
    await record_card_event(db, card, AuditAction.DELETE)
    return CardDeleteResponse(message="Card deleted successfully")
