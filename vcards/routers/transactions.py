from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from vcards.core.config import Settings, get_settings
from vcards.core.dependencies import ensure_card_access, get_current_user, get_optional_user, CARD_NOT_FOUND
from vcards.crud.card import CardCRUD
from vcards.crud.transaction import TransactionCRUD
from vcards.db.models import TransactionStatus, User
from vcards.db.session import get_db
from vcards.schemas.transaction import (
    PurchaseRequest,
    PurchaseResponse,
    TransactionListItem,
    TransactionRange,
    TransactionResponse,
    TransactionSummary,
)
from vcards.services.audit import record_purchase
from vcards.services.authorization import authorize_purchase
from vcards.services.history import range_start

router = APIRouter(prefix="/transactions", tags=["transactions"])


class HistoryFilters:
    def __init__(
        self,
        card_id: int | None = Query(None, alias="cardId"),
        status: TransactionStatus | None = Query(None),
        period: TransactionRange = Query(TransactionRange.ALL, alias="range"),
    ):
        self.card_id = card_id
        self.status = status.value if status else None
        self.since = range_start(period)


@router.get("", response_model=list[TransactionListItem])
async def list_transactions(
    filters: HistoryFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rows = await TransactionCRUD.list_by_user(
        db, current_user.id, card_id=filters.card_id, status=filters.status, since=filters.since
    )
    return [
        TransactionListItem(
            **TransactionResponse.model_validate(transaction).model_dump(),
            card_last_four_digits=last_four,
        )
        for transaction, last_four in rows
    ]


@router.get("/summary", response_model=TransactionSummary)
async def summarize_transactions(
    filters: HistoryFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    summary = await TransactionCRUD.summarize(
        db, current_user.id, card_id=filters.card_id, status=filters.status, since=filters.since
    )
    return TransactionSummary(**summary)


@router.post("", response_model=PurchaseResponse, responses={400: {"model": PurchaseResponse}})
async def create_transaction(
    payload: PurchaseRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
    settings: Settings = Depends(get_settings),
):
    if settings.require_auth_for_purchases and current_user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    card = await CardCRUD.get_by_id(db, payload.card_id)
    if settings.require_auth_for_purchases:
        card = ensure_card_access(card, current_user, settings)
    elif card is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CARD_NOT_FOUND)

    decision = await authorize_purchase(
        db,
        card,
        amount=payload.amount,
        merchant_name=payload.merchant_name,
        description=payload.description,
        record_all_attempts=settings.record_all_attempts,
    )
    await record_purchase(db, card, payload.amount, decision)

    response = PurchaseResponse(
        status=TransactionStatus.SUCCESS.value if decision.approved else TransactionStatus.FAILED.value,
        reason=decision.reason,
        transaction=TransactionResponse.model_validate(decision.transaction) if decision.transaction else None,
        remaining_balance=decision.remaining_balance,
    )
    if not decision.approved:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=response.model_dump(mode="json", by_alias=True),
        )
    return response
