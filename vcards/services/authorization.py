"""Purchase authorization against a card's stored limits.

Rules are checked in order and the first failure decides the outcome:

1. the card must be active
2. the card must not be expired
3. spend plus amount must stay within the spending limit
4. the merchant name must contain the merchant lock, if one is set

Limit and merchant failures always leave a ``failed`` transaction behind.
Inactive and expired cards only do so when ``record_all_attempts`` is set.
Card existence and ownership are checked by the caller.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from vcards.crud.card import CardCRUD
from vcards.crud.transaction import TransactionCRUD
from vcards.db.models import Card, Transaction, TransactionStatus
from vcards.core.logging_config import get_logger
from vcards.schemas.common import as_utc

logger = get_logger(__name__)

CARD_INACTIVE = "card inactive"
CARD_EXPIRED = "card expired"
EXCEEDS_LIMIT = "exceeds spending limit"
MERCHANT_NOT_ALLOWED = "merchant not allowed"


@dataclass
class PurchaseDecision:
    approved: bool
    reason: str | None = None
    transaction: Transaction | None = None
    remaining_balance: Decimal | None = None


def merchant_allowed(merchant_lock: str | None, merchant_name: str) -> bool:
    if not merchant_lock:
        return True
    return merchant_lock.lower() in merchant_name.lower()


async def _reject(
    db: AsyncSession,
    card: Card,
    reason: str,
    *,
    amount: Decimal,
    merchant_name: str,
    description: str | None,
    record: bool,
) -> PurchaseDecision:
    transaction = None
    if record:
        transaction = await TransactionCRUD.create(
            db,
            card_id=card.id,
            amount=amount,
            merchant_name=merchant_name,
            status=TransactionStatus.FAILED,
            description=description,
            failure_reason=reason,
        )
    logger.warning(
        "Purchase rejected",
        extra={
            "details": {
                "event": "purchase_rejected",
                "extra": {
                    "card_id": card.id,
                    "amount": str(amount),
                    "reason": reason,
                    "recorded": transaction is not None,
                },
            }
        },
    )
    return PurchaseDecision(approved=False, reason=reason, transaction=transaction)


async def authorize_purchase(
    db: AsyncSession,
    card: Card,
    *,
    amount: Decimal,
    merchant_name: str,
    description: str | None = None,
    record_all_attempts: bool = False,
    now: datetime | None = None,
) -> PurchaseDecision:
    now = as_utc(now) if now else datetime.now(timezone.utc)
    attempt = {"amount": amount, "merchant_name": merchant_name, "description": description}

    if not card.is_active:
        return await _reject(db, card, CARD_INACTIVE, record=record_all_attempts, **attempt)

    if now > as_utc(card.expiry_date):
        return await _reject(db, card, CARD_EXPIRED, record=record_all_attempts, **attempt)

    if Decimal(card.current_spent) + amount > Decimal(card.spending_limit):
        return await _reject(db, card, EXCEEDS_LIMIT, record=True, **attempt)

    if not merchant_allowed(card.merchant_lock, merchant_name):
        return await _reject(db, card, MERCHANT_NOT_ALLOWED, record=True, **attempt)

    # The snapshot above may be stale; the conditional increment is authoritative.
    if not await CardCRUD.charge(db, card.id, amount):
        return await _reject(db, card, EXCEEDS_LIMIT, record=True, **attempt)

    transaction = await TransactionCRUD.create(
        db,
        card_id=card.id,
        amount=amount,
        merchant_name=merchant_name,
        status=TransactionStatus.SUCCESS,
        description=description,
    )
    await db.refresh(card)
    remaining = Decimal(card.spending_limit) - Decimal(card.current_spent)
    logger.info(
        "Purchase approved",
        extra={
            "details": {
                "event": "purchase_approved",
                "extra": {
                    "card_id": card.id,
                    "transaction_id": transaction.id,
                    "amount": str(amount),
                    "remaining_balance": str(remaining),
                },
            }
        },
    )
    return PurchaseDecision(approved=True, transaction=transaction, remaining_balance=remaining)
