from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from vcards.crud.audit import AuditCRUD
from vcards.db.models import AuditAction, AuditResource, Card
from vcards.services.authorization import PurchaseDecision


async def record_user_event(
    db: AsyncSession,
    *,
    user_id: int | None,
    action: AuditAction,
    subject_id: int,
    details: dict[str, Any] | None = None,
) -> None:
    # user_id is None once the account is gone; subject_id keeps who it was.
    await AuditCRUD.create(
        db,
        user_id=user_id,
        action=action,
        resource=AuditResource.USER,
        details={"user_id": subject_id, **(details or {})},
    )


async def record_card_event(
    db: AsyncSession,
    card: Card,
    action: AuditAction,
    details: dict[str, Any] | None = None,
) -> None:
    """Attribute a card change to the card's owner."""
    await AuditCRUD.create(
        db,
        user_id=card.user_id,
        card_id=card.id,
        action=action,
        resource=AuditResource.CARD,
        details=details,
    )


async def record_purchase(db: AsyncSession, card: Card, amount: Decimal, decision: PurchaseDecision) -> None:
    """Purchases are audited against the card owner, whoever made the request.

    Amounts are stored as strings to keep ``details`` JSON serializable.
    """
    await AuditCRUD.create(
        db,
        user_id=card.user_id,
        card_id=card.id,
        action=AuditAction.PURCHASE_APPROVED if decision.approved else AuditAction.PURCHASE_REJECTED,
        resource=AuditResource.TRANSACTION,
        details={
            "amount": str(amount),
            "reason": decision.reason,
            "transaction_id": decision.transaction.id if decision.transaction else None,
        },
    )
