from decimal import Decimal

from vcards.db.models import Card
from vcards.schemas.card import CardResponse

MASKED_CVV = "***"


def masked_number(last_four_digits: str) -> str:
    return f"**** **** **** {last_four_digits}"


def mask_card(card: Card) -> CardResponse:
    """Project a stored card onto its public form.

    Every handler returning a card goes through here; the raw number and CVV
    stay server-side.
    """
    spending_limit = Decimal(card.spending_limit)
    current_spent = Decimal(card.current_spent or 0)
    return CardResponse(
        id=card.id,
        user_id=card.user_id,
        card_number=masked_number(card.last_four_digits),
        last_four_digits=card.last_four_digits,
        cvv=MASKED_CVV,
        expiry_date=card.expiry_date,
        spending_limit=spending_limit,
        current_spent=current_spent,
        remaining_balance=spending_limit - current_spent,
        merchant_lock=card.merchant_lock,
        name=card.name,
        is_active=card.is_active,
        created_at=card.created_at,
        updated_at=card.updated_at,
    )
