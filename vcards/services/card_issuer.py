import secrets
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from vcards.crud.card import CardCRUD
from vcards.db.models import Card
from vcards.core.logging_config import get_logger
from vcards.schemas.common import as_utc

logger = get_logger(__name__)

CARD_NUMBER_LENGTH = 16
MAX_NUMBER_ATTEMPTS = 5

_rng = secrets.SystemRandom()


class CardNumberExhausted(RuntimeError):
    pass


def generate_card_number(prefix: str = "4111") -> str:
    """Fixed network prefix followed by random digits, 16 digits in total.

    Not Luhn-valid; these numbers only ever live inside the simulator.
    """
    digits = "".join(str(_rng.randrange(10)) for _ in range(CARD_NUMBER_LENGTH - len(prefix)))
    return prefix + digits


def generate_cvv() -> str:
    return str(_rng.randint(100, 999))


async def issue_card(
    db: AsyncSession,
    *,
    user_id: int,
    spending_limit: Decimal,
    expiry_date: datetime,
    merchant_lock: str | None = None,
    name: str | None = None,
    prefix: str = "4111",
) -> Card:
    for attempt in range(1, MAX_NUMBER_ATTEMPTS + 1):
        card_number = generate_card_number(prefix)
        if not await CardCRUD.number_exists(db, card_number):
            break
        logger.warning(
            "Card number collision",
            extra={"details": {"event": "card_number_collision", "extra": {"user_id": user_id, "attempt": attempt}}},
        )
    else:
        raise CardNumberExhausted(f"No unused card number after {MAX_NUMBER_ATTEMPTS} attempts")

    return await CardCRUD.create(
        db,
        user_id,
        card_number=card_number,
        last_four_digits=card_number[-4:],
        cvv=generate_cvv(),
        expiry_date=as_utc(expiry_date),
        spending_limit=spending_limit,
        current_spent=Decimal("0.00"),
        merchant_lock=merchant_lock or None,
        name=name,
        is_active=True,
    )
