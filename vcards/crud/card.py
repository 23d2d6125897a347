from decimal import Decimal

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vcards.db.models import Card, Transaction
from vcards.core.logging_config import get_logger

logger = get_logger(__name__)


class CardCRUD:
    @staticmethod
    async def get_by_id(db: AsyncSession, card_id: int) -> Card | None:
        result = await db.execute(select(Card).where(Card.id == card_id))
        card = result.scalar_one_or_none()
        logger.debug(
            "Fetched card by id",
            extra={"details": {"event": "card_lookup_id", "extra": {"card_id": card_id, "found": bool(card)}}},
        )
        return card

    @staticmethod
    async def number_exists(db: AsyncSession, card_number: str) -> bool:
        result = await db.execute(select(Card.id).where(Card.card_number == card_number))
        return result.first() is not None

    @staticmethod
    async def list_by_user(db: AsyncSession, user_id: int) -> list[Card]:
        result = await db.execute(
            select(Card).where(Card.user_id == user_id).order_by(Card.created_at.desc(), Card.id.desc())
        )
        cards = list(result.scalars().all())
        logger.debug(
            "Listed cards for user",
            extra={"details": {"event": "card_list", "extra": {"user_id": user_id, "count": len(cards)}}},
        )
        return cards

    @staticmethod
    async def create(db: AsyncSession, user_id: int, **kwargs) -> Card:
        card = Card(user_id=user_id, **kwargs)
        db.add(card)
        await db.commit()
        await db.refresh(card)
        logger.info(
            "Card created",
            extra={
                "details": {
                    "event": "card_create",
                    "extra": {"card_id": card.id, "user_id": user_id, "last_four": card.last_four_digits},
                }
            },
        )
        return card

    @staticmethod
    async def update(db: AsyncSession, card: Card, **kwargs) -> Card:
        """Apply every given field, ``None`` included; callers pass only the fields to change."""
        for field, value in kwargs.items():
            setattr(card, field, value)
        await db.commit()
        await db.refresh(card)
        logger.info(
            "Card updated",
            extra={
                "details": {
                    "event": "card_update",
                    "extra": {"card_id": card.id, "updated_fields": sorted(kwargs)},
                }
            },
        )
        return card

    @staticmethod
    async def delete(db: AsyncSession, card: Card) -> None:
        card_id, user_id = card.id, card.user_id
        await db.execute(delete(Transaction).where(Transaction.card_id == card_id))
        await db.delete(card)
        await db.commit()
        logger.warning(
            "Card deleted",
            extra={"details": {"event": "card_delete", "extra": {"card_id": card_id, "user_id": user_id}}},
        )

    @staticmethod
    async def charge(db: AsyncSession, card_id: int, amount: Decimal) -> bool:
        """Add ``amount`` to the card's spend only if the result stays within its limit.

        Runs as a single conditional UPDATE so two concurrent purchases cannot both
        pass against the same headroom. Does not commit; returns False when no row
        was updated.
        """
        stmt = (
            update(Card)
            .where(Card.id == card_id, Card.current_spent + amount <= Card.spending_limit)
            .values(current_spent=Card.current_spent + amount)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        charged = result.rowcount == 1
        logger.debug(
            "Conditional spend increment",
            extra={
                "details": {
                    "event": "card_charge",
                    "extra": {"card_id": card_id, "amount": str(amount), "charged": charged},
                }
            },
        )
        return charged
