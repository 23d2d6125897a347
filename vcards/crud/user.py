from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from vcards.db.models import Card, Transaction, User
from vcards.core.security import get_password_hash
from vcards.core.logging_config import get_logger

logger = get_logger(__name__)


class UserCRUD:
    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: int) -> User | None:
        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        logger.debug(
            "Fetched user by id",
            extra={"details": {"event": "user_lookup_id", "extra": {"user_id": user_id, "found": bool(user)}}},
        )
        return user

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        result = await db.execute(select(User).where(User.email == email.lower()))
        user = result.scalar_one_or_none()
        logger.debug(
            "Fetched user by email",
            extra={"details": {"event": "user_lookup_email", "extra": {"found": bool(user)}}},
        )
        return user

    @staticmethod
    async def create(db: AsyncSession, *, name: str, email: str, password: str) -> User:
        user = User(name=name, email=email, password=get_password_hash(password))
        db.add(user)
        await db.commit()
        await db.refresh(user)
        logger.info(
            "User created",
            extra={"details": {"event": "user_create", "extra": {"user_id": user.id}}},
        )
        return user

    @staticmethod
    async def update(db: AsyncSession, user: User, **kwargs) -> User:
        if kwargs.get("password"):
            kwargs["password"] = get_password_hash(kwargs["password"])
        fields = [field for field, value in kwargs.items() if value is not None]
        for field in fields:
            setattr(user, field, kwargs[field])
        await db.commit()
        await db.refresh(user)
        logger.info(
            "User updated",
            extra={"details": {"event": "user_update", "extra": {"user_id": user.id, "fields": fields}}},
        )
        return user

    @staticmethod
    async def delete(db: AsyncSession, user: User) -> None:
        user_id = user.id
        card_ids = select(Card.id).where(Card.user_id == user_id)
        await db.execute(delete(Transaction).where(Transaction.card_id.in_(card_ids)))
        await db.execute(delete(Card).where(Card.user_id == user_id))
        await db.delete(user)
        await db.commit()
        logger.warning(
            "User deleted",
            extra={"details": {"event": "user_delete", "extra": {"user_id": user_id}}},
        )
