from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from vcards.core.config import Settings, get_settings
from vcards.core.logging_config import get_logger
from vcards.core.security import decode_token
from vcards.crud.card import CardCRUD
from vcards.crud.user import UserCRUD
from vcards.db.models import Card, User
from vcards.db.session import get_db

logger = get_logger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

CARD_NOT_FOUND = "Card not found"


async def _resolve_user(token: str, db: AsyncSession) -> User:
    payload = decode_token(token)
    try:
        user_id = int(payload["sub"])
    except (TypeError, KeyError, ValueError):
        # Missing or undecodable token, or a subject that is not a user id
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    user = await UserCRUD.get_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    return await _resolve_user(token, db)


async def get_optional_user(
    token: str | None = Depends(optional_oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    if token is None:
        return None
    return await _resolve_user(token, db)


def ensure_card_access(card: Card | None, user: User, settings: Settings) -> Card:
    """Existence check first, ownership second.

    A card owned by someone else answers 403, unless ``conceal_foreign_cards``
    is on, in which case it is indistinguishable from a missing card.
    """
    if card is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CARD_NOT_FOUND)
    if card.user_id != user.id:
        logger.warning(
            "Card access denied",
            extra={
                "details": {
                    "event": "card_access_denied",
                    "extra": {"card_id": card.id, "user_id": user.id, "concealed": settings.conceal_foreign_cards},
                }
            },
        )
        if settings.conceal_foreign_cards:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CARD_NOT_FOUND)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return card


async def get_owned_card(
    card_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> Card:
    card = await CardCRUD.get_by_id(db, card_id)
    return ensure_card_access(card, current_user, settings)
