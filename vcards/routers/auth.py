from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from vcards.crud.user import UserCRUD
from vcards.core.security import verify_password, create_access_token
from vcards.db.models import AuditAction
from vcards.db.session import get_db
from vcards.schemas.auth import Token
from vcards.schemas.user import UserCreate, UserResponse
from vcards.services.audit import record_user_event
from vcards.core.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: AsyncSession = Depends(get_db)):
    user = await UserCRUD.get_by_email(db, email=form_data.username)
    if not user or not verify_password(form_data.password, user.password):
        logger.warning("Login failed", extra={"details": {"event": "auth_login_failed"}})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = create_access_token({"sub": str(user.id)})
    logger.info("Login successful", extra={"details": {"event": "auth_login", "extra": {"user_id": user.id}}})
    return Token(access_token=token)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: UserCreate, db: AsyncSession = Depends(get_db)):
    if await UserCRUD.get_by_email(db, email=payload.email):
        logger.warning("User registration rejected", extra={"details": {"event": "auth_register_rejected"}})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
    user = await UserCRUD.create(db, name=payload.name, email=payload.email, password=payload.password)
    await record_user_event(db, user_id=user.id, action=AuditAction.CREATE, subject_id=user.id)
    logger.info("User registered", extra={"details": {"event": "auth_register", "extra": {"user_id": user.id}}})
    return user
