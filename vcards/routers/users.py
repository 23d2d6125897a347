from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from vcards.core.dependencies import get_current_user
from vcards.crud.user import UserCRUD
from vcards.db.models import AuditAction, User
from vcards.db.session import get_db
from vcards.schemas.user import UserResponse, UserUpdate
from vcards.services.audit import record_user_event
from vcards.core.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_profile(current_user: User = Depends(get_current_user)):
    return current_user


@router.patch("/me", response_model=UserResponse)
async def update_profile(
    payload: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("email") and changes["email"].lower() != current_user.email:
        if await UserCRUD.get_by_email(db, email=changes["email"]):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
    user = await UserCRUD.update(db, current_user, **changes)
    await record_user_event(
        db,
        user_id=user.id,
        action=AuditAction.UPDATE,
        subject_id=user.id,
        details={"fields": sorted(field for field in changes if field != "password")},
    )
    return user


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_profile(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user_id = current_user.id
    await UserCRUD.delete(db, current_user)
    await record_user_event(db, user_id=None, action=AuditAction.DELETE, subject_id=user_id)
    logger.warning(
        "User profile deleted",
        extra={"details": {"event": "user_profile_delete", "extra": {"user_id": user_id}}},
    )
    return None
