from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from vcards.core.dependencies import get_current_user
from vcards.crud.audit import AuditCRUD
from vcards.db.models import AuditResource, User
from vcards.db.session import get_db
from vcards.schemas.audit import AuditResponse

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("", response_model=list[AuditResponse])
async def list_audit_logs(
    card_id: int | None = Query(None, alias="cardId"),
    resource: AuditResource | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    # Entries are scoped to the caller, so a deleted card's history stays visible to its owner only.
    return await AuditCRUD.list_for_user(db, current_user.id, card_id=card_id, resource=resource, limit=limit)
