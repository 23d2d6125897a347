from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vcards.db.models import Audit, AuditAction, AuditResource
from vcards.core.logging_config import get_logger

logger = get_logger(__name__)


class AuditCRUD:
    @staticmethod
    async def list_for_user(
        db: AsyncSession,
        user_id: int,
        *,
        card_id: int | None = None,
        resource: AuditResource | None = None,
        limit: int | None = None,
    ) -> list[Audit]:
        """Entries recorded against ``user_id``, newest first."""
        stmt = select(Audit).where(Audit.user_id == user_id)
        if card_id is not None:
            stmt = stmt.where(Audit.card_id == card_id)
        if resource is not None:
            stmt = stmt.where(Audit.resource == resource.value)
        stmt = stmt.order_by(Audit.created_at.desc(), Audit.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await db.execute(stmt)
        entries = list(result.scalars().all())
        logger.debug(
            "Audit entries listed",
            extra={
                "details": {
                    "event": "audit_list",
                    "extra": {
                        "user_id": user_id,
                        "card_id": card_id,
                        "resource": resource.value if resource else None,
                        "count": len(entries),
                    },
                }
            },
        )
        return entries

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        user_id: int | None,
        action: AuditAction,
        resource: AuditResource,
        card_id: int | None = None,
        details: dict | None = None,
    ) -> Audit:
        entry = Audit(
            user_id=user_id,
            card_id=card_id,
            action=action.value,
            resource=resource.value,
            details=details,
        )
        db.add(entry)
        await db.commit()
        await db.refresh(entry)
        logger.info(
            "Audit entry stored",
            extra={
                "details": {
                    "event": "audit_create",
                    "extra": {
                        "audit_id": entry.id,
                        "user_id": user_id,
                        "card_id": card_id,
                        "action": action.value,
                        "resource": resource.value,
                    },
                }
            },
        )
        return entry
