from typing import Any

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from vcards.db.models import AuditAction, AuditResource
from vcards.schemas.common import UTCDateTime


class AuditResponse(BaseModel):
    id: int
    user_id: int | None
    card_id: int | None = None
    action: AuditAction
    resource: AuditResource
    details: dict[str, Any] | None
    created_at: UTCDateTime

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True
