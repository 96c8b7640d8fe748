from datetime import datetime
from typing import Any

from pydantic import BaseModel

from bandhub.schemas.common import PaginationMeta


class BandAuditLogOut(BaseModel):
    id: str
    band_id: str
    actor_user_id: str
    action: str
    target_type: str
    target_id: str | None = None
    metadata_json: dict[str, Any] | None = None
    created_at: datetime


class BandAuditLogListOut(BaseModel):
    items: list[BandAuditLogOut]
    pagination: PaginationMeta
