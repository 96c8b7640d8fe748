from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bandhub.core.api_docs import error_responses
from bandhub.core.deps import get_db
from bandhub.core.security_current import get_current_user
from bandhub.models.user import User
from bandhub.schemas.audit import BandAuditLogListOut, BandAuditLogOut
from bandhub.schemas.common import PaginationMeta
from bandhub.services.audit_service import list_band_audit_logs

router = APIRouter(prefix="/bands", tags=["audit"])


@router.get(
    "/{band_id}/audit-logs",
    response_model=BandAuditLogListOut,
    summary="List band audit logs",
    responses={**error_responses(401, 403, 404, 422, 500)},
)
def list_audit_logs(
    band_id: str,
    action: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    rows, total = list_band_audit_logs(
        db,
        band_id=band_id,
        actor_user_id=actor.id,
        action=action,
        limit=limit,
        offset=offset,
    )
    items = [
        BandAuditLogOut(
            id=row.id,
            band_id=row.band_id,
            actor_user_id=row.actor_user_id,
            action=row.action,
            target_type=row.target_type,
            target_id=row.target_id,
            metadata_json=row.metadata_json,
            created_at=row.created_at,
        )
        for row in rows
    ]
    count = len(items)
    return BandAuditLogListOut(
        items=items,
        pagination=PaginationMeta(
            total=total,
            limit=limit,
            offset=offset,
            count=count,
            has_next=(offset + count) < total,
        ),
    )
