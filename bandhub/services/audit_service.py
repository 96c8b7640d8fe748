import uuid
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from bandhub.core.errors import NotFoundError
from bandhub.core.permissions import BandPermission, require_permission
from bandhub.models.audit_log import BandAuditLog
from bandhub.models.band import Band, BandMember


def log_audit_event(
    db: Session,
    *,
    band_id: str,
    actor_user_id: str,
    action: str,
    target_type: str,
    target_id: str | None = None,
    metadata_json: dict[str, Any] | None = None,
) -> BandAuditLog:
    event = BandAuditLog(
        id=str(uuid.uuid4()),
        band_id=band_id,
        actor_user_id=actor_user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        metadata_json=metadata_json,
    )
    db.add(event)
    return event


def member_snapshot(member: BandMember) -> dict[str, Any]:
    return {
        "user_id": member.user_id,
        "role": member.role,
        "instruments": list(member.instruments or []),
        "permissions": list(member.permissions or []),
        "is_active": member.is_active,
    }


def list_band_audit_logs(
    db: Session,
    *,
    band_id: str,
    actor_user_id: str,
    action: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[BandAuditLog], int]:
    band = db.get(Band, band_id)
    if not band:
        raise NotFoundError("Band not found")
    require_permission(band, actor_user_id, BandPermission.VIEW_ANALYTICS)

    count_stmt = select(func.count(BandAuditLog.id)).where(BandAuditLog.band_id == band.id)
    data_stmt = select(BandAuditLog).where(BandAuditLog.band_id == band.id)
    if action:
        count_stmt = count_stmt.where(BandAuditLog.action == action)
        data_stmt = data_stmt.where(BandAuditLog.action == action)

    total = int(db.execute(count_stmt).scalar_one())
    rows = db.execute(
        data_stmt.order_by(BandAuditLog.created_at.desc()).offset(offset).limit(limit)
    ).scalars().all()
    return list(rows), total
