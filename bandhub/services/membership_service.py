"""Membership mutator.

The only code path that appends, deactivates or re-roles band members. Every
roster write also writes the band row, so the band's version column serializes
concurrent roster changes, and keeps the per-user band index in step inside
the same transaction.
"""

import json
import logging
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy.orm import Session

from bandhub.core.errors import (
    AlreadyMemberError,
    InvalidStateError,
    LastLeaderProtectionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from bandhub.core.id_utils import generate_shortuuid
from bandhub.core.permissions import (
    BandPermission,
    BandRole,
    default_permissions,
    normalize_role,
    require_permission,
    role_outranks,
    serialize_permissions,
)
from bandhub.core.time_utils import utcnow
from bandhub.models.band import Band, BandMember
from bandhub.services.audit_service import log_audit_event, member_snapshot
from bandhub.services.concurrency import optimistic_transaction
from bandhub.services.user_directory import UserIndexStore

logger = logging.getLogger("bandhub.governance")

ROSTER_CONFLICT_DETAIL = "Band roster changed concurrently; reload and retry"


def load_band(db: Session, band_id: str) -> Band:
    band = db.get(Band, band_id)
    if not band:
        raise NotFoundError("Band not found")
    return band


def ensure_band_active(band: Band) -> None:
    if not band.is_active:
        raise InvalidStateError("Band is deactivated")


def parse_role(role: str | BandRole) -> BandRole:
    try:
        return normalize_role(role)
    except ValueError as exc:
        raise ValidationFailedError("role must be one of: leader, admin, member, guest") from exc


def normalize_instruments(instruments: Iterable[str] | None) -> list[str]:
    seen: list[str] = []
    for instrument in instruments or []:
        cleaned = (instrument or "").strip()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen


def count_active_leaders(band: Band) -> int:
    return len(band.active_leaders())


def _touch(band: Band, now: datetime) -> None:
    # Writing the band row bumps its version even when only member rows change.
    band.updated_at = now


def log_roster_event(event: str, *, band: Band, member: BandMember, actor_user_id: str) -> None:
    logger.info(
        json.dumps(
            {
                "event": event,
                "band_id": band.id,
                "user_id": member.user_id,
                "role": member.role,
                "actor_user_id": actor_user_id,
            }
        )
    )


def add_member(
    db: Session,
    band: Band,
    *,
    user_id: str,
    role: str | BandRole,
    instruments: Iterable[str] | None,
    now: datetime,
    index: UserIndexStore | None = None,
) -> BandMember:
    """Append a new active member row and index the band for the user.

    Joins the caller's transaction; the caller commits.
    """
    ensure_band_active(band)
    if band.active_member(user_id) is not None:
        raise AlreadyMemberError()

    member_role = parse_role(role)
    member = BandMember(
        id=generate_shortuuid(),
        user_id=user_id,
        role=member_role.value,
        instruments=normalize_instruments(instruments),
        permissions=serialize_permissions(default_permissions(member_role)),
        joined_at=now,
        is_active=True,
    )
    band.members.append(member)
    _touch(band, now)
    (index or UserIndexStore(db)).add_band(user_id, band.id)
    return member


def remove_member(
    db: Session,
    *,
    band_id: str,
    target_user_id: str,
    remover_user_id: str,
    now: datetime | None = None,
) -> BandMember:
    now = now or utcnow()
    band = load_band(db, band_id)
    ensure_band_active(band)
    require_permission(band, remover_user_id, BandPermission.MANAGE_MEMBERS)

    target = band.active_member(target_user_id)
    if target is None:
        raise NotFoundError("Member not found")
    if target.role == BandRole.LEADER and count_active_leaders(band) == 1:
        raise LastLeaderProtectionError()

    previous = member_snapshot(target)
    is_self_removal = target_user_id == remover_user_id
    with optimistic_transaction(db, conflict_detail=ROSTER_CONFLICT_DETAIL):
        target.is_active = False
        target.removed_at = now
        target.removed_by_user_id = remover_user_id
        _touch(band, now)
        UserIndexStore(db).remove_band(target_user_id, band.id)
        log_audit_event(
            db,
            band_id=band.id,
            actor_user_id=remover_user_id,
            action="band.member.left" if is_self_removal else "band.member.removed",
            target_type="band_member",
            target_id=target.id,
            metadata_json={"previous": previous, "next": member_snapshot(target)},
        )

    log_roster_event(
        "member_left" if is_self_removal else "member_removed",
        band=band,
        member=target,
        actor_user_id=remover_user_id,
    )
    return target


def change_member_role(
    db: Session,
    *,
    band_id: str,
    target_user_id: str,
    actor_user_id: str,
    role: str | BandRole,
    now: datetime | None = None,
) -> BandMember:
    now = now or utcnow()
    band = load_band(db, band_id)
    ensure_band_active(band)
    require_permission(band, actor_user_id, BandPermission.MANAGE_MEMBERS)

    target = band.active_member(target_user_id)
    if target is None:
        raise NotFoundError("Member not found")
    new_role = parse_role(role)

    actor = band.active_member(actor_user_id)
    if actor.role != BandRole.LEADER:
        if not role_outranks(actor.role, target.role) or not role_outranks(actor.role, new_role):
            raise PermissionDeniedError("Only leaders can assign or change roles at or above their own")

    if target.role == new_role:
        return target
    if target.role == BandRole.LEADER and count_active_leaders(band) == 1:
        raise LastLeaderProtectionError()

    previous = member_snapshot(target)
    with optimistic_transaction(db, conflict_detail=ROSTER_CONFLICT_DETAIL):
        target.role = new_role.value
        target.permissions = serialize_permissions(default_permissions(new_role))
        _touch(band, now)
        log_audit_event(
            db,
            band_id=band.id,
            actor_user_id=actor_user_id,
            action="band.member.role_changed",
            target_type="band_member",
            target_id=target.id,
            metadata_json={"previous": previous, "next": member_snapshot(target)},
        )

    log_roster_event("member_role_changed", band=band, member=target, actor_user_id=actor_user_id)
    return target
