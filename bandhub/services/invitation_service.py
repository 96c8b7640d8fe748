"""Invitation workflow: pending -> accepted | declined | expired.

Expiry is lazy. Reads report a lapsed pending invitation as expired through
``BandInvitation.effective_status``; the first workflow that touches it writes
the expired status and drops it from the invitee's pending index.
"""

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from bandhub.core.errors import (
    AlreadyMemberError,
    DuplicateInvitationError,
    InvalidOrExpiredError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from bandhub.core.id_utils import generate_shortuuid
from bandhub.core.permissions import BandPermission, require_permission
from bandhub.core.time_utils import utcnow
from bandhub.models.band_invitation import INVITATION_TTL, BandInvitation, InvitationStatus
from bandhub.services.audit_service import log_audit_event
from bandhub.services.concurrency import optimistic_transaction
from bandhub.services.membership_service import (
    add_member,
    ensure_band_active,
    load_band,
    log_roster_event,
    normalize_instruments,
    parse_role,
)
from bandhub.services.user_directory import UserIndexStore, resolve_user

INVITATION_CONFLICT_DETAIL = "Invitation was already resolved by another request"


def _load_invitation(db: Session, invitation_id: str) -> BandInvitation:
    invitation = db.get(BandInvitation, invitation_id)
    if not invitation:
        raise NotFoundError("Invitation not found")
    return invitation


def _mark_expired(db: Session, invitation: BandInvitation, now: datetime) -> None:
    invitation.status = InvitationStatus.EXPIRED.value
    invitation.updated_at = now
    UserIndexStore(db).remove_pending_invitation(invitation.invited_user_id, invitation.id)


def _ensure_open(db: Session, invitation: BandInvitation, now: datetime) -> None:
    if invitation.status == InvitationStatus.PENDING and invitation.is_expired(now):
        with optimistic_transaction(db, conflict_detail=INVITATION_CONFLICT_DETAIL):
            _mark_expired(db, invitation, now)
        raise InvalidOrExpiredError("Invitation has expired")
    if invitation.status != InvitationStatus.PENDING:
        raise InvalidOrExpiredError(f"Invitation is already {invitation.status}")


def _load_for_invitee(db: Session, invitation_id: str, actor_user_id: str, now: datetime) -> BandInvitation:
    invitation = _load_invitation(db, invitation_id)
    if invitation.invited_user_id != actor_user_id:
        raise PermissionDeniedError("Only the invited user can respond to this invitation")
    _ensure_open(db, invitation, now)
    return invitation


def _pending_invitations_for_pair(db: Session, band_id: str, user_id: str) -> list[BandInvitation]:
    return list(
        db.execute(
            select(BandInvitation)
            .where(
                BandInvitation.band_id == band_id,
                BandInvitation.invited_user_id == user_id,
                BandInvitation.status == InvitationStatus.PENDING.value,
            )
            .order_by(BandInvitation.created_at.asc())
        ).scalars()
    )


def send_invitation(
    db: Session,
    *,
    band_id: str,
    inviter_user_id: str,
    invited_user_id: str,
    role: str = "member",
    instruments: Iterable[str] | None = None,
    message: str | None = None,
    now: datetime | None = None,
) -> BandInvitation:
    now = now or utcnow()
    band = load_band(db, band_id)
    ensure_band_active(band)
    require_permission(band, inviter_user_id, BandPermission.MANAGE_MEMBERS)
    if band.active_member(invited_user_id) is not None:
        raise AlreadyMemberError()

    lapsed: list[BandInvitation] = []
    for existing in _pending_invitations_for_pair(db, band.id, invited_user_id):
        if existing.is_expired(now):
            lapsed.append(existing)
            continue
        raise DuplicateInvitationError(existing_invitation_id=existing.id)

    invitee = resolve_user(db, invited_user_id)
    invitation_role = parse_role(role)

    with optimistic_transaction(db, conflict_detail=INVITATION_CONFLICT_DETAIL):
        for existing in lapsed:
            _mark_expired(db, existing, now)
        invitation = BandInvitation(
            id=generate_shortuuid(),
            band_id=band.id,
            band_name=band.name,
            invited_user_id=invitee.user_id,
            invited_user_name=invitee.display_name,
            invited_by_user_id=inviter_user_id,
            role=invitation_role.value,
            instruments=normalize_instruments(instruments),
            message=(message or "").strip() or None,
            status=InvitationStatus.PENDING.value,
            expires_at=now + INVITATION_TTL,
            created_at=now,
            updated_at=now,
        )
        db.add(invitation)
        UserIndexStore(db).add_pending_invitation(invitee.user_id, invitation.id)
        log_audit_event(
            db,
            band_id=band.id,
            actor_user_id=inviter_user_id,
            action="band.invitation.sent",
            target_type="band_invitation",
            target_id=invitation.id,
            metadata_json={
                "invited_user_id": invitee.user_id,
                "role": invitation.role,
                "expires_at": invitation.expires_at.isoformat(),
            },
        )
    return invitation


def accept_invitation(
    db: Session,
    invitation_id: str,
    *,
    actor_user_id: str,
    now: datetime | None = None,
) -> BandInvitation:
    now = now or utcnow()
    invitation = _load_for_invitee(db, invitation_id, actor_user_id, now)
    band = load_band(db, invitation.band_id)

    with optimistic_transaction(db, conflict_detail=INVITATION_CONFLICT_DETAIL):
        invitation.status = InvitationStatus.ACCEPTED.value
        invitation.responded_at = now
        invitation.updated_at = now
        # The invitation's version check runs here, before any roster write.
        db.flush()

        index = UserIndexStore(db)
        member = add_member(
            db,
            band,
            user_id=invitation.invited_user_id,
            role=invitation.role,
            instruments=invitation.instruments,
            now=now,
            index=index,
        )
        index.remove_pending_invitation(invitation.invited_user_id, invitation.id)
        log_audit_event(
            db,
            band_id=band.id,
            actor_user_id=actor_user_id,
            action="band.invitation.accepted",
            target_type="band_invitation",
            target_id=invitation.id,
            metadata_json={"member_id": member.id, "role": member.role},
        )

    log_roster_event("member_joined", band=band, member=member, actor_user_id=actor_user_id)
    return invitation


def decline_invitation(
    db: Session,
    invitation_id: str,
    *,
    actor_user_id: str,
    now: datetime | None = None,
) -> BandInvitation:
    now = now or utcnow()
    invitation = _load_for_invitee(db, invitation_id, actor_user_id, now)

    with optimistic_transaction(db, conflict_detail=INVITATION_CONFLICT_DETAIL):
        invitation.status = InvitationStatus.DECLINED.value
        invitation.responded_at = now
        invitation.updated_at = now
        UserIndexStore(db).remove_pending_invitation(invitation.invited_user_id, invitation.id)
        log_audit_event(
            db,
            band_id=invitation.band_id,
            actor_user_id=actor_user_id,
            action="band.invitation.declined",
            target_type="band_invitation",
            target_id=invitation.id,
        )
    return invitation


def get_invitation(db: Session, invitation_id: str, *, actor_user_id: str) -> BandInvitation:
    """Visible to the invitee and to band members who manage the roster."""
    invitation = _load_invitation(db, invitation_id)
    if invitation.invited_user_id == actor_user_id:
        return invitation
    band = load_band(db, invitation.band_id)
    require_permission(band, actor_user_id, BandPermission.MANAGE_MEMBERS)
    return invitation


def list_band_invitations(
    db: Session,
    *,
    band_id: str,
    actor_user_id: str,
    status: str | None = None,
    limit: int = 50,
    offset: int = 0,
    now: datetime | None = None,
) -> tuple[list[BandInvitation], int]:
    now = now or utcnow()
    band = load_band(db, band_id)
    require_permission(band, actor_user_id, BandPermission.MANAGE_MEMBERS)

    stmt = select(BandInvitation).where(BandInvitation.band_id == band.id)
    if status is not None:
        try:
            wanted = InvitationStatus(status)
        except ValueError as exc:
            raise ValidationFailedError("status must be one of: pending, accepted, declined, expired") from exc
        # Stored pending rows may read as expired, so filter on effective status.
        if wanted in {InvitationStatus.PENDING, InvitationStatus.EXPIRED}:
            stmt = stmt.where(
                BandInvitation.status.in_([InvitationStatus.PENDING.value, InvitationStatus.EXPIRED.value])
            )
        else:
            stmt = stmt.where(BandInvitation.status == wanted.value)
        rows = db.execute(stmt.order_by(BandInvitation.created_at.desc())).scalars().all()
        matched = [row for row in rows if row.effective_status(now) == wanted.value]
        return matched[offset : offset + limit], len(matched)

    total = int(db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one())
    rows = db.execute(
        stmt.order_by(BandInvitation.created_at.desc()).limit(limit).offset(offset)
    ).scalars().all()
    return list(rows), total


def list_user_invitations(
    db: Session,
    *,
    user_id: str,
    now: datetime | None = None,
) -> list[BandInvitation]:
    """Open invitations for a user, looked up through the pending-invitation index."""
    now = now or utcnow()
    invitation_ids = UserIndexStore(db).pending_invitation_ids(user_id)
    if not invitation_ids:
        return []
    rows = db.execute(
        select(BandInvitation)
        .where(
            BandInvitation.id.in_(invitation_ids),
            BandInvitation.invited_user_id == user_id,
        )
        .order_by(BandInvitation.created_at.desc())
    ).scalars().all()
    return [row for row in rows if row.is_open(now)]
