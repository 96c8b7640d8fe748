from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from bandhub.core.api_docs import error_responses
from bandhub.core.deps import get_db
from bandhub.core.security_current import get_current_user
from bandhub.core.time_utils import utcnow
from bandhub.models.band_invitation import BandInvitation
from bandhub.models.user import User
from bandhub.schemas.common import pagination_meta
from bandhub.schemas.invitation import BandInvitationCreateIn, BandInvitationListOut, BandInvitationOut
from bandhub.services import invitation_service

router = APIRouter(tags=["invitations"])


def invitation_out(invitation: BandInvitation) -> BandInvitationOut:
    return BandInvitationOut(
        invitation_id=invitation.id,
        band_id=invitation.band_id,
        band_name=invitation.band_name,
        invited_user_id=invitation.invited_user_id,
        invited_user_name=invitation.invited_user_name,
        invited_by_user_id=invitation.invited_by_user_id,
        role=invitation.role,
        instruments=list(invitation.instruments or []),
        message=invitation.message,
        status=invitation.effective_status(utcnow()),
        expires_at=invitation.expires_at,
        responded_at=invitation.responded_at,
        created_at=invitation.created_at,
    )


@router.post(
    "/bands/{band_id}/invitations",
    response_model=BandInvitationOut,
    status_code=status.HTTP_201_CREATED,
    summary="Invite user to band",
    responses={**error_responses(401, 403, 404, 409, 422, 500)},
)
def send_invitation(
    band_id: str,
    payload: BandInvitationCreateIn,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    invitation = invitation_service.send_invitation(
        db,
        band_id=band_id,
        inviter_user_id=actor.id,
        invited_user_id=payload.invited_user_id,
        role=payload.role,
        instruments=payload.instruments,
        message=payload.message,
    )
    return invitation_out(invitation)


@router.get(
    "/bands/{band_id}/invitations",
    response_model=BandInvitationListOut,
    summary="List band invitations",
    responses={**error_responses(401, 403, 404, 422, 500)},
)
def list_band_invitations(
    band_id: str,
    status_filter: str | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    rows, total = invitation_service.list_band_invitations(
        db,
        band_id=band_id,
        actor_user_id=actor.id,
        status=status_filter,
        limit=limit,
        offset=offset,
    )
    items = [invitation_out(row) for row in rows]
    return BandInvitationListOut(
        items=items,
        pagination=pagination_meta(total=total, limit=limit, offset=offset, count=len(items)),
    )


@router.get(
    "/invitations/{invitation_id}",
    response_model=BandInvitationOut,
    summary="Get invitation",
    responses={**error_responses(401, 403, 404, 500)},
)
def get_invitation(
    invitation_id: str,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return invitation_out(invitation_service.get_invitation(db, invitation_id, actor_user_id=actor.id))


@router.post(
    "/invitations/{invitation_id}/accept",
    response_model=BandInvitationOut,
    summary="Accept invitation",
    responses={**error_responses(401, 403, 404, 409, 500)},
)
def accept_invitation(
    invitation_id: str,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return invitation_out(invitation_service.accept_invitation(db, invitation_id, actor_user_id=actor.id))


@router.post(
    "/invitations/{invitation_id}/decline",
    response_model=BandInvitationOut,
    summary="Decline invitation",
    responses={**error_responses(401, 403, 404, 409, 500)},
)
def decline_invitation(
    invitation_id: str,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return invitation_out(invitation_service.decline_invitation(db, invitation_id, actor_user_id=actor.id))
