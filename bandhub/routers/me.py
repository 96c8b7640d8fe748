from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bandhub.core.api_docs import error_responses
from bandhub.core.deps import get_db
from bandhub.core.security_current import get_current_user
from bandhub.models.user import User
from bandhub.routers.applications import application_out
from bandhub.routers.bands import band_out
from bandhub.routers.invitations import invitation_out
from bandhub.schemas.application import UserApplicationListOut
from bandhub.schemas.band import BandListOut
from bandhub.schemas.invitation import UserInvitationListOut
from bandhub.services import application_service, band_service, invitation_service

router = APIRouter(prefix="/me", tags=["me"])


@router.get(
    "/bands",
    response_model=BandListOut,
    summary="List my bands",
    responses={**error_responses(401, 500)},
)
def list_my_bands(
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    bands = band_service.list_user_bands(db, user_id=actor.id)
    return BandListOut(items=[band_out(band) for band in bands])


@router.get(
    "/invitations",
    response_model=UserInvitationListOut,
    summary="List my open invitations",
    responses={**error_responses(401, 500)},
)
def list_my_invitations(
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    invitations = invitation_service.list_user_invitations(db, user_id=actor.id)
    return UserInvitationListOut(items=[invitation_out(invitation) for invitation in invitations])


@router.get(
    "/applications",
    response_model=UserApplicationListOut,
    summary="List my applications",
    responses={**error_responses(401, 422, 500)},
)
def list_my_applications(
    status_filter: str | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    applications = application_service.list_user_applications(db, user_id=actor.id, status=status_filter)
    return UserApplicationListOut(items=[application_out(application) for application in applications])
