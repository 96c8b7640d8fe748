from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from bandhub.core.api_docs import error_responses
from bandhub.core.deps import get_db
from bandhub.core.security_current import get_current_user
from bandhub.models.band_application import BandApplication
from bandhub.models.user import User
from bandhub.schemas.application import (
    BandApplicationCreateIn,
    BandApplicationListOut,
    BandApplicationOut,
    BandApplicationResponseIn,
)
from bandhub.schemas.common import pagination_meta
from bandhub.services import application_service

router = APIRouter(tags=["applications"])


def application_out(application: BandApplication) -> BandApplicationOut:
    return BandApplicationOut(
        application_id=application.id,
        band_id=application.band_id,
        band_name=application.band_name,
        applicant_user_id=application.applicant_user_id,
        applicant_name=application.applicant_name,
        role=application.role,
        instruments=list(application.instruments or []),
        message=application.message,
        response_message=application.response_message,
        status=application.status,
        responded_by_user_id=application.responded_by_user_id,
        responded_at=application.responded_at,
        created_at=application.created_at,
    )


@router.post(
    "/bands/{band_id}/applications",
    response_model=BandApplicationOut,
    status_code=status.HTTP_201_CREATED,
    summary="Apply to join band",
    responses={**error_responses(401, 404, 409, 422, 500)},
)
def submit_application(
    band_id: str,
    payload: BandApplicationCreateIn,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    application = application_service.submit_application(
        db,
        band_id=band_id,
        applicant_user_id=actor.id,
        role=payload.role,
        instruments=payload.instruments,
        message=payload.message,
    )
    return application_out(application)


@router.get(
    "/bands/{band_id}/applications",
    response_model=BandApplicationListOut,
    summary="List band applications",
    responses={**error_responses(401, 403, 404, 422, 500)},
)
def list_band_applications(
    band_id: str,
    status_filter: str | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    rows, total = application_service.list_band_applications(
        db,
        band_id=band_id,
        actor_user_id=actor.id,
        status=status_filter,
        limit=limit,
        offset=offset,
    )
    items = [application_out(row) for row in rows]
    return BandApplicationListOut(
        items=items,
        pagination=pagination_meta(total=total, limit=limit, offset=offset, count=len(items)),
    )


@router.get(
    "/applications/{application_id}",
    response_model=BandApplicationOut,
    summary="Get application",
    responses={**error_responses(401, 403, 404, 500)},
)
def get_application(
    application_id: str,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return application_out(application_service.get_application(db, application_id, actor_user_id=actor.id))


@router.post(
    "/applications/{application_id}/accept",
    response_model=BandApplicationOut,
    summary="Accept application",
    responses={**error_responses(401, 403, 404, 409, 500)},
)
def accept_application(
    application_id: str,
    payload: BandApplicationResponseIn | None = None,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    application = application_service.accept_application(
        db,
        application_id,
        responder_user_id=actor.id,
        response_message=payload.response_message if payload else None,
    )
    return application_out(application)


@router.post(
    "/applications/{application_id}/reject",
    response_model=BandApplicationOut,
    summary="Reject application",
    responses={**error_responses(401, 403, 404, 409, 500)},
)
def reject_application(
    application_id: str,
    payload: BandApplicationResponseIn | None = None,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    application = application_service.reject_application(
        db,
        application_id,
        responder_user_id=actor.id,
        response_message=payload.response_message if payload else None,
    )
    return application_out(application)
