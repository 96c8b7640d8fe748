from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from bandhub.core.api_docs import error_responses
from bandhub.core.deps import get_db
from bandhub.core.errors import PermissionDeniedError
from bandhub.core.permissions import effective_permissions, serialize_permissions
from bandhub.core.security_current import get_current_user
from bandhub.models.band import Band, BandMember
from bandhub.models.user import User
from bandhub.schemas.band import (
    BandCreateIn,
    BandMemberListOut,
    BandMemberOut,
    BandOut,
    BandUpdateIn,
    EffectivePermissionsOut,
    MemberRoleUpdateIn,
)
from bandhub.services import band_service, membership_service

router = APIRouter(prefix="/bands", tags=["bands"])


def member_out(member: BandMember) -> BandMemberOut:
    return BandMemberOut(
        member_id=member.id,
        user_id=member.user_id,
        role=member.role,
        instruments=list(member.instruments or []),
        permissions=list(member.permissions or []),
        joined_at=member.joined_at,
        is_active=member.is_active,
        removed_at=member.removed_at,
        removed_by_user_id=member.removed_by_user_id,
    )


def band_out(band: Band) -> BandOut:
    return BandOut(
        id=band.id,
        name=band.name,
        bio=band.bio,
        location=band.location,
        genres=list(band.genres or []),
        social_links=band.social_links,
        profile_image_url=band.profile_image_url,
        is_active=band.is_active,
        created_by_user_id=band.created_by_user_id,
        version=band.version,
        members=[member_out(member) for member in band.roster.values()],
        created_at=band.created_at,
        updated_at=band.updated_at,
    )


@router.post(
    "",
    response_model=BandOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create band",
    responses={**error_responses(401, 422, 500)},
)
def create_band(
    payload: BandCreateIn,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    band = band_service.create_band(
        db,
        metadata=band_service.BandMetadata(
            name=payload.name,
            bio=payload.bio,
            location=payload.location,
            genres=tuple(payload.genres),
            social_links=payload.social_links.model_dump(exclude_none=True) if payload.social_links else None,
            profile_image_url=payload.profile_image_url,
        ),
        creator_user_id=actor.id,
        creator_instruments=payload.instruments,
    )
    return band_out(band)


@router.get(
    "/{band_id}",
    response_model=BandOut,
    summary="Get band",
    responses={**error_responses(401, 404, 500)},
)
def get_band(
    band_id: str,
    db: Session = Depends(get_db),
    _actor: User = Depends(get_current_user),
):
    return band_out(band_service.get_band(db, band_id))


@router.patch(
    "/{band_id}",
    response_model=BandOut,
    summary="Update band profile",
    responses={**error_responses(401, 403, 404, 409, 422, 500)},
)
def update_band(
    band_id: str,
    payload: BandUpdateIn,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    changes = payload.model_dump(exclude_unset=True)
    if payload.social_links is not None:
        changes["social_links"] = payload.social_links.model_dump(exclude_none=True)
    band = band_service.update_band_profile(db, band_id=band_id, actor_user_id=actor.id, changes=changes)
    return band_out(band)


@router.delete(
    "/{band_id}",
    response_model=BandOut,
    summary="Deactivate band",
    responses={**error_responses(401, 403, 404, 409, 500)},
)
def deactivate_band(
    band_id: str,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    return band_out(band_service.deactivate_band(db, band_id=band_id, actor_user_id=actor.id))


@router.get(
    "/{band_id}/members",
    response_model=BandMemberListOut,
    summary="List band members",
    responses={**error_responses(401, 404, 500)},
)
def list_members(
    band_id: str,
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
    _actor: User = Depends(get_current_user),
):
    members = band_service.list_band_members(db, band_id=band_id, include_inactive=include_inactive)
    return BandMemberListOut(band_id=band_id, items=[member_out(member) for member in members])


@router.patch(
    "/{band_id}/members/{user_id}",
    response_model=BandMemberOut,
    summary="Change member role",
    responses={**error_responses(401, 403, 404, 409, 422, 500)},
)
def change_member_role(
    band_id: str,
    user_id: str,
    payload: MemberRoleUpdateIn,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    member = membership_service.change_member_role(
        db,
        band_id=band_id,
        target_user_id=user_id,
        actor_user_id=actor.id,
        role=payload.role,
    )
    return member_out(member)


@router.delete(
    "/{band_id}/members/{user_id}",
    response_model=BandMemberOut,
    summary="Remove member or leave band",
    responses={**error_responses(401, 403, 404, 409, 500)},
)
def remove_member(
    band_id: str,
    user_id: str,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    member = membership_service.remove_member(
        db,
        band_id=band_id,
        target_user_id=user_id,
        remover_user_id=actor.id,
    )
    return member_out(member)


@router.get(
    "/{band_id}/permissions",
    response_model=EffectivePermissionsOut,
    summary="Get effective band permissions",
    responses={**error_responses(401, 403, 404, 500)},
)
def get_effective_permissions(
    band_id: str,
    user_id: str | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    band = band_service.get_band(db, band_id)
    subject_id = user_id or actor.id
    if subject_id != actor.id and band.active_member(actor.id) is None:
        raise PermissionDeniedError("Only band members can inspect other members' permissions")

    member = band.active_member(subject_id)
    return EffectivePermissionsOut(
        band_id=band.id,
        user_id=subject_id,
        role=member.role if member else None,
        is_member=member is not None,
        permissions=serialize_permissions(effective_permissions(band, subject_id)),
    )
