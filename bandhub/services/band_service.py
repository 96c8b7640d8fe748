from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from bandhub.core.errors import PermissionDeniedError, ValidationFailedError
from bandhub.core.id_utils import generate_shortuuid
from bandhub.core.permissions import BandPermission, BandRole, require_permission
from bandhub.core.time_utils import utcnow
from bandhub.models.band import Band, BandMember
from bandhub.services.audit_service import log_audit_event
from bandhub.services.concurrency import optimistic_transaction
from bandhub.services.membership_service import (
    ROSTER_CONFLICT_DETAIL,
    add_member,
    ensure_band_active,
    load_band,
    log_roster_event,
)
from bandhub.services.user_directory import UserIndexStore

PROFILE_FIELDS = ("name", "bio", "location", "genres", "social_links", "profile_image_url")


@dataclass(frozen=True)
class BandMetadata:
    name: str
    bio: str | None = None
    location: str | None = None
    genres: tuple[str, ...] = ()
    social_links: dict[str, Any] | None = None
    profile_image_url: str | None = None


def _clean_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationFailedError("Band name is required")
    return cleaned


def _clean_genres(genres: Iterable[str] | None) -> list[str]:
    return [genre.strip() for genre in genres or [] if genre and genre.strip()]


def create_band(
    db: Session,
    *,
    metadata: BandMetadata,
    creator_user_id: str,
    creator_instruments: Iterable[str] | None = None,
    now: datetime | None = None,
) -> Band:
    now = now or utcnow()
    band = Band(
        id=generate_shortuuid(),
        name=_clean_name(metadata.name),
        bio=metadata.bio,
        location=metadata.location,
        genres=_clean_genres(metadata.genres),
        social_links=metadata.social_links,
        profile_image_url=metadata.profile_image_url,
        is_active=True,
        created_by_user_id=creator_user_id,
        created_at=now,
        updated_at=now,
    )
    db.add(band)

    with optimistic_transaction(db, conflict_detail=ROSTER_CONFLICT_DETAIL):
        leader = add_member(
            db,
            band,
            user_id=creator_user_id,
            role=BandRole.LEADER,
            instruments=creator_instruments,
            now=now,
        )
        log_audit_event(
            db,
            band_id=band.id,
            actor_user_id=creator_user_id,
            action="band.created",
            target_type="band",
            target_id=band.id,
            metadata_json={"name": band.name, "leader_member_id": leader.id},
        )

    log_roster_event("band_created", band=band, member=leader, actor_user_id=creator_user_id)
    return band


def get_band(db: Session, band_id: str) -> Band:
    return load_band(db, band_id)


def update_band_profile(
    db: Session,
    *,
    band_id: str,
    actor_user_id: str,
    changes: dict[str, Any],
    now: datetime | None = None,
) -> Band:
    now = now or utcnow()
    band = load_band(db, band_id)
    ensure_band_active(band)
    require_permission(band, actor_user_id, BandPermission.MANAGE_PROFILE)

    updates = {key: value for key, value in changes.items() if key in PROFILE_FIELDS}
    if "name" in updates:
        updates["name"] = _clean_name(updates["name"])
    if "genres" in updates:
        updates["genres"] = _clean_genres(updates["genres"])
    if not updates:
        return band

    previous = {key: getattr(band, key) for key in updates}
    with optimistic_transaction(db, conflict_detail="Band changed concurrently; reload and retry"):
        for key, value in updates.items():
            setattr(band, key, value)
        band.updated_at = now
        log_audit_event(
            db,
            band_id=band.id,
            actor_user_id=actor_user_id,
            action="band.profile.updated",
            target_type="band",
            target_id=band.id,
            metadata_json={"previous": previous, "next": updates},
        )
    return band


def deactivate_band(
    db: Session,
    *,
    band_id: str,
    actor_user_id: str,
    now: datetime | None = None,
) -> Band:
    now = now or utcnow()
    band = load_band(db, band_id)
    ensure_band_active(band)
    actor = band.active_member(actor_user_id)
    if actor is None or actor.role != BandRole.LEADER:
        raise PermissionDeniedError("Only band leaders can deactivate a band")

    with optimistic_transaction(db, conflict_detail="Band changed concurrently; reload and retry"):
        band.is_active = False
        band.updated_at = now
        log_audit_event(
            db,
            band_id=band.id,
            actor_user_id=actor_user_id,
            action="band.deactivated",
            target_type="band",
            target_id=band.id,
        )
    return band


def list_band_members(db: Session, *, band_id: str, include_inactive: bool = False) -> list[BandMember]:
    band = load_band(db, band_id)
    if include_inactive:
        return list(band.members)
    return list(band.roster.values())


def list_user_bands(db: Session, *, user_id: str) -> list[Band]:
    band_ids = UserIndexStore(db).band_ids(user_id)
    if not band_ids:
        return []
    bands = db.execute(
        select(Band).where(Band.id.in_(band_ids), Band.is_active.is_(True))
    ).scalars().all()
    by_id = {band.id: band for band in bands if band.active_member(user_id) is not None}
    return [by_id[band_id] for band_id in band_ids if band_id in by_id]
