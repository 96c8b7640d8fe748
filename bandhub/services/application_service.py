from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from bandhub.core.errors import (
    AlreadyMemberError,
    DuplicateApplicationError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from bandhub.core.id_utils import generate_shortuuid
from bandhub.core.permissions import BandPermission, BandRole, has_permission, require_permission
from bandhub.core.time_utils import utcnow
from bandhub.models.band import Band
from bandhub.models.band_application import ApplicationStatus, BandApplication
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
from bandhub.services.user_directory import resolve_user

APPLICATION_CONFLICT_DETAIL = "Application was already resolved by another request"


def _load_application(db: Session, application_id: str) -> BandApplication:
    application = db.get(BandApplication, application_id)
    if not application:
        raise NotFoundError("Application not found")
    return application


def _clean_message(message: str | None) -> str | None:
    return (message or "").strip() or None


def submit_application(
    db: Session,
    *,
    band_id: str,
    applicant_user_id: str,
    role: str = "member",
    instruments: Iterable[str] | None = None,
    message: str | None = None,
    now: datetime | None = None,
) -> BandApplication:
    now = now or utcnow()
    band = load_band(db, band_id)
    ensure_band_active(band)
    if band.active_member(applicant_user_id) is not None:
        raise AlreadyMemberError()

    requested_role = parse_role(role)
    if requested_role == BandRole.LEADER:
        raise ValidationFailedError("Applicants cannot request the leader role")

    existing = db.execute(
        select(BandApplication.id).where(
            BandApplication.band_id == band.id,
            BandApplication.applicant_user_id == applicant_user_id,
            BandApplication.status == ApplicationStatus.PENDING.value,
        )
    ).scalars().first()
    if existing is not None:
        raise DuplicateApplicationError(existing_application_id=existing)

    applicant = resolve_user(db, applicant_user_id)
    with optimistic_transaction(db, conflict_detail=APPLICATION_CONFLICT_DETAIL):
        application = BandApplication(
            id=generate_shortuuid(),
            band_id=band.id,
            band_name=band.name,
            applicant_user_id=applicant.user_id,
            applicant_name=applicant.display_name,
            role=requested_role.value,
            instruments=normalize_instruments(instruments),
            message=_clean_message(message),
            status=ApplicationStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        db.add(application)
        log_audit_event(
            db,
            band_id=band.id,
            actor_user_id=applicant_user_id,
            action="band.application.submitted",
            target_type="band_application",
            target_id=application.id,
            metadata_json={"role": application.role},
        )
    return application


def _respond(
    db: Session,
    application_id: str,
    *,
    responder_user_id: str,
) -> tuple[BandApplication, Band]:
    application = _load_application(db, application_id)
    band = load_band(db, application.band_id)
    require_permission(band, responder_user_id, BandPermission.MANAGE_MEMBERS)
    if application.status != ApplicationStatus.PENDING:
        raise InvalidStateError(f"Application is already {application.status}")
    return application, band


def accept_application(
    db: Session,
    application_id: str,
    *,
    responder_user_id: str,
    response_message: str | None = None,
    now: datetime | None = None,
) -> BandApplication:
    now = now or utcnow()
    application, band = _respond(db, application_id, responder_user_id=responder_user_id)
    ensure_band_active(band)

    with optimistic_transaction(db, conflict_detail=APPLICATION_CONFLICT_DETAIL):
        application.status = ApplicationStatus.ACCEPTED.value
        application.response_message = _clean_message(response_message)
        application.responded_by_user_id = responder_user_id
        application.responded_at = now
        application.updated_at = now
        db.flush()

        member = add_member(
            db,
            band,
            user_id=application.applicant_user_id,
            role=application.role,
            instruments=application.instruments,
            now=now,
        )
        log_audit_event(
            db,
            band_id=band.id,
            actor_user_id=responder_user_id,
            action="band.application.accepted",
            target_type="band_application",
            target_id=application.id,
            metadata_json={"member_id": member.id, "role": member.role},
        )

    log_roster_event("member_joined", band=band, member=member, actor_user_id=responder_user_id)
    return application


def reject_application(
    db: Session,
    application_id: str,
    *,
    responder_user_id: str,
    response_message: str | None = None,
    now: datetime | None = None,
) -> BandApplication:
    now = now or utcnow()
    application, band = _respond(db, application_id, responder_user_id=responder_user_id)

    with optimistic_transaction(db, conflict_detail=APPLICATION_CONFLICT_DETAIL):
        application.status = ApplicationStatus.REJECTED.value
        application.response_message = _clean_message(response_message)
        application.responded_by_user_id = responder_user_id
        application.responded_at = now
        application.updated_at = now
        log_audit_event(
            db,
            band_id=band.id,
            actor_user_id=responder_user_id,
            action="band.application.rejected",
            target_type="band_application",
            target_id=application.id,
        )
    return application


def get_application(db: Session, application_id: str, *, actor_user_id: str) -> BandApplication:
    application = _load_application(db, application_id)
    if application.applicant_user_id == actor_user_id:
        return application
    band = load_band(db, application.band_id)
    if not has_permission(band, actor_user_id, BandPermission.MANAGE_MEMBERS):
        raise PermissionDeniedError("Only the applicant or band managers can view this application")
    return application


def _status_filter(status: str | None) -> ApplicationStatus | None:
    if status is None:
        return None
    try:
        return ApplicationStatus(status)
    except ValueError as exc:
        raise ValidationFailedError("status must be one of: pending, accepted, rejected") from exc


def list_band_applications(
    db: Session,
    *,
    band_id: str,
    actor_user_id: str,
    status: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[BandApplication], int]:
    band = load_band(db, band_id)
    require_permission(band, actor_user_id, BandPermission.MANAGE_MEMBERS)

    stmt = select(BandApplication).where(BandApplication.band_id == band.id)
    wanted = _status_filter(status)
    if wanted is not None:
        stmt = stmt.where(BandApplication.status == wanted.value)

    total = int(db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one())
    rows = db.execute(
        stmt.order_by(BandApplication.created_at.desc()).limit(limit).offset(offset)
    ).scalars().all()
    return list(rows), total


def list_user_applications(
    db: Session,
    *,
    user_id: str,
    status: str | None = None,
) -> list[BandApplication]:
    stmt = select(BandApplication).where(BandApplication.applicant_user_id == user_id)
    wanted = _status_filter(status)
    if wanted is not None:
        stmt = stmt.where(BandApplication.status == wanted.value)
    return list(db.execute(stmt.order_by(BandApplication.created_at.desc())).scalars())
