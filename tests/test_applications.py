import pytest

from conftest import auth_headers, seed_user
from bandhub.core.errors import (
    AlreadyMemberError,
    DuplicateApplicationError,
    InvalidStateError,
    PermissionDeniedError,
    ValidationFailedError,
)
from bandhub.core.permissions import BandPermission, has_permission
from bandhub.models.band import Band
from bandhub.models.band_application import ApplicationStatus
from bandhub.services import application_service, band_service, invitation_service
from bandhub.services.user_directory import UserIndexStore


def _band_with_admin(session_local) -> tuple[str, str, str]:
    leader_id = seed_user(session_local, "leader")
    admin_id = seed_user(session_local, "admin")
    db = session_local()
    try:
        band = band_service.create_band(
            db,
            metadata=band_service.BandMetadata(name="Velvet Static"),
            creator_user_id=leader_id,
        )
        invitation = invitation_service.send_invitation(
            db, band_id=band.id, inviter_user_id=leader_id, invited_user_id=admin_id, role="admin"
        )
        invitation_service.accept_invitation(db, invitation.id, actor_user_id=admin_id)
        return band.id, leader_id, admin_id
    finally:
        db.close()


def test_admin_accepts_guest_application(session_local):
    band_id, _, admin_id = _band_with_admin(session_local)
    applicant_id = seed_user(session_local, "fan", full_name="Tunde Bello")
    db = session_local()
    try:
        application = application_service.submit_application(
            db, band_id=band_id, applicant_user_id=applicant_id, role="guest", instruments=["tambourine"]
        )
        assert application.status == ApplicationStatus.PENDING
        assert application.applicant_name == "Tunde Bello"
        assert application.band_name == "Velvet Static"

        accepted = application_service.accept_application(
            db, application.id, responder_user_id=admin_id, response_message="Welcome!"
        )
        assert accepted.status == ApplicationStatus.ACCEPTED
        assert accepted.responded_by_user_id == admin_id
        assert accepted.response_message == "Welcome!"
        assert accepted.responded_at is not None

        band = db.get(Band, band_id)
        member = band.active_member(applicant_id)
        assert member.role == "guest"
        assert member.permissions == []
        assert member.instruments == ["tambourine"]
        assert not has_permission(band, applicant_id, BandPermission.MANAGE_VIDEOS)
        assert band_id in UserIndexStore(db).band_ids(applicant_id)
    finally:
        db.close()


def test_application_preconditions(session_local):
    band_id, leader_id, _ = _band_with_admin(session_local)
    applicant_id = seed_user(session_local, "hopeful")
    db = session_local()
    try:
        with pytest.raises(AlreadyMemberError):
            application_service.submit_application(db, band_id=band_id, applicant_user_id=leader_id)
        with pytest.raises(ValidationFailedError):
            application_service.submit_application(
                db, band_id=band_id, applicant_user_id=applicant_id, role="leader"
            )

        first = application_service.submit_application(db, band_id=band_id, applicant_user_id=applicant_id)
        with pytest.raises(DuplicateApplicationError) as excinfo:
            application_service.submit_application(db, band_id=band_id, applicant_user_id=applicant_id)
        assert excinfo.value.existing_application_id == first.id
    finally:
        db.close()


def test_responding_requires_manage_members(session_local):
    band_id, leader_id, admin_id = _band_with_admin(session_local)
    member_id = seed_user(session_local, "member")
    applicant_id = seed_user(session_local, "hopeful")
    db = session_local()
    try:
        invitation = invitation_service.send_invitation(
            db, band_id=band_id, inviter_user_id=leader_id, invited_user_id=member_id
        )
        invitation_service.accept_invitation(db, invitation.id, actor_user_id=member_id)
        application = application_service.submit_application(db, band_id=band_id, applicant_user_id=applicant_id)

        with pytest.raises(PermissionDeniedError):
            application_service.accept_application(db, application.id, responder_user_id=member_id)
        with pytest.raises(PermissionDeniedError):
            application_service.reject_application(db, application.id, responder_user_id=applicant_id)
        assert db.get(Band, band_id).active_member(applicant_id) is None
    finally:
        db.close()


def test_reject_application_is_terminal(session_local):
    band_id, _, admin_id = _band_with_admin(session_local)
    applicant_id = seed_user(session_local, "hopeful")
    db = session_local()
    try:
        application = application_service.submit_application(db, band_id=band_id, applicant_user_id=applicant_id)
        rejected = application_service.reject_application(
            db, application.id, responder_user_id=admin_id, response_message="Not this season"
        )
        assert rejected.status == ApplicationStatus.REJECTED
        roster_before = sorted(db.get(Band, band_id).roster)

        with pytest.raises(InvalidStateError):
            application_service.accept_application(db, application.id, responder_user_id=admin_id)
        with pytest.raises(InvalidStateError):
            application_service.reject_application(db, application.id, responder_user_id=admin_id)
        db.expire_all()
        assert sorted(db.get(Band, band_id).roster) == roster_before

        again = application_service.submit_application(db, band_id=band_id, applicant_user_id=applicant_id)
        assert again.id != application.id
    finally:
        db.close()


def test_accepting_application_for_existing_member_fails_cleanly(session_local):
    band_id, leader_id, admin_id = _band_with_admin(session_local)
    applicant_id = seed_user(session_local, "both-ways")
    db = session_local()
    try:
        application = application_service.submit_application(db, band_id=band_id, applicant_user_id=applicant_id)
        invitation = invitation_service.send_invitation(
            db, band_id=band_id, inviter_user_id=leader_id, invited_user_id=applicant_id
        )
        invitation_service.accept_invitation(db, invitation.id, actor_user_id=applicant_id)

        with pytest.raises(AlreadyMemberError):
            application_service.accept_application(db, application.id, responder_user_id=admin_id)

        db.expire_all()
        band = db.get(Band, band_id)
        assert [member.user_id for member in band.members if member.user_id == applicant_id] == [applicant_id]
        assert application_service.get_application(
            db, application.id, actor_user_id=applicant_id
        ).status == ApplicationStatus.PENDING
    finally:
        db.close()


def test_application_http_flow(test_context):
    client, session_local = test_context
    band_id, leader_id, admin_id = _band_with_admin(session_local)
    applicant_id = seed_user(session_local, "hopeful", full_name="Kemi Drums")
    stranger_id = seed_user(session_local, "stranger")

    created = client.post(
        f"/bands/{band_id}/applications",
        json={"role": "member", "instruments": ["drums"], "message": "Available weekends"},
        headers=auth_headers(applicant_id),
    )
    assert created.status_code == 201, created.text
    application = created.json()
    assert application["applicant_name"] == "Kemi Drums"

    duplicate = client.post(f"/bands/{band_id}/applications", json={}, headers=auth_headers(applicant_id))
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "duplicate_application"

    leader_role = client.post(
        f"/bands/{band_id}/applications",
        json={"role": "leader"},
        headers=auth_headers(stranger_id),
    )
    assert leader_role.status_code == 422

    hidden = client.get(f"/applications/{application['application_id']}", headers=auth_headers(stranger_id))
    assert hidden.status_code == 403
    visible = client.get(f"/applications/{application['application_id']}", headers=auth_headers(admin_id))
    assert visible.status_code == 200

    listing = client.get(
        f"/bands/{band_id}/applications",
        params={"status": "pending"},
        headers=auth_headers(admin_id),
    )
    assert listing.status_code == 200, listing.text
    assert [item["application_id"] for item in listing.json()["items"]] == [application["application_id"]]
    assert client.get(f"/bands/{band_id}/applications", headers=auth_headers(stranger_id)).status_code == 403

    accepted = client.post(
        f"/applications/{application['application_id']}/accept",
        json={"response_message": "See you at rehearsal"},
        headers=auth_headers(admin_id),
    )
    assert accepted.status_code == 200, accepted.text
    assert accepted.json()["status"] == "accepted"

    again = client.post(
        f"/applications/{application['application_id']}/reject",
        headers=auth_headers(admin_id),
    )
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "invalid_state"

    mine = client.get("/me/applications", headers=auth_headers(applicant_id))
    assert [item["status"] for item in mine.json()["items"]] == ["accepted"]
    my_bands = client.get("/me/bands", headers=auth_headers(applicant_id))
    assert [band["id"] for band in my_bands.json()["items"]] == [band_id]
