import pytest
from sqlalchemy import select

from conftest import auth_headers, seed_user
from bandhub.core.errors import (
    LastLeaderProtectionError,
    NotFoundError,
    PermissionDeniedError,
)
from bandhub.models.audit_log import BandAuditLog
from bandhub.models.band import Band, BandMember
from bandhub.services import band_service, invitation_service, membership_service
from bandhub.services.user_directory import UserIndexStore


def _band_with_members(session_local, **roles: str) -> tuple[str, str, dict[str, str]]:
    leader_id = seed_user(session_local, "leader")
    user_ids = {username: seed_user(session_local, username) for username in roles}
    db = session_local()
    try:
        band = band_service.create_band(
            db,
            metadata=band_service.BandMetadata(name="Paper Lanterns"),
            creator_user_id=leader_id,
        )
        for username, role in roles.items():
            invitation = invitation_service.send_invitation(
                db,
                band_id=band.id,
                inviter_user_id=leader_id,
                invited_user_id=user_ids[username],
                role=role,
            )
            invitation_service.accept_invitation(db, invitation.id, actor_user_id=user_ids[username])
        return band.id, leader_id, user_ids
    finally:
        db.close()


def test_sole_leader_cannot_remove_themselves(session_local):
    band_id, leader_id, _ = _band_with_members(session_local, bassist="member")
    db = session_local()
    try:
        roster_before = sorted(db.get(Band, band_id).roster)
        with pytest.raises(LastLeaderProtectionError):
            membership_service.remove_member(
                db, band_id=band_id, target_user_id=leader_id, remover_user_id=leader_id
            )
        db.expire_all()
        band = db.get(Band, band_id)
        assert sorted(band.roster) == roster_before
        assert membership_service.count_active_leaders(band) == 1
    finally:
        db.close()


def test_remove_member_soft_deletes_and_updates_index(session_local):
    band_id, leader_id, users = _band_with_members(session_local, bassist="member")
    bassist_id = users["bassist"]
    db = session_local()
    try:
        removed = membership_service.remove_member(
            db, band_id=band_id, target_user_id=bassist_id, remover_user_id=leader_id
        )
        assert removed.is_active is False
        assert removed.removed_by_user_id == leader_id
        assert removed.removed_at is not None

        band = db.get(Band, band_id)
        assert band.active_member(bassist_id) is None
        rows = db.execute(select(BandMember).where(BandMember.user_id == bassist_id)).scalars().all()
        assert len(rows) == 1
        assert band_id not in UserIndexStore(db).band_ids(bassist_id)

        actions = db.execute(
            select(BandAuditLog.action).where(BandAuditLog.target_id == removed.id)
        ).scalars().all()
        assert actions == ["band.member.removed"]

        with pytest.raises(NotFoundError):
            membership_service.remove_member(
                db, band_id=band_id, target_user_id=bassist_id, remover_user_id=leader_id
            )
    finally:
        db.close()


def test_removed_member_can_rejoin_with_a_new_row(session_local):
    band_id, leader_id, users = _band_with_members(session_local, bassist="member")
    bassist_id = users["bassist"]
    db = session_local()
    try:
        old = membership_service.remove_member(
            db, band_id=band_id, target_user_id=bassist_id, remover_user_id=leader_id
        )
        invitation = invitation_service.send_invitation(
            db, band_id=band_id, inviter_user_id=leader_id, invited_user_id=bassist_id, role="guest"
        )
        invitation_service.accept_invitation(db, invitation.id, actor_user_id=bassist_id)

        rows = db.execute(select(BandMember).where(BandMember.user_id == bassist_id)).scalars().all()
        assert len(rows) == 2
        active = [row for row in rows if row.is_active]
        assert len(active) == 1
        assert active[0].id != old.id
        assert active[0].role == "guest"
    finally:
        db.close()


def test_removal_requires_manage_members_even_for_self(session_local):
    band_id, leader_id, users = _band_with_members(session_local, bassist="member", manager="admin")
    db = session_local()
    try:
        with pytest.raises(PermissionDeniedError):
            membership_service.remove_member(
                db, band_id=band_id, target_user_id=users["bassist"], remover_user_id=users["bassist"]
            )
        with pytest.raises(PermissionDeniedError):
            membership_service.remove_member(
                db, band_id=band_id, target_user_id=leader_id, remover_user_id="stranger"
            )

        left = membership_service.remove_member(
            db, band_id=band_id, target_user_id=users["manager"], remover_user_id=users["manager"]
        )
        assert left.is_active is False
        action = db.execute(
            select(BandAuditLog.action).where(BandAuditLog.target_id == left.id)
        ).scalar_one()
        assert action == "band.member.left"
    finally:
        db.close()


def test_leader_can_leave_once_another_leader_exists(session_local):
    band_id, leader_id, users = _band_with_members(session_local, cofounder="member")
    cofounder_id = users["cofounder"]
    db = session_local()
    try:
        membership_service.change_member_role(
            db, band_id=band_id, target_user_id=cofounder_id, actor_user_id=leader_id, role="leader"
        )
        band = db.get(Band, band_id)
        assert membership_service.count_active_leaders(band) == 2

        membership_service.remove_member(db, band_id=band_id, target_user_id=leader_id, remover_user_id=leader_id)
        band = db.get(Band, band_id)
        assert [member.user_id for member in band.active_leaders()] == [cofounder_id]

        with pytest.raises(LastLeaderProtectionError):
            membership_service.remove_member(
                db, band_id=band_id, target_user_id=cofounder_id, remover_user_id=cofounder_id
            )
    finally:
        db.close()


def test_change_member_role_rules(session_local):
    band_id, leader_id, users = _band_with_members(session_local, manager="admin", bassist="member")
    db = session_local()
    try:
        promoted = membership_service.change_member_role(
            db, band_id=band_id, target_user_id=users["bassist"], actor_user_id=users["manager"], role="guest"
        )
        assert promoted.role == "guest"
        assert promoted.permissions == []

        with pytest.raises(PermissionDeniedError):
            membership_service.change_member_role(
                db, band_id=band_id, target_user_id=users["bassist"], actor_user_id=users["manager"], role="admin"
            )
        with pytest.raises(PermissionDeniedError):
            membership_service.change_member_role(
                db, band_id=band_id, target_user_id=leader_id, actor_user_id=users["manager"], role="member"
            )
        with pytest.raises(LastLeaderProtectionError):
            membership_service.change_member_role(
                db, band_id=band_id, target_user_id=leader_id, actor_user_id=leader_id, role="admin"
            )

        admin = membership_service.change_member_role(
            db, band_id=band_id, target_user_id=users["bassist"], actor_user_id=leader_id, role="admin"
        )
        assert admin.permissions == ["manage_members", "manage_profile", "manage_videos", "view_analytics"]
    finally:
        db.close()


def test_member_http_endpoints(test_context):
    client, session_local = test_context
    band_id, leader_id, users = _band_with_members(session_local, bassist="member")

    last_leader = client.delete(f"/bands/{band_id}/members/{leader_id}", headers=auth_headers(leader_id))
    assert last_leader.status_code == 409
    assert last_leader.json()["error"]["code"] == "last_leader_protection"

    role_change = client.patch(
        f"/bands/{band_id}/members/{users['bassist']}",
        json={"role": "admin"},
        headers=auth_headers(leader_id),
    )
    assert role_change.status_code == 200, role_change.text
    assert role_change.json()["role"] == "admin"

    bad_role = client.patch(
        f"/bands/{band_id}/members/{users['bassist']}",
        json={"role": "roadie"},
        headers=auth_headers(leader_id),
    )
    assert bad_role.status_code == 422

    removed = client.delete(f"/bands/{band_id}/members/{users['bassist']}", headers=auth_headers(leader_id))
    assert removed.status_code == 200, removed.text
    assert removed.json()["is_active"] is False

    active = client.get(f"/bands/{band_id}/members", headers=auth_headers(leader_id))
    assert [item["user_id"] for item in active.json()["items"]] == [leader_id]
    history = client.get(
        f"/bands/{band_id}/members",
        params={"include_inactive": True},
        headers=auth_headers(leader_id),
    )
    assert len(history.json()["items"]) == 2
