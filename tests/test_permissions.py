import pytest

from conftest import seed_user
from bandhub.core.errors import PermissionDeniedError
from bandhub.core.permissions import (
    BandPermission,
    BandRole,
    default_permissions,
    effective_permissions,
    has_permission,
    normalize_role,
    require_permission,
    role_outranks,
)
from bandhub.models.band import Band
from bandhub.services import band_service, membership_service


def _create_band(session_local, leader_id: str, name: str = "The Night Shift") -> str:
    db = session_local()
    try:
        band = band_service.create_band(
            db,
            metadata=band_service.BandMetadata(name=name),
            creator_user_id=leader_id,
            creator_instruments=["vocals"],
        )
        return band.id
    finally:
        db.close()


def test_default_permissions_table():
    assert default_permissions(BandRole.LEADER) == set(BandPermission)
    assert default_permissions("admin") == {
        BandPermission.MANAGE_MEMBERS,
        BandPermission.MANAGE_VIDEOS,
        BandPermission.MANAGE_PROFILE,
        BandPermission.VIEW_ANALYTICS,
    }
    assert default_permissions("member") == {BandPermission.MANAGE_VIDEOS}
    assert default_permissions("guest") == set()


def test_default_permissions_returns_a_fresh_set():
    perms = default_permissions("member")
    perms.add(BandPermission.MANAGE_GIGS)
    assert default_permissions("member") == {BandPermission.MANAGE_VIDEOS}


def test_role_ordering_and_normalization():
    assert normalize_role("  Admin ") == BandRole.ADMIN
    assert role_outranks("leader", "admin")
    assert role_outranks("admin", "member")
    assert role_outranks("member", "guest")
    assert not role_outranks("admin", "admin")
    with pytest.raises(ValueError):
        normalize_role("drummer")


def test_leader_has_every_permission_and_strangers_have_none(session_local):
    leader_id = seed_user(session_local, "leader")
    band_id = _create_band(session_local, leader_id)

    db = session_local()
    try:
        band = db.get(Band, band_id)
        assert has_permission(band, leader_id, BandPermission.MANAGE_GIGS)
        assert not has_permission(band, "stranger", BandPermission.MANAGE_VIDEOS)
        assert effective_permissions(band, "stranger") == set()
        with pytest.raises(PermissionDeniedError):
            require_permission(band, "stranger", BandPermission.MANAGE_MEMBERS)
    finally:
        db.close()


def test_leader_permissions_ignore_stored_permission_list(session_local):
    leader_id = seed_user(session_local, "leader")
    band_id = _create_band(session_local, leader_id)

    db = session_local()
    try:
        band = db.get(Band, band_id)
        band.active_member(leader_id).permissions = []
        db.commit()

        band = db.get(Band, band_id)
        assert band.active_member(leader_id).permissions == []
        for permission in BandPermission:
            assert has_permission(band, leader_id, permission)
        assert effective_permissions(band, leader_id) == set(BandPermission)
    finally:
        db.close()


def test_non_leader_uses_stored_permissions(session_local):
    leader_id = seed_user(session_local, "leader")
    member_id = seed_user(session_local, "member")
    band_id = _create_band(session_local, leader_id)

    db = session_local()
    try:
        band = db.get(Band, band_id)
        membership_service.add_member(
            db, band, user_id=member_id, role="member", instruments=["bass"], now=band.created_at
        )
        db.commit()

        band = db.get(Band, band_id)
        assert has_permission(band, member_id, BandPermission.MANAGE_VIDEOS)
        assert not has_permission(band, member_id, BandPermission.MANAGE_MEMBERS)

        band.active_member(member_id).permissions = [BandPermission.VIEW_ANALYTICS.value]
        db.commit()
        band = db.get(Band, band_id)
        assert has_permission(band, member_id, BandPermission.VIEW_ANALYTICS)
        assert not has_permission(band, member_id, BandPermission.MANAGE_VIDEOS)
    finally:
        db.close()


def test_removed_member_loses_all_permissions(session_local):
    leader_id = seed_user(session_local, "leader")
    admin_id = seed_user(session_local, "admin")
    band_id = _create_band(session_local, leader_id)

    db = session_local()
    try:
        band = db.get(Band, band_id)
        membership_service.add_member(db, band, user_id=admin_id, role="admin", instruments=[], now=band.created_at)
        db.commit()

        membership_service.remove_member(db, band_id=band_id, target_user_id=admin_id, remover_user_id=leader_id)
        band = db.get(Band, band_id)
        assert not has_permission(band, admin_id, BandPermission.MANAGE_VIDEOS)
        assert effective_permissions(band, admin_id) == set()
    finally:
        db.close()
