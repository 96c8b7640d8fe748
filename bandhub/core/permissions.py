from collections.abc import Iterable
from enum import Enum
from typing import TYPE_CHECKING

from bandhub.core.errors import PermissionDeniedError

if TYPE_CHECKING:
    from bandhub.models.band import Band


class BandRole(str, Enum):
    LEADER = "leader"
    ADMIN = "admin"
    MEMBER = "member"
    GUEST = "guest"


class BandPermission(str, Enum):
    MANAGE_MEMBERS = "manage_members"
    MANAGE_VIDEOS = "manage_videos"
    MANAGE_PROFILE = "manage_profile"
    MANAGE_GIGS = "manage_gigs"
    VIEW_ANALYTICS = "view_analytics"


# Higher rank means more authority.
ROLE_RANK: dict[BandRole, int] = {
    BandRole.LEADER: 4,
    BandRole.ADMIN: 3,
    BandRole.MEMBER: 2,
    BandRole.GUEST: 1,
}

ROLE_PERMISSION_MATRIX: dict[BandRole, frozenset[BandPermission]] = {
    BandRole.LEADER: frozenset(BandPermission),
    BandRole.ADMIN: frozenset(
        {
            BandPermission.MANAGE_MEMBERS,
            BandPermission.MANAGE_VIDEOS,
            BandPermission.MANAGE_PROFILE,
            BandPermission.VIEW_ANALYTICS,
        }
    ),
    BandRole.MEMBER: frozenset({BandPermission.MANAGE_VIDEOS}),
    BandRole.GUEST: frozenset(),
}


def normalize_role(role: str | BandRole) -> BandRole:
    if isinstance(role, BandRole):
        return role
    return BandRole((role or "").strip().lower())


def default_permissions(role: str | BandRole) -> set[BandPermission]:
    return set(ROLE_PERMISSION_MATRIX[normalize_role(role)])


def serialize_permissions(permissions: Iterable[BandPermission]) -> list[str]:
    # Stable order keeps stored rows and API payloads diffable.
    return sorted(BandPermission(permission).value for permission in permissions)


def role_outranks(actor_role: str | BandRole, target_role: str | BandRole) -> bool:
    return ROLE_RANK[normalize_role(actor_role)] > ROLE_RANK[normalize_role(target_role)]


def has_permission(band: "Band", user_id: str, permission: str | BandPermission) -> bool:
    member = band.active_member(user_id)
    if member is None:
        return False
    if member.role == BandRole.LEADER:
        return True
    return BandPermission(permission) in member.permission_set


def effective_permissions(band: "Band", user_id: str) -> set[BandPermission]:
    member = band.active_member(user_id)
    if member is None:
        return set()
    if member.role == BandRole.LEADER:
        return set(BandPermission)
    return set(member.permission_set)


def require_permission(band: "Band", user_id: str, permission: BandPermission) -> None:
    if not has_permission(band, user_id, permission):
        raise PermissionDeniedError(f"Missing band permission: {permission.value}")
