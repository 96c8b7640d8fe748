from dataclasses import dataclass

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from bandhub.core.errors import NotFoundError
from bandhub.models.user import User
from bandhub.models.user_index import UserBandIndexEntry, UserIndexKind


@dataclass(frozen=True)
class UserSummary:
    user_id: str
    username: str
    display_name: str


def resolve_user(db: Session, user_id: str) -> UserSummary:
    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise NotFoundError("User not found")
    return UserSummary(user_id=user.id, username=user.username, display_name=user.display_name)


class UserIndexStore:
    """Per-user band and pending-invitation index.

    Writes are idempotent and join the caller's transaction; nothing here
    commits.
    """

    def __init__(self, db: Session):
        self.db = db

    def add_band(self, user_id: str, band_id: str) -> bool:
        return self._add(user_id, UserIndexKind.BAND, band_id)

    def remove_band(self, user_id: str, band_id: str) -> bool:
        return self._remove(user_id, UserIndexKind.BAND, band_id)

    def add_pending_invitation(self, user_id: str, invitation_id: str) -> bool:
        return self._add(user_id, UserIndexKind.PENDING_INVITATION, invitation_id)

    def remove_pending_invitation(self, user_id: str, invitation_id: str) -> bool:
        return self._remove(user_id, UserIndexKind.PENDING_INVITATION, invitation_id)

    def band_ids(self, user_id: str) -> list[str]:
        return self._refs(user_id, UserIndexKind.BAND)

    def pending_invitation_ids(self, user_id: str) -> list[str]:
        return self._refs(user_id, UserIndexKind.PENDING_INVITATION)

    def _find(self, user_id: str, kind: UserIndexKind, ref_id: str) -> UserBandIndexEntry | None:
        return self.db.execute(
            select(UserBandIndexEntry).where(
                UserBandIndexEntry.user_id == user_id,
                UserBandIndexEntry.kind == kind.value,
                UserBandIndexEntry.ref_id == ref_id,
            )
        ).scalar_one_or_none()

    def _add(self, user_id: str, kind: UserIndexKind, ref_id: str) -> bool:
        if self._find(user_id, kind, ref_id) is not None:
            return False
        self.db.add(UserBandIndexEntry(user_id=user_id, kind=kind.value, ref_id=ref_id))
        self.db.flush()
        return True

    def _remove(self, user_id: str, kind: UserIndexKind, ref_id: str) -> bool:
        result = self.db.execute(
            delete(UserBandIndexEntry).where(
                UserBandIndexEntry.user_id == user_id,
                UserBandIndexEntry.kind == kind.value,
                UserBandIndexEntry.ref_id == ref_id,
            )
        )
        return bool(result.rowcount)

    def _refs(self, user_id: str, kind: UserIndexKind) -> list[str]:
        return list(
            self.db.execute(
                select(UserBandIndexEntry.ref_id)
                .where(
                    UserBandIndexEntry.user_id == user_id,
                    UserBandIndexEntry.kind == kind.value,
                )
                .order_by(UserBandIndexEntry.created_at.asc())
            ).scalars()
        )
