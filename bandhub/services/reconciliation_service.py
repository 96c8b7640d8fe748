"""Repair pass for the per-user band and pending-invitation index.

Workflows keep the index in step inside their own transactions; this pass
fixes divergence left by out-of-band writes and materializes pending
invitations whose TTL has elapsed. Running it twice in a row changes nothing
the second time.
"""

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from bandhub.core.time_utils import utcnow
from bandhub.models.band import BandMember
from bandhub.models.band_invitation import BandInvitation, InvitationStatus
from bandhub.models.user_index import UserBandIndexEntry, UserIndexKind
from bandhub.services.concurrency import optimistic_transaction

logger = logging.getLogger("bandhub.governance")


@dataclass
class ReconciliationReport:
    bands_added: int = 0
    bands_removed: int = 0
    invitations_added: int = 0
    invitations_removed: int = 0
    invitations_expired: int = 0

    @property
    def changed(self) -> bool:
        return any(asdict(self).values())


def _index_pairs(db: Session, kind: UserIndexKind) -> set[tuple[str, str]]:
    rows = db.execute(
        select(UserBandIndexEntry.user_id, UserBandIndexEntry.ref_id).where(UserBandIndexEntry.kind == kind.value)
    ).all()
    return {(row.user_id, row.ref_id) for row in rows}


def _sync_kind(
    db: Session,
    kind: UserIndexKind,
    expected: set[tuple[str, str]],
) -> tuple[int, int]:
    actual = _index_pairs(db, kind)
    missing = expected - actual
    stale = actual - expected
    for user_id, ref_id in sorted(missing):
        db.add(UserBandIndexEntry(user_id=user_id, kind=kind.value, ref_id=ref_id))
    for user_id, ref_id in sorted(stale):
        db.execute(
            delete(UserBandIndexEntry).where(
                UserBandIndexEntry.user_id == user_id,
                UserBandIndexEntry.kind == kind.value,
                UserBandIndexEntry.ref_id == ref_id,
            )
        )
    return len(missing), len(stale)


def reconcile_membership_index(db: Session, *, now: datetime | None = None) -> ReconciliationReport:
    now = now or utcnow()
    report = ReconciliationReport()

    with optimistic_transaction(db, conflict_detail="Index changed during reconciliation; rerun"):
        pending = db.execute(
            select(BandInvitation).where(BandInvitation.status == InvitationStatus.PENDING.value)
        ).scalars().all()
        open_pairs: set[tuple[str, str]] = set()
        for invitation in pending:
            if invitation.is_expired(now):
                invitation.status = InvitationStatus.EXPIRED.value
                invitation.updated_at = now
                report.invitations_expired += 1
            else:
                open_pairs.add((invitation.invited_user_id, invitation.id))

        member_pairs = {
            (row.user_id, row.band_id)
            for row in db.execute(
                select(BandMember.user_id, BandMember.band_id).where(BandMember.is_active.is_(True))
            ).all()
        }

        report.bands_added, report.bands_removed = _sync_kind(db, UserIndexKind.BAND, member_pairs)
        report.invitations_added, report.invitations_removed = _sync_kind(
            db, UserIndexKind.PENDING_INVITATION, open_pairs
        )

    logger.info(json.dumps({"event": "membership_index_reconciled", **asdict(report)}))
    return report
