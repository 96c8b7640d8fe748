from datetime import datetime, timedelta
from enum import Enum

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from bandhub.core.id_utils import generate_shortuuid
from bandhub.core.time_utils import ensure_utc, utcnow
from bandhub.db.base import Base

INVITATION_TTL = timedelta(days=7)


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class BandInvitation(Base):
    __tablename__ = "band_invitations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    band_id: Mapped[str] = mapped_column(String(36), ForeignKey("bands.id"), index=True)
    band_name: Mapped[str] = mapped_column(String(120), nullable=False)
    invited_user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    invited_user_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    invited_by_user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, server_default="member")
    instruments: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="pending")
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index(
            "ix_band_invites_band_user_status",
            "band_id",
            "invited_user_id",
            "status",
        ),
        Index("ix_band_invites_user_status", "invited_user_id", "status"),
        Index("ix_band_invites_status_expires", "status", "expires_at"),
    )

    def is_expired(self, now: datetime | None = None) -> bool:
        return ensure_utc(self.expires_at) < (now or utcnow())

    def effective_status(self, now: datetime | None = None) -> str:
        """Status as callers must see it; lapsed pending invitations read as expired."""
        if self.status == InvitationStatus.PENDING and self.is_expired(now):
            return InvitationStatus.EXPIRED.value
        return self.status

    def is_open(self, now: datetime | None = None) -> bool:
        return self.effective_status(now) == InvitationStatus.PENDING
