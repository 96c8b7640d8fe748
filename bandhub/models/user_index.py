from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from bandhub.core.id_utils import generate_shortuuid
from bandhub.db.base import Base


class UserIndexKind(str, Enum):
    BAND = "band"
    PENDING_INVITATION = "pending_invitation"


class UserBandIndexEntry(Base):
    """Denormalized per-user lookup of band ids and pending invitation ids."""

    __tablename__ = "user_band_index"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    kind: Mapped[str] = mapped_column(String(30), nullable=False)
    ref_id: Mapped[str] = mapped_column(String(36), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ux_user_band_index_user_kind_ref", "user_id", "kind", "ref_id", unique=True),
        Index("ix_user_band_index_kind_ref", "kind", "ref_id"),
    )
