from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from bandhub.db.base import Base


class BandAuditLog(Base):
    __tablename__ = "band_audit_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    band_id: Mapped[str] = mapped_column(String(36), ForeignKey("bands.id"), index=True)
    actor_user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    target_type: Mapped[str] = mapped_column(String(100), nullable=False)
    target_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_band_audit_logs_band_created_at", "band_id", "created_at"),
        Index("ix_band_audit_logs_band_action_created_at", "band_id", "action", "created_at"),
    )
